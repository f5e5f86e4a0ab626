from __future__ import annotations

from dataclasses import dataclass, fields
import os
import random
from typing import Any, Dict, List, Optional, Tuple

try:
    import yaml
except ImportError:
    yaml = None

DEFAULT_CONFIG_PATH = os.path.join("configs", "default.yaml")


@dataclass
class RaceConfig:
    """Game constants. Coordinates are pixels, top-left origin, y grows downward."""
    width: int = 600
    height: int = 600
    fps: int = 60

    road_left: int = 150
    road_width: int = 300

    car_start: Tuple[int, int] = (250, 500)
    car_size: Tuple[int, int] = (40, 60)
    car_speed: int = 15

    base_obstacle_speed: int = 5
    max_obstacle_speed: int = 20
    speed_step_score: int = 100
    finish_score: int = 1000
    starting_lives: int = 3

    spawn_chance: float = 0.05
    spawn_x_range: Tuple[int, int] = (200, 400)  # [lo, hi)
    obstacle_width_range: Tuple[int, int] = (50, 100)  # [lo, hi)
    obstacle_height: int = 50
    spawn_y: int = -100

    @classmethod
    def from_yaml(cls, path: str) -> "RaceConfig":
        if yaml is None:
            raise ImportError("PyYAML required. pip install pyyaml")
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: str = "", default_path: str = DEFAULT_CONFIG_PATH) -> "RaceConfig":
        """Load `path`, else `default_path` if it exists, else built-in defaults.

        Relative paths resolve against the current working directory.
        """
        if path:
            return cls.from_yaml(os.path.abspath(path))
        if default_path and os.path.exists(default_path):
            return cls.from_yaml(os.path.abspath(default_path))
        return cls()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RaceConfig":
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                continue
            if isinstance(value, list):
                value = tuple(value)
            values[key] = value
        return cls(**values)

    def validate(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            items = value if isinstance(value, tuple) else (value,)
            for item in items:
                if isinstance(item, bool) or not isinstance(item, (int, float)):
                    raise ValueError(f"{f.name} must be numeric, got {value!r}")

        positive = (
            "width",
            "height",
            "fps",
            "road_width",
            "car_speed",
            "base_obstacle_speed",
            "speed_step_score",
            "finish_score",
            "starting_lives",
            "obstacle_height",
        )
        for name in positive:
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")

        for name in ("car_start", "car_size", "spawn_x_range", "obstacle_width_range"):
            if len(getattr(self, name)) != 2:
                raise ValueError(f"{name} must be a pair, got {getattr(self, name)!r}")

        car_w, car_h = self.car_size
        if car_w <= 0 or car_h <= 0:
            raise ValueError(f"car_size must be positive, got {self.car_size}")
        if car_w > self.road_width:
            raise ValueError(f"car_size width {car_w} does not fit road_width {self.road_width}")
        if self.road_left < 0 or self.road_left + self.road_width > self.width:
            raise ValueError("road must lie inside the play field")

        start_x, start_y = self.car_start
        if not self.road_left <= start_x <= self.road_left + self.road_width - car_w:
            raise ValueError(f"car_start x {start_x} is outside the road")
        if not 0 <= start_y <= self.height - car_h:
            raise ValueError(f"car_start y {start_y} is outside the play field")

        for name in ("spawn_x_range", "obstacle_width_range"):
            lo, hi = getattr(self, name)
            if hi <= lo:
                raise ValueError(f"{name} is empty: {lo}..{hi}")
        if self.obstacle_width_range[0] <= 0:
            raise ValueError("obstacle_width_range must start above 0")

        if not 0.0 <= self.spawn_chance <= 1.0:
            raise ValueError(f"spawn_chance must be in [0, 1], got {self.spawn_chance}")
        if self.base_obstacle_speed > self.max_obstacle_speed:
            raise ValueError("base_obstacle_speed must not exceed max_obstacle_speed")


@dataclass
class Obstacle:
    x: float
    y: float
    width: float
    height: float


class RacerEnv:
    game_modes = ("racing", "won", "over")

    def __init__(
        self,
        config: Optional[RaceConfig] = None,
        render_mode: Optional[str] = None,
        obs_mode: str = "state",
        action_mode: str = "discrete",
        seed: Optional[int] = None,
        rng: Optional[Any] = None,
        max_objects: int = 4,
    ) -> None:
        self.config = config if config is not None else RaceConfig()
        self.config.validate()
        if obs_mode not in ("state", "pixels", "rgb_array"):
            raise ValueError(f"Unknown obs_mode: {obs_mode}")
        if action_mode not in ("discrete", "buttons"):
            raise ValueError(f"Unknown action_mode: {action_mode}")

        self.width = self.config.width
        self.height = self.config.height
        self.fps = self.config.fps
        self.render_mode = render_mode
        self.obs_mode = obs_mode
        self.action_mode = action_mode
        self.max_objects = max_objects

        self.seed_value = seed
        # An injected rng only needs random() and randrange(); it is never reseeded.
        self.owns_rng = rng is None
        self.rng = random.Random(seed) if self.owns_rng else rng

        self.renderer = None
        self.prompt_text: Optional[str] = None

        self.obstacles: List[Obstacle] = []

        self.left_pressed = False
        self.right_pressed = False

        self.player_width = float(self.config.car_size[0])
        self.player_height = float(self.config.car_size[1])
        self.player_x = float(self.config.car_start[0])
        self.player_y = float(self.config.car_start[1])

        self.score = 0
        self.lives = self.config.starting_lives
        self.obstacle_speed = self.config.base_obstacle_speed
        self.game_mode = "racing"
        self.pending_event: Optional[str] = None

        self.reset()

    def seed(self, seed: Optional[int]) -> None:
        self.seed_value = seed
        if self.owns_rng:
            self.rng.seed(seed)

    def reset(self, seed: Optional[int] = None) -> Tuple[Any, Dict[str, Any]]:
        """Full reset: everything back to the starting values."""
        if seed is not None:
            self.seed(seed)

        self.obstacle_speed = self.config.base_obstacle_speed
        self.lives = self.config.starting_lives
        self.game_mode = "racing"
        self.pending_event = None
        self.prompt_text = None
        self.reset_attempt()

        return self._get_observation(), self._get_info()

    def reset_attempt(self) -> None:
        """Soft reset after losing a life. Lives and obstacle speed are kept."""
        self.player_x = float(self.config.car_start[0])
        self.player_y = float(self.config.car_start[1])
        self.score = 0
        self.obstacles = []
        self.spawn_obstacle()
        self.left_pressed = False
        self.right_pressed = False

    @property
    def race_won(self) -> bool:
        return self.game_mode == "won"

    @property
    def race_over(self) -> bool:
        return self.game_mode == "over"

    @property
    def is_racing(self) -> bool:
        return self.game_mode == "racing"

    @property
    def road_left(self) -> float:
        return float(self.config.road_left)

    @property
    def road_right(self) -> float:
        return float(self.config.road_left + self.config.road_width)

    def step(self, action: Any) -> Tuple[Any, float, bool, bool, Dict[str, Any]]:
        prev_score = self.score
        self.pending_event = None

        if self.is_racing:
            self.apply_action(action)
            self.update_player()
            self.update_obstacles()
            crashed = self.handle_collisions()
            if not crashed:
                self.update_progress()

        reward = float(self.score - prev_score)
        terminated = not self.is_racing
        truncated = False
        return self._get_observation(), reward, terminated, truncated, self._get_info()

    def pop_event(self) -> Optional[str]:
        event = self.pending_event
        self.pending_event = None
        return event

    def render(self, mode: Optional[str] = None) -> Optional["Any"]:
        if mode is None:
            mode = self.render_mode
        if mode is None:
            return None

        if self.renderer is None or self.renderer.mode != mode:
            from .render import PygameRenderer

            if self.renderer is not None:
                self.renderer.close()
            self.renderer = PygameRenderer(self.width, self.height, mode)
        frame = self.renderer.draw(self)
        if mode == "human":
            self.renderer.tick(self.fps)
            return None
        return frame

    def close(self) -> None:
        if self.renderer is not None:
            self.renderer.close()
            self.renderer = None

    def apply_action(self, action: Any) -> None:
        left = right = False
        if self.action_mode == "discrete":
            try:
                action_id = int(action)
            except (TypeError, ValueError):
                action_id = 0
            if action_id == 1:
                left = True
            elif action_id == 2:
                right = True
            elif action_id == 3:
                left = right = True
        elif self.action_mode == "buttons":
            if isinstance(action, dict):
                left = bool(action.get("left", False))
                right = bool(action.get("right", False))
        else:
            raise ValueError(f"Unknown action_mode: {self.action_mode}")

        self.left_pressed = left
        self.right_pressed = right

    @staticmethod
    def action_from_buttons(left: bool, right: bool) -> int:
        if left and right:
            return 3
        if left:
            return 1
        if right:
            return 2
        return 0

    def update_player(self) -> None:
        # Both keys may be held; each move is clamped on its own.
        speed = self.config.car_speed
        if self.left_pressed:
            self.player_x = max(self.road_left, self.player_x - speed)
        if self.right_pressed:
            self.player_x = min(self.road_right - self.player_width, self.player_x + speed)

    def update_obstacles(self) -> None:
        self.obstacles = [obstacle for obstacle in self.obstacles if obstacle.y <= self.height]
        for obstacle in self.obstacles:
            obstacle.y += self.obstacle_speed

        if self.rng.random() < self.config.spawn_chance:
            self.spawn_obstacle()

    def spawn_obstacle(self) -> Obstacle:
        x_lo, x_hi = self.config.spawn_x_range
        w_lo, w_hi = self.config.obstacle_width_range
        x = self.rng.randrange(x_lo, x_hi)
        width = self.rng.randrange(w_lo, w_hi)
        obstacle = Obstacle(
            x=float(x),
            y=float(self.config.spawn_y),
            width=float(width),
            height=float(self.config.obstacle_height),
        )
        self.obstacles.append(obstacle)
        return obstacle

    def handle_collisions(self) -> bool:
        for obstacle in self.obstacles:
            if self.intersects_player(obstacle):
                self.handle_crash()
                return True
        return False

    def handle_crash(self) -> None:
        self.lives -= 1
        if self.lives <= 0:
            self.lives = 0
            self.trigger_game_over()
        else:
            self.reset_attempt()

    def update_progress(self) -> None:
        if not self.race_won:
            self.score += 1
            if (
                self.score % self.config.speed_step_score == 0
                and self.obstacle_speed < self.config.max_obstacle_speed
            ):
                self.obstacle_speed += 1

        if self.score >= self.config.finish_score and not self.race_won:
            self.game_mode = "won"
            self.pending_event = "win"

    def trigger_game_over(self) -> None:
        if self.game_mode == "over":
            return
        self.game_mode = "over"
        self.pending_event = "game_over"

    def intersects_player(self, obstacle: Obstacle) -> bool:
        return self.rects_intersect(
            self.player_x,
            self.player_y,
            self.player_width,
            self.player_height,
            obstacle.x,
            obstacle.y,
            obstacle.width,
            obstacle.height,
        )

    @staticmethod
    def rects_intersect(
        ax: float,
        ay: float,
        aw: float,
        ah: float,
        bx: float,
        by: float,
        bw: float,
        bh: float,
    ) -> bool:
        return ax < bx + bw and bx < ax + aw and ay < by + bh and by < ay + ah

    def _get_observation(self) -> Any:
        if self.obs_mode == "state":
            return self._get_state_observation()
        if self.obs_mode in ("pixels", "rgb_array"):
            return self.render(mode="rgb_array")
        raise ValueError(f"Unknown obs_mode: {self.obs_mode}")

    def _get_state_observation(self) -> List[float]:
        travel = max(1.0, self.road_right - self.player_width - self.road_left)
        player_x_norm = (self.player_x - self.road_left) / travel * 2.0 - 1.0
        player_x_norm = max(-1.0, min(1.0, player_x_norm))

        speed_norm = self.obstacle_speed / float(self.config.max_obstacle_speed)
        lives_norm = self.lives / float(self.config.starting_lives)
        progress_norm = self.score / float(self.config.finish_score)

        base = [
            player_x_norm,
            max(0.0, min(1.0, speed_norm)),
            max(0.0, min(1.0, lives_norm)),
            max(0.0, min(1.0, progress_norm)),
            1.0 if self.race_won else 0.0,
            1.0 if self.race_over else 0.0,
        ]

        half_road = self.config.road_width / 2.0
        player_center = self.player_x + self.player_width / 2.0
        for obstacle in self._nearest_obstacles():
            dx = (obstacle.x + obstacle.width / 2.0 - player_center) / half_road
            dy = (self.player_y - obstacle.y) / float(self.height)
            w = obstacle.width / float(self.config.road_width)
            base.extend([max(-1.0, min(1.0, dx)), max(-1.0, min(1.0, dy)), min(1.0, w)])

        while len(base) < self.state_size:
            base.append(0.0)
        return base

    def _nearest_obstacles(self) -> List[Obstacle]:
        candidates = [obs for obs in self.obstacles if obs.y < self.player_y + self.player_height]
        candidates.sort(key=lambda obs: -obs.y)
        return candidates[: self.max_objects]

    @property
    def state_size(self) -> int:
        return 6 + self.max_objects * 3

    def _get_info(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "lives": self.lives,
            "obstacle_speed": self.obstacle_speed,
            "obstacles": len(self.obstacles),
            "game_mode": self.game_mode,
            "event": self.pending_event,
            "message": self.current_message(),
        }

    def current_message(self) -> Optional[str]:
        if self.race_won:
            return "You Win!"
        if self.race_over:
            return "Game Over!"
        return None
