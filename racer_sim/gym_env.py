from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np

try:
    import gymnasium as gym
    from gymnasium import spaces
except ImportError as exc:
    raise RuntimeError("gymnasium is required to use RacerGymEnv") from exc

from .env import RaceConfig, RacerEnv

ACTION_MEANINGS = ("NOOP", "LEFT", "RIGHT", "LEFT_RIGHT")


class RacerGymEnv(gym.Env):
    """Gymnasium view of the racing game.

    Actions: ``Discrete(4)`` indexes ``ACTION_MEANINGS``; in ``"buttons"`` mode
    a ``MultiBinary(2)`` array of ``(left, right)`` hold states.

    Reward is the change in score over the tick: +1 per survived tick, a
    negative jump when a crash soft-resets the score, 0 once the race is
    decided. ``terminated`` is set on the tick the race is won or lost; the
    game never truncates on its own.
    """

    metadata = {"render_modes": ["human", "rgb_array"], "render_fps": 60}

    def __init__(
        self,
        render_mode: Optional[str] = None,
        obs_mode: str = "state",
        action_mode: str = "discrete",
        config: Optional[RaceConfig] = None,
        max_objects: int = 4,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__()
        if render_mode is not None and render_mode not in self.metadata["render_modes"]:
            raise ValueError(f"Unknown render_mode: {render_mode}")

        self.game = RacerEnv(
            config=config,
            render_mode=render_mode,
            obs_mode=obs_mode,
            action_mode=action_mode,
            seed=seed,
            max_objects=max_objects,
        )
        self.render_mode = render_mode
        self.obs_mode = obs_mode
        self.action_mode = action_mode
        self.metadata = dict(self.metadata, render_fps=self.game.config.fps)

        if action_mode == "buttons":
            self.action_space = spaces.MultiBinary(2)
        else:
            self.action_space = spaces.Discrete(len(ACTION_MEANINGS))

        if obs_mode == "state":
            self.observation_space = spaces.Box(
                low=-1.0, high=1.0, shape=(self.game.state_size,), dtype=np.float32
            )
        else:
            self.observation_space = spaces.Box(
                low=0, high=255, shape=(self.game.height, self.game.width, 3), dtype=np.uint8
            )

    @property
    def env(self) -> RacerEnv:
        return self.game

    @property
    def config(self) -> RaceConfig:
        return self.game.config

    @staticmethod
    def get_action_meanings() -> Tuple[str, ...]:
        return ACTION_MEANINGS

    def reset(self, *, seed: Optional[int] = None, options: Optional[dict] = None):
        super().reset(seed=seed)
        del options
        obs, info = self.game.reset(seed=seed)
        return self._to_array(obs), self._with_crash(info, crashed=False)

    def step(self, action: Any) -> Tuple[Any, float, bool, bool, Dict[str, Any]]:
        if self.action_mode == "buttons" and not isinstance(action, dict):
            held = np.asarray(action, dtype=bool).reshape(-1)
            if held.shape != (2,):
                held = np.zeros(2, dtype=bool)
            action = {"left": bool(held[0]), "right": bool(held[1])}

        lives_before = self.game.lives
        obs, reward, terminated, truncated, info = self.game.step(action)
        crashed = self.game.lives < lives_before
        return self._to_array(obs), float(reward), bool(terminated), bool(truncated), self._with_crash(info, crashed)

    def render(self):
        return self.game.render(mode=self.render_mode)

    def close(self) -> None:
        self.game.close()

    @staticmethod
    def _with_crash(info: Dict[str, Any], crashed: bool) -> Dict[str, Any]:
        info["crashed"] = crashed
        return info

    def _to_array(self, obs: Any) -> np.ndarray:
        if self.obs_mode == "state":
            return np.asarray(obs, dtype=np.float32)
        if obs is None:
            return np.zeros(self.observation_space.shape, dtype=np.uint8)
        return np.asarray(obs, dtype=np.uint8)
