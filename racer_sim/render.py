from __future__ import annotations

from typing import Optional, Any


class PygameRenderer:
    background = (64, 64, 64)
    road_color = (255, 255, 255)
    line_color = (255, 255, 0)
    car_color = (255, 0, 0)
    obstacle_color = (0, 255, 0)
    text_color = (255, 255, 255)

    def __init__(self, width: int, height: int, mode: str) -> None:
        try:
            import pygame
        except ImportError as exc:
            raise RuntimeError("pygame is required for rendering") from exc

        self.pygame = pygame
        self.width = width
        self.height = height
        self.mode = mode

        pygame.init()
        pygame.font.init()

        self.screen = None
        if mode == "human":
            self.screen = pygame.display.set_mode((width, height))
            pygame.display.set_caption("Racing Game")
            self.surface = self.screen
        else:
            self.surface = pygame.Surface((width, height))

        self.clock = pygame.time.Clock()
        self.font = pygame.font.Font(None, 28)
        self.big_font = pygame.font.Font(None, 54)

    def close(self) -> None:
        self.pygame.quit()

    def tick(self, fps: int) -> None:
        if self.mode == "human":
            self.clock.tick(fps)

    def draw(self, env) -> Optional[Any]:
        surface = self.surface
        surface.fill(self.background)

        self._draw_road(surface, env)
        self._draw_player(surface, env)
        for obstacle in env.obstacles:
            self._draw_obstacle(surface, obstacle)
        self._draw_hud(surface, env)

        if self.mode == "human":
            self.pygame.display.flip()
            return None
        return self._get_rgb_array()

    def _draw_road(self, surface, env) -> None:
        pg = self.pygame
        config = env.config
        pg.draw.rect(surface, self.road_color, (config.road_left, 0, config.road_width, env.height))

        center_x = config.road_left + config.road_width // 2 - 5
        for y in range(0, env.height, 40):
            pg.draw.rect(surface, self.line_color, (center_x, y, 10, 20))

        if env.score >= config.finish_score:
            pg.draw.rect(surface, self.road_color, (config.road_left, 0, 10, env.height))

    def _draw_player(self, surface, env) -> None:
        rect = self.pygame.Rect(
            int(env.player_x),
            int(env.player_y),
            int(env.player_width),
            int(env.player_height),
        )
        self.pygame.draw.rect(surface, self.car_color, rect)

    def _draw_obstacle(self, surface, obstacle) -> None:
        rect = self.pygame.Rect(int(obstacle.x), int(obstacle.y), int(obstacle.width), int(obstacle.height))
        self.pygame.draw.rect(surface, self.obstacle_color, rect)

    def _draw_hud(self, surface, env) -> None:
        margin = 10

        score_text = self.font.render(f"Score: {env.score}", True, self.text_color)
        surface.blit(score_text, (margin, margin + 4))

        lives_text = self.font.render(f"Lives: {env.lives}", True, self.text_color)
        surface.blit(lives_text, (env.width - 100, margin + 4))

        if env.race_won:
            self._draw_banner(surface, env, "You Win!", (0, 255, 0))
        if env.race_over:
            self._draw_banner(surface, env, "Game Over!", (255, 0, 0))

        if env.prompt_text:
            prompt = self.font.render(env.prompt_text, True, self.text_color)
            box = prompt.get_rect(center=(env.width // 2, env.height // 2))
            self.pygame.draw.rect(surface, (20, 20, 20), box.inflate(24, 16))
            surface.blit(prompt, box)

    def _draw_banner(self, surface, env, text: str, color) -> None:
        banner = self.big_font.render(text, True, color)
        surface.blit(banner, ((env.width - banner.get_width()) / 2.0, 120))

    def _get_rgb_array(self):
        try:
            import numpy as np
        except ImportError as exc:
            raise RuntimeError("rgb_array mode requires numpy") from exc

        arr = self.pygame.surfarray.array3d(self.surface)
        return np.transpose(arr, (1, 0, 2))
