import argparse
import os
import sys
from typing import Optional

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from racer_sim.env import DEFAULT_CONFIG_PATH, RaceConfig, RacerEnv  # noqa: E402

PROMPTS = {
    "win": "Congratulations! Play again? (Y/N)",
    "game_over": "You lost all your lives. Try again? (Y/N)",
}


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play the racing game")
    parser.add_argument(
        "--config",
        type=str,
        default="",
        help=f"Path to config YAML file, relative to the working directory (default: {DEFAULT_CONFIG_PATH} if present)",
    )
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--fps", type=int, default=None)
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> RaceConfig:
    config = RaceConfig.load(args.config)
    if args.fps is not None:
        config.fps = args.fps
    return config


def pause_for_prompt(env: RacerEnv, event: Optional[str]) -> bool:
    """Show the play-again prompt for a terminal event. Returns True if ticking must pause."""
    if event is None:
        return False
    env.prompt_text = PROMPTS[event]
    return True


def answer_prompt(env: RacerEnv, play_again: bool) -> bool:
    """Apply the player's answer. Returns False when the game should quit."""
    if not play_again:
        return False
    env.reset()
    return True


def run_frame(env: RacerEnv, paused: bool, left: bool, right: bool) -> bool:
    """Advance one frame of the host loop and return the new paused flag.

    While paused the game is not ticked, so nothing changes between a
    terminal event and the player's answer.
    """
    if paused:
        return True

    action = RacerEnv.action_from_buttons(left, right)
    obs, reward, terminated, truncated, info = env.step(action)

    game_event = env.pop_event()
    if pause_for_prompt(env, game_event):
        print(f"{game_event}: score={info['score']}, lives={info['lives']}")
        return True
    return False


def main() -> None:
    args = parse_args()
    config = load_config(args)
    env = RacerEnv(config=config, render_mode="human", obs_mode="state", action_mode="discrete", seed=args.seed)
    env.reset()

    try:
        import pygame
    except ImportError as exc:
        raise RuntimeError("pygame is required to run the human demo") from exc
    env.render()

    paused = False
    running = True
    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN and paused:
                if event.key in (pygame.K_y, pygame.K_RETURN):
                    running = answer_prompt(env, True)
                    paused = False
                elif event.key in (pygame.K_n, pygame.K_ESCAPE):
                    running = answer_prompt(env, False)
        if not running:
            break

        keys = pygame.key.get_pressed()
        left = keys[pygame.K_LEFT] or keys[pygame.K_a]
        right = keys[pygame.K_RIGHT] or keys[pygame.K_d]
        paused = run_frame(env, paused, left, right)

        env.render()

    env.close()


if __name__ == "__main__":
    main()
