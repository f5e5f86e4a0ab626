#!/usr/bin/env python3
"""
Headless rollouts for the racing game.

Plays episodes with a scripted policy and reports per-episode results,
optionally logging them to CSV.
"""

from __future__ import annotations

import argparse
import csv
import os
import random
import sys
from typing import Callable, Dict, List, Optional

import numpy as np

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from racer_sim import RaceConfig, RacerEnv, RacerGymEnv  # noqa: E402

LOG_FIELDS = ("episode", "seed", "steps", "score", "lives", "result")


def idle_policy(env: RacerEnv, rng: random.Random) -> int:
    return 0


def random_policy(env: RacerEnv, rng: random.Random) -> int:
    return rng.randrange(4)


def dodge_policy(env: RacerEnv, rng: random.Random) -> int:
    """Steer away from the closest obstacle sharing the car's column."""
    left = env.player_x
    right = env.player_x + env.player_width
    threats = [
        obs for obs in env.obstacles
        if obs.y < env.player_y + env.player_height and obs.x < right and left < obs.x + obs.width
    ]
    if not threats:
        return 0
    threat = max(threats, key=lambda obs: obs.y)

    room_left = threat.x - env.road_left
    room_right = env.road_right - (threat.x + threat.width)
    if room_left >= env.player_width and (room_left >= room_right or room_right < env.player_width):
        return 1
    return 2


POLICIES: Dict[str, Callable[[RacerEnv, random.Random], int]] = {
    "idle": idle_policy,
    "random": random_policy,
    "dodge": dodge_policy,
}


class RolloutLogger:
    """Writes one CSV row per episode."""

    def __init__(self, path: str):
        self.path = path
        base_dir = os.path.dirname(path)
        if base_dir:
            os.makedirs(base_dir, exist_ok=True)
        with open(self.path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(LOG_FIELDS)

    def log(self, **kwargs):
        with open(self.path, "a", newline="") as f:
            writer = csv.writer(f)
            writer.writerow([kwargs.get(k, "") for k in LOG_FIELDS])


def run_episode(
    env: RacerGymEnv,
    policy: Callable[[RacerEnv, random.Random], int],
    seed: int,
    max_steps: int,
) -> Dict[str, object]:
    rng = random.Random(seed)
    obs, info = env.reset(seed=seed)
    steps = 0
    result = "timeout"
    while steps < max_steps:
        action = policy(env.game, rng)
        obs, reward, terminated, truncated, info = env.step(action)
        steps += 1
        if env.render_mode == "human":
            env.render()
        if terminated or truncated:
            result = info["game_mode"]
            break
    return {
        "seed": seed,
        "steps": steps,
        "score": info["score"],
        "lives": info["lives"],
        "result": result,
    }


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run scripted rollouts of the racing game")
    parser.add_argument("--policy", type=str, default="dodge", choices=sorted(POLICIES))
    parser.add_argument("--episodes", type=int, default=5)
    parser.add_argument("--max-episode-steps", type=int, default=20_000)
    parser.add_argument("--seed", type=int, default=None, help="Random seed (None = random each episode)")
    parser.add_argument(
        "--config",
        type=str,
        default="",
        help="Path to config YAML file, relative to the working directory (default: configs/default.yaml if present)",
    )
    parser.add_argument("--log", type=str, default="", help="Write per-episode results to this CSV file")
    parser.add_argument("--render-live", action="store_true", help="Show game window during rollouts")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> List[Dict[str, object]]:
    args = parse_args(argv)
    if args.episodes < 1:
        raise ValueError("--episodes must be >= 1")

    config = RaceConfig.load(args.config)
    env = RacerGymEnv(
        render_mode="human" if args.render_live else None,
        obs_mode="state",
        action_mode="discrete",
        config=config,
        seed=args.seed,
    )
    policy = POLICIES[args.policy]
    logger = RolloutLogger(args.log) if args.log else None

    results = []
    for episode in range(1, args.episodes + 1):
        if args.seed is None:
            episode_seed = random.randint(0, 1_000_000)
        else:
            episode_seed = args.seed + episode - 1

        stats = run_episode(env, policy, episode_seed, args.max_episode_steps)
        stats["episode"] = episode
        results.append(stats)
        if logger:
            logger.log(**stats)

        print(f"Episode {episode} (seed={episode_seed}): steps={stats['steps']}, "
              f"score={stats['score']}, lives={stats['lives']}, result={stats['result']}")

    env.close()

    scores = np.array([r["score"] for r in results], dtype=np.float64)
    steps = np.array([r["steps"] for r in results], dtype=np.float64)
    wins = sum(1 for r in results if r["result"] == "won")

    print("-" * 60)
    print(f"Summary ({len(results)} episodes, policy={args.policy}):")
    print(f"  Mean score: {scores.mean():.0f}")
    print(f"  Mean steps: {steps.mean():.0f}")
    print(f"  Wins:       {wins}/{len(results)}")
    if logger:
        print(f"  Log saved:  {logger.path}")

    return results


if __name__ == "__main__":
    main()
