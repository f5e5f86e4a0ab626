from __future__ import annotations

import argparse
import contextlib
import io
import os
import sys
import tempfile
import unittest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from racer_sim import Obstacle, RaceConfig, RacerEnv  # noqa: E402
from racer_sim import run_human  # noqa: E402


class TestPlayAgainPrompt(unittest.TestCase):
    def setUp(self) -> None:
        self.env = RacerEnv(config=RaceConfig(starting_lives=1, spawn_chance=0.0), seed=0)
        self.env.obstacles = []

    def crash(self) -> None:
        self.env.obstacles.append(Obstacle(x=250, y=480, width=50, height=50))
        self.env.step(0)

    def test_no_event_keeps_ticking(self) -> None:
        self.env.step(0)
        self.assertFalse(run_human.pause_for_prompt(self.env, self.env.pop_event()))
        self.assertIsNone(self.env.prompt_text)

    def test_game_over_pauses_with_prompt(self) -> None:
        self.crash()
        self.assertTrue(run_human.pause_for_prompt(self.env, self.env.pop_event()))
        self.assertEqual(self.env.prompt_text, run_human.PROMPTS["game_over"])

    def test_win_pauses_with_prompt(self) -> None:
        self.env.score = 999
        self.env.step(0)
        self.assertTrue(run_human.pause_for_prompt(self.env, self.env.pop_event()))
        self.assertEqual(self.env.prompt_text, run_human.PROMPTS["win"])

    def test_restart_performs_full_reset(self) -> None:
        self.env.obstacle_speed = 11
        self.crash()
        run_human.pause_for_prompt(self.env, self.env.pop_event())

        self.assertTrue(run_human.answer_prompt(self.env, True))
        self.assertEqual(self.env.game_mode, "racing")
        self.assertEqual(self.env.lives, 1)
        self.assertEqual(self.env.obstacle_speed, 5)
        self.assertIsNone(self.env.prompt_text)

    def test_quit_leaves_state_alone(self) -> None:
        self.crash()
        self.assertFalse(run_human.answer_prompt(self.env, False))
        self.assertTrue(self.env.race_over)


class TestHostLoopPause(unittest.TestCase):
    def setUp(self) -> None:
        self.env = RacerEnv(config=RaceConfig(starting_lives=1, spawn_chance=0.0), seed=0)
        self.env.obstacles = []

    def snapshot(self):
        return (
            self.env.score,
            self.env.lives,
            self.env.game_mode,
            self.env.player_x,
            self.env.pending_event,
            [(obs.x, obs.y) for obs in self.env.obstacles],
        )

    def test_racing_frame_ticks(self) -> None:
        paused = run_human.run_frame(self.env, False, False, True)
        self.assertFalse(paused)
        self.assertEqual(self.env.score, 1)
        self.assertEqual(self.env.player_x, 265.0)

    def test_terminal_event_pauses_until_answer(self) -> None:
        self.env.obstacles = [
            Obstacle(x=250, y=480, width=50, height=50),
            Obstacle(x=160, y=100, width=40, height=50),
        ]
        with contextlib.redirect_stdout(io.StringIO()):
            paused = run_human.run_frame(self.env, False, False, False)
        self.assertTrue(paused)
        self.assertTrue(self.env.race_over)
        self.assertEqual(self.env.prompt_text, run_human.PROMPTS["game_over"])

        frozen = self.snapshot()
        for left, right in ((True, False), (False, True), (True, True), (False, False)):
            paused = run_human.run_frame(self.env, paused, left, right)
            self.assertTrue(paused)
            self.assertEqual(self.snapshot(), frozen)

        self.assertTrue(run_human.answer_prompt(self.env, True))
        paused = False
        self.assertEqual(self.env.score, 0)
        self.assertIsNone(self.env.prompt_text)

        self.env.obstacles = []
        paused = run_human.run_frame(self.env, paused, False, False)
        self.assertFalse(paused)
        self.assertEqual(self.env.game_mode, "racing")
        self.assertEqual(self.env.score, 1)
        self.assertEqual(self.env.lives, 1)

    def test_win_pauses_ticking(self) -> None:
        self.env.score = 999
        with contextlib.redirect_stdout(io.StringIO()):
            paused = run_human.run_frame(self.env, False, False, False)
        self.assertTrue(paused)
        self.assertEqual(self.env.prompt_text, run_human.PROMPTS["win"])
        self.assertIsNone(self.env.pending_event)

        run_human.run_frame(self.env, paused, True, False)
        self.assertEqual(self.env.score, 1000)
        self.assertEqual(self.env.player_x, 250.0)


class TestLoadConfig(unittest.TestCase):
    def setUp(self) -> None:
        self.cwd = os.getcwd()
        self.tmp = tempfile.TemporaryDirectory()
        os.chdir(self.tmp.name)

    def tearDown(self) -> None:
        os.chdir(self.cwd)
        self.tmp.cleanup()

    def write(self, relpath: str, text: str) -> None:
        path = os.path.join(self.tmp.name, relpath)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            f.write(text)

    def test_defaults_without_config_file(self) -> None:
        args = run_human.parse_args([])
        self.assertEqual(run_human.load_config(args), RaceConfig())

    def test_default_file_in_working_directory(self) -> None:
        self.write(os.path.join("configs", "default.yaml"), "starting_lives: 4\n")
        args = run_human.parse_args([])
        self.assertEqual(run_human.load_config(args).starting_lives, 4)

    def test_fps_override(self) -> None:
        args = argparse.Namespace(config="", seed=None, fps=30)
        config = run_human.load_config(args)
        self.assertEqual(config.fps, 30)

    def test_relative_config_path(self) -> None:
        self.write(os.path.join("my", "race.yaml"), "finish_score: 400\n")
        args = run_human.parse_args(["--config", os.path.join("my", "race.yaml")])
        self.assertEqual(run_human.load_config(args).finish_score, 400)


if __name__ == "__main__":
    unittest.main()
