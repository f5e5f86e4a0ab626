from .env import Obstacle, RaceConfig, RacerEnv
from .gym_env import RacerGymEnv

__all__ = ["Obstacle", "RaceConfig", "RacerEnv", "RacerGymEnv"]
