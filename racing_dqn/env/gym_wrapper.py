# Gymnasium adapter

from typing import Any, Dict, Optional, Tuple

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from .racing_env import RacingEnv


class GymWrapper(gym.Env):
    """Expose RacingEnv through the Gymnasium API.

    Stuck and finished episodes are reported as terminated, the step limit
    as truncated.
    """

    metadata = {"render_modes": []}

    def __init__(self, env: RacingEnv):
        super().__init__()
        self.env = env
        self.observation_space = spaces.Box(
            low=-1.0,
            high=1.0,
            shape=(env.observation_dim,),
            dtype=np.float32,
        )
        self.action_space = spaces.Discrete(env.num_actions)

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        super().reset(seed=seed)
        obs = self.env.reset()
        return obs, {}

    def step(self, action) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        obs, reward, done, info = self.env.step(int(action))
        truncated = bool(info["truncated"])
        terminated = bool(done and not truncated)
        return obs, reward, terminated, truncated, info

    def close(self) -> None:
        pass
