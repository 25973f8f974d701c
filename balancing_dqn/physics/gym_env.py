"""
Gymnasium adapter for the balancing robot.

Wraps :class:`BalancingRobot` as a ``gymnasium.Env`` so the simulator can
be driven by standard RL tooling (wrappers, vector envs, env checkers).

Spaces
------
- action: ``Discrete(3)`` mapped to torques (-1, 0, +1) N·m
- observation: ``Box(-1, 1, (2·timesteps,), float32)``, the robot's
  normalized state history
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from balancing_dqn.core.config import RobotConfig
from balancing_dqn.physics.robot import BalancingRobot

ACTION_TORQUES = (-1.0, 0.0, 1.0)


class BalancingRobotEnv(gym.Env):
    """
    Balancing robot as a Gymnasium environment.

    Parameters
    ----------
    config : Optional[RobotConfig]
        Physical parameters of the simulated robot
    timesteps : int, default=1
        History depth of the observation
    max_steps : int, default=500
        Episode length after which ``truncated`` is set
    initial_angle_range : float, default=0.05
        Half-width (rad) of the uniform initial angle perturbation

    Examples
    --------
    >>> env = BalancingRobotEnv(timesteps=2)
    >>> obs, info = env.reset(seed=0)
    >>> obs.shape
    (4,)
    """

    metadata = {"render_modes": []}

    def __init__(
        self,
        config: Optional[RobotConfig] = None,
        timesteps: int = 1,
        max_steps: int = 500,
        initial_angle_range: float = 0.05,
    ) -> None:
        super().__init__()
        self.robot = BalancingRobot(config, timesteps=timesteps)
        self.max_steps = max_steps
        self.initial_angle_range = initial_angle_range
        self._steps = 0

        self.action_space = spaces.Discrete(len(ACTION_TORQUES))
        self.observation_space = spaces.Box(
            low=-1.0, high=1.0, shape=(self.robot.input_size,), dtype=np.float32
        )

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        super().reset(seed=seed)
        options = options or {}

        if "angle" in options:
            angle = float(options["angle"])
        else:
            angle = float(
                self.np_random.uniform(-self.initial_angle_range, self.initial_angle_range)
            )

        self.robot.reset({"angle": angle})
        self._steps = 0
        return self.robot.get_normalized_inputs(), self._info()

    def step(
        self, action: int
    ) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        if not self.action_space.contains(action):
            raise ValueError(f"Invalid action: {action}")

        _, reward, done = self.robot.step(ACTION_TORQUES[int(action)])
        self._steps += 1

        terminated = bool(done) or not self.robot.is_stable()
        truncated = not terminated and self._steps >= self.max_steps
        return (
            self.robot.get_normalized_inputs(),
            float(reward),
            terminated,
            truncated,
            self._info(),
        )

    def _info(self) -> Dict[str, Any]:
        info: Dict[str, Any] = self.robot.get_state().to_dict()
        info["steps"] = self._steps
        return info
