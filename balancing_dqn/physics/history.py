"""
Rolling history of robot states for multi-timestep network inputs.

Feeding the last T (angle, angular velocity) pairs lets a feed-forward
Q-network see short-term dynamics without recurrence. Input size is 2·T,
with T in [1, 8].
"""

from __future__ import annotations

import math
from collections import deque
from typing import Deque, Dict, List, Tuple

import numpy as np

from balancing_dqn.core.types import FloatArray

MIN_TIMESTEPS = 1
MAX_TIMESTEPS = 8


def _clamp_timesteps(timesteps: int, upper: int = MAX_TIMESTEPS) -> int:
    return max(MIN_TIMESTEPS, min(upper, int(timesteps)))


class StateHistory:
    """
    Most-recent-first buffer of (angle, angular_velocity) pairs.

    Parameters
    ----------
    timesteps : int, default=1
        Number of timesteps exposed by :meth:`get_normalized_inputs`
    max_timesteps : int, default=8
        Storage depth; clamped to [1, 8]

    Examples
    --------
    >>> history = StateHistory(timesteps=2)
    >>> history.add_state(0.1, 0.0)
    >>> history.get_normalized_inputs().shape
    (4,)
    """

    def __init__(self, timesteps: int = 1, max_timesteps: int = MAX_TIMESTEPS) -> None:
        self.max_timesteps = _clamp_timesteps(max_timesteps)
        self.current_timesteps = _clamp_timesteps(timesteps, self.max_timesteps)
        self._history: Deque[Tuple[float, float]] = deque(maxlen=self.max_timesteps)
        self.reset()

    @property
    def input_size(self) -> int:
        """Length of the normalized input vector (2 per timestep)."""
        return 2 * self.current_timesteps

    def reset(self) -> None:
        """Clear the history and pre-fill it with zero states."""
        self._history.clear()
        for _ in range(self.max_timesteps):
            self._history.append((0.0, 0.0))

    def set_timesteps(self, timesteps: int) -> None:
        """Change the number of exposed timesteps (clamped to the storage depth)."""
        self.current_timesteps = _clamp_timesteps(timesteps, self.max_timesteps)

    def add_state(self, angle: float, angular_velocity: float) -> None:
        """Push a new state to the front, dropping the oldest one."""
        self._history.appendleft((float(angle), float(angular_velocity)))

    def get_normalized_inputs(
        self,
        max_angle: float = math.pi / 3,
        max_angular_velocity: float = 10.0,
    ) -> FloatArray:
        """
        Flatten the exposed history into ``[θ₀, ω₀, θ₁, ω₁, ...]``.

        Each value is linearly scaled against its maximum and clamped to
        [-1, 1]. Index 0 is the most recent state.
        """
        pairs = list(self._history)[: self.current_timesteps]
        while len(pairs) < self.current_timesteps:
            pairs.append((0.0, 0.0))

        raw = np.array(pairs, dtype=np.float64)
        raw[:, 0] /= max_angle
        raw[:, 1] /= max_angular_velocity
        return np.clip(raw, -1.0, 1.0).astype(np.float32).reshape(-1)

    def get_history(self) -> List[Dict[str, float]]:
        """Exposed part of the history as dictionaries."""
        return [
            {"angle": angle, "angular_velocity": velocity}
            for angle, velocity in list(self._history)[: self.current_timesteps]
        ]

    def get_stats(self) -> Dict[str, float]:
        """Mean angle, mean angular velocity and angle spread of the exposed history."""
        pairs = np.array(list(self._history)[: self.current_timesteps], dtype=np.float64)
        angles = pairs[:, 0]
        velocities = pairs[:, 1]
        variance = float(np.var(angles))
        return {
            "current_timesteps": self.current_timesteps,
            "history_length": len(pairs),
            "average_angle": float(np.mean(angles)),
            "average_angular_velocity": float(np.mean(velocities)),
            "angle_variance": variance,
            "angle_std_dev": math.sqrt(variance),
        }
