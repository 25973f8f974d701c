"""
Uniform Experience Replay Buffer.

Core Idea (核心思想)
====================
经验回放通过存储和随机采样历史交互数据，打破样本间的时序相关性。
这里使用固定容量的环形数组和写指针：缓冲区满后，新经验覆盖最旧的槽位。

Mathematical Foundation (数学基础)
==================================
Uniform sampling probability:
    P(i) = 1/|D|, ∀i ∈ D

Complexity Analysis (复杂度分析)
================================
+------------+------------+----------------------------------+
| Operation  | Complexity | Notes                            |
+============+============+==================================+
| add()      | O(d)       | d = state length (float32 copy)  |
+------------+------------+----------------------------------+
| sample()   | O(B)       | B = batch_size                   |
+------------+------------+----------------------------------+
| size()     | O(1)       |                                  |
+------------+------------+----------------------------------+
"""

from __future__ import annotations

import random
from typing import List, Optional

import numpy as np

from balancing_dqn.core.types import Experience, FloatArray


class ReplayBuffer:
    """
    Fixed-capacity ring buffer of transitions with uniform sampling.

    Parameters
    ----------
    max_size : int, default=10000
        Maximum number of transitions. When full, the oldest slot is
        overwritten (FIFO).
    rng : Optional[random.Random]
        Random source for sampling

    Raises
    ------
    ValueError
        If ``max_size <= 0``

    Examples
    --------
    >>> buffer = ReplayBuffer(max_size=100)
    >>> state = np.array([0.1, -0.2])
    >>> buffer.add(state, 2, 1.0, state, False)
    >>> len(buffer)
    1
    >>> buffer.sample(8)[0].action
    2
    """

    __slots__ = ("max_size", "_buffer", "_position", "_rng")

    def __init__(self, max_size: int = 10000, rng: Optional[random.Random] = None) -> None:
        if int(max_size) <= 0:
            raise ValueError(f"max_size must be a positive integer, got {max_size!r}")
        self.max_size = int(max_size)
        self._buffer: List[Experience] = []
        self._position = 0
        self._rng = rng if rng is not None else random.Random()

    def __len__(self) -> int:
        return len(self._buffer)

    def size(self) -> int:
        """Number of stored transitions."""
        return len(self._buffer)

    def add(
        self,
        state: FloatArray,
        action: int,
        reward: float,
        next_state: FloatArray,
        done: bool,
    ) -> None:
        """
        Store a transition as float32 copies.

        Raises
        ------
        ValueError
            If ``state`` and ``next_state`` differ in length
        """
        state = np.array(state, dtype=np.float32).reshape(-1)
        next_state = np.array(next_state, dtype=np.float32).reshape(-1)
        if state.shape != next_state.shape:
            raise ValueError(
                f"State length mismatch: state has {state.shape[0]} values, "
                f"next_state has {next_state.shape[0]}"
            )

        experience = Experience(state, int(action), float(reward), next_state, bool(done))
        if len(self._buffer) < self.max_size:
            self._buffer.append(experience)
        else:
            self._buffer[self._position] = experience
        self._position = (self._position + 1) % self.max_size

    def sample(self, batch_size: int) -> List[Experience]:
        """
        Sample distinct transitions uniformly at random.

        Returns every stored transition when fewer than ``batch_size``
        are available.
        """
        if len(self._buffer) < batch_size:
            return list(self._buffer)
        return self._rng.sample(self._buffer, batch_size)

    def is_ready(self, min_size: int) -> bool:
        return len(self._buffer) >= min_size

    def clear(self) -> None:
        self._buffer.clear()
        self._position = 0
