"""
Type Definitions for the Balancing Robot DQN.

Core Idea (核心思想)
====================
使用NamedTuple表示不可变的transition与单步仿真结果，使用Protocol描述
控制器所需的环境接口，使物理引擎与其他实现可以互换。

Mathematical Definition (数学定义)
==================================
An experience is a single MDP step:

    e_t = (s_t, a_t, r_t, s_{t+1}, d_t)

where s_t is the normalized sensor vector, a_t ∈ {0, 1, 2} indexes the
discrete torque set {left, brake, right}, and d_t marks a terminal step.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, NamedTuple, Optional, Protocol

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from balancing_dqn.physics.robot import RobotState


# Type Aliases
FloatArray = NDArray[np.floating[Any]]
"""Float-valued NumPy array for states, weights, Q-values."""


class Experience(NamedTuple):
    """
    Single transition stored in the replay buffer.

    Attributes
    ----------
    state : FloatArray
        Normalized observation s_t, shape (input_size,)
    action : int
        Discrete action index a_t ∈ {0, 1, 2}
    reward : float
        Immediate reward r_t
    next_state : FloatArray
        Normalized observation s_{t+1}, shape (input_size,)
    done : bool
        Episode termination flag

    Examples
    --------
    >>> state = np.zeros(2, dtype=np.float32)
    >>> Experience(state, 1, 1.0, state, False).action
    1
    """
    state: FloatArray
    action: int
    reward: float
    next_state: FloatArray
    done: bool


class StepResult(NamedTuple):
    """Outcome of one physics step: snapshot, scalar reward, terminal flag."""
    state: "RobotState"
    reward: float
    done: bool


class Environment(Protocol):
    """
    Interface the Q-learning controller drives.

    Implemented by :class:`balancing_dqn.physics.robot.BalancingRobot`.
    """

    def reset(self, initial_state: Optional[Mapping[str, float]] = None) -> None:
        ...

    def step(self, motor_torque: float) -> StepResult:
        ...

    def get_normalized_inputs(self) -> FloatArray:
        ...

    def is_stable(self) -> bool:
        ...
