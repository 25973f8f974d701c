"""
Core Module - Configuration and Data Structures.

This module provides foundational components shared by every layer:
    - Hyperparameters: Q-learning hyperparameters with warn-and-clamp validation
    - RobotConfig: Physical robot parameters with the same validation policy
    - RewardType, InitMethod: Enumerations
    - Experience, StepResult: Immutable transition records
    - Environment: Protocol the controller drives

Example:
    >>> from balancing_dqn.core import Hyperparameters, RobotConfig
    >>> params = Hyperparameters(hidden_size=12)
    >>> robot_config = RobotConfig(reward_type="complex")
"""

from balancing_dqn.core.config import (
    Hyperparameters,
    RobotConfig,
    parse_reward_type,
    validate_parameter,
)
from balancing_dqn.core.enums import InitMethod, RewardType
from balancing_dqn.core.types import Environment, Experience, FloatArray, StepResult

__all__ = [
    "Hyperparameters",
    "RobotConfig",
    "parse_reward_type",
    "validate_parameter",
    "InitMethod",
    "RewardType",
    "Environment",
    "Experience",
    "FloatArray",
    "StepResult",
]
