"""
Physics Module - Balancing Robot Simulation.

Components:
    - BalancingRobot: Inverted-pendulum-on-wheels simulator (explicit Euler)
    - RobotState: Mutable state snapshot with failure check
    - StateHistory: Multi-timestep input buffer
    - BalancingRobotEnv: Gymnasium adapter
"""

from balancing_dqn.physics.gym_env import ACTION_TORQUES, BalancingRobotEnv
from balancing_dqn.physics.history import StateHistory
from balancing_dqn.physics.robot import (
    FAILURE_ANGLE,
    BalancingRobot,
    RobotState,
    create_default_robot,
    create_realistic_robot,
    create_training_robot,
    normalize_angle,
)

__all__ = [
    "ACTION_TORQUES",
    "BalancingRobotEnv",
    "StateHistory",
    "FAILURE_ANGLE",
    "BalancingRobot",
    "RobotState",
    "create_default_robot",
    "create_realistic_robot",
    "create_training_robot",
    "normalize_angle",
]
