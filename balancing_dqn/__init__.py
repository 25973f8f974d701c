"""
Balancing Robot DQN.

Q-learning with experience replay and a target network that learns to
balance a simulated two-wheel inverted-pendulum robot. The network is a
hand-written two-layer NumPy model small enough for microcontrollers.

Components (组件)
=================
+--------------------+------------------------------------------------+
| Component          | Responsibility                                 |
+====================+================================================+
| Physics Engine     | Explicit-Euler inverted pendulum on wheels     |
+--------------------+------------------------------------------------+
| Q-Network          | 2-16 inputs → 4-256 ReLU → 3 linear outputs    |
+--------------------+------------------------------------------------+
| Replay Buffer      | Fixed-capacity ring, uniform sampling          |
+--------------------+------------------------------------------------+
| Q-Learning Agent   | ε-greedy, TD updates, periodic target sync     |
+--------------------+------------------------------------------------+
| Training Metrics   | Windowed averages, convergence latch           |
+--------------------+------------------------------------------------+

Module Structure (模块结构)
===========================
::

    balancing_dqn/
    ├── core/           Configuration and data structures
    │   ├── config.py   Hyperparameters, RobotConfig
    │   ├── enums.py    RewardType, InitMethod
    │   └── types.py    Experience, StepResult, Environment
    ├── physics/        Robot simulation
    │   ├── robot.py    BalancingRobot, RobotState
    │   ├── history.py  StateHistory
    │   └── gym_env.py  BalancingRobotEnv (gymnasium)
    ├── networks/       Function approximator
    │   ├── architecture.py  Limits and validation
    │   ├── layers.py   DenseLayer
    │   ├── q_network.py  QNetwork
    │   └── presets.py  Named hidden-layer sizes
    ├── buffers/        ReplayBuffer
    ├── agents/         QLearningAgent
    ├── utils/          Metrics, throughput, plotting
    └── main.py         Command-line interface

Quick Start (快速开始)
======================
>>> from balancing_dqn import BalancingRobot, QLearningAgent
>>>
>>> robot = BalancingRobot(reward_type="complex")
>>> agent = QLearningAgent(hidden_size=8, max_episodes=300)
>>> agent.initialize(input_size=robot.input_size)
>>> summary = agent.run_training(robot, early_stop=True)
>>> results = agent.evaluate(robot, num_episodes=10)
"""

# Core components
from balancing_dqn.core.config import Hyperparameters, RobotConfig
from balancing_dqn.core.enums import InitMethod, RewardType
from balancing_dqn.core.types import Environment, Experience, StepResult

# Physics
from balancing_dqn.physics.robot import (
    BalancingRobot,
    RobotState,
    create_default_robot,
    create_realistic_robot,
    create_training_robot,
)
from balancing_dqn.physics.history import StateHistory
from balancing_dqn.physics.gym_env import BalancingRobotEnv

# Networks
from balancing_dqn.networks.architecture import ArchitectureError, calculate_parameter_count
from balancing_dqn.networks.q_network import QNetwork

# Buffers
from balancing_dqn.buffers.replay import ReplayBuffer

# Agents
from balancing_dqn.agents.q_learning import (
    QLearningAgent,
    create_default_agent,
    create_fast_agent,
    create_optimal_agent,
)

# Utilities
from balancing_dqn.utils.metrics import TrainingMetrics
from balancing_dqn.utils.performance import PerformanceTracker

__version__ = "1.0.0"

__all__ = [
    # Core
    "Hyperparameters",
    "RobotConfig",
    "InitMethod",
    "RewardType",
    "Environment",
    "Experience",
    "StepResult",
    # Physics
    "BalancingRobot",
    "RobotState",
    "StateHistory",
    "BalancingRobotEnv",
    "create_default_robot",
    "create_realistic_robot",
    "create_training_robot",
    # Networks
    "ArchitectureError",
    "QNetwork",
    "calculate_parameter_count",
    # Buffers
    "ReplayBuffer",
    # Agents
    "QLearningAgent",
    "create_default_agent",
    "create_fast_agent",
    "create_optimal_agent",
    # Utilities
    "TrainingMetrics",
    "PerformanceTracker",
]
