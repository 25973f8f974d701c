"""
Agents Module - Q-Learning Controller.

Components:
    - QLearningAgent: DQN with replay, target network and manual updates
    - Factory presets: default, fast, optimal
"""

from balancing_dqn.agents.q_learning import (
    MODEL_FORMAT_VERSION,
    QLearningAgent,
    create_default_agent,
    create_fast_agent,
    create_optimal_agent,
    huber_loss,
)

__all__ = [
    "MODEL_FORMAT_VERSION",
    "QLearningAgent",
    "create_default_agent",
    "create_fast_agent",
    "create_optimal_agent",
    "huber_loss",
]
