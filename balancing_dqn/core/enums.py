"""
Enumerations for the Balancing Robot DQN.

Reward Functions (奖励函数)
==========================
+----------+------------------------------------------------+
| Type     | Reward                                         |
+==========+================================================+
| SIMPLE   | 1.0 upright, 0.0 on failure (CartPole-style)   |
+----------+------------------------------------------------+
| COMPLEX  | 1 - |θ|/θ_max upright, -10.0 on failure        |
+----------+------------------------------------------------+
"""

from enum import Enum


class RewardType(Enum):
    """
    Reward function used by the physics engine.

    Examples
    --------
    >>> RewardType("complex")
    <RewardType.COMPLEX: 'complex'>
    >>> str(RewardType.SIMPLE)
    'simple'
    """

    SIMPLE = "simple"
    """Sparse reward: 1.0 while balanced, 0.0 when fallen."""

    COMPLEX = "complex"
    """Dense reward proportional to uprightness, -10.0 when fallen."""

    def __str__(self) -> str:
        return self.value

    @property
    def failure_reward(self) -> float:
        """Reward returned for a transition into (or from) a failed state."""
        return 0.0 if self is RewardType.SIMPLE else -10.0


class InitMethod(Enum):
    """
    Weight initialization schemes for the Q-network.

    - **HE**: N(0, √(2/fan_in)), default for ReLU hidden layers
    - **XAVIER**: U(-L, L) with L = √(6/(fan_in + fan_out))
    """

    HE = "he"
    XAVIER = "xavier"

    def __str__(self) -> str:
        return self.value
