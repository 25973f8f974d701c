"""
Configuration for the Balancing Robot DQN.

This module provides centralized hyperparameter and robot parameter
management with warn-and-clamp validation.

Core Idea (核心思想)
====================
使用dataclass集中管理所有超参数与物理参数，通过__post_init__进行验证。
与常见的"越界即报错"不同，这里采用"警告并截断"策略：越界值被截断到
合法区间，非数值输入被替换为默认值，并记录警告日志，从不中断训练会话。

Hyperparameter Categories (超参数分类)
======================================
1. **Learning**: learning_rate, gamma
2. **Exploration**: epsilon, epsilon_min, epsilon_decay (linear, in steps)
3. **Training**: batch_size, target_update_freq, max_episodes,
   max_steps_per_episode, replay_buffer_size
4. **Convergence**: convergence_window, convergence_threshold
5. **Architecture**: hidden_size

Example:
    >>> params = Hyperparameters(learning_rate=5.0)   # logs a warning
    >>> params.learning_rate
    0.1
"""

from __future__ import annotations

import json
import logging
import math
import numbers
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from balancing_dqn.core.enums import RewardType

logger = logging.getLogger(__name__)


# field -> (default, min, max, integer)
ParameterRange = Tuple[float, float, float, bool]


def validate_parameter(
    value: Any,
    default: float,
    min_value: float,
    max_value: float,
    name: str,
    integer: bool = False,
) -> Union[int, float]:
    """
    Validate a numeric parameter, clamping instead of rejecting.

    Parameters
    ----------
    value : Any
        Candidate value. ``None`` selects the default silently.
    default : float
        Replacement for missing, non-numeric or NaN input
    min_value, max_value : float
        Inclusive valid range
    name : str
        Parameter name used in warnings
    integer : bool, default=False
        Round the result to ``int``

    Returns
    -------
    Union[int, float]
        The validated value

    Examples
    --------
    >>> validate_parameter(20.0, 1.0, 0.5, 3.0, "mass")
    3.0
    >>> validate_parameter("heavy", 1.0, 0.5, 3.0, "mass")
    1.0
    """
    if value is None:
        result = default
    elif (
        isinstance(value, bool)
        or not isinstance(value, numbers.Real)
        or math.isnan(value)
    ):
        logger.warning(f"Invalid {name}: {value!r}, using default: {default}")
        result = default
    elif value < min_value or value > max_value:
        logger.warning(
            f"{name} out of range [{min_value}, {max_value}]: {value}, clamping"
        )
        result = max(min_value, min(max_value, value))
    else:
        result = value

    if integer:
        return int(round(result))
    return float(result)


def _to_camel(name: str) -> str:
    head, *tail = name.split("_")
    return head + "".join(part.title() for part in tail)


class _ValidatedConfig:
    """Shared warn-and-clamp plumbing for the config dataclasses."""

    RANGES: Dict[str, ParameterRange] = {}

    def _validate_ranges(self, fallback: Optional[Mapping[str, Any]] = None) -> None:
        for name, (default, lo, hi, integer) in self.RANGES.items():
            if fallback is not None:
                default = fallback[name]
            value = validate_parameter(
                getattr(self, name), default, lo, hi, _to_camel(name), integer
            )
            object.__setattr__(self, name, value)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary keyed by camelCase names."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, RewardType):
                value = value.value
            data[_to_camel(f.name)] = value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        """
        Create a configuration from a dictionary.

        Accepts both camelCase and snake_case keys; unknown keys are ignored.
        """
        kwargs = {}
        for f in fields(cls):
            if f.name in data:
                kwargs[f.name] = data[f.name]
            elif _to_camel(f.name) in data:
                kwargs[f.name] = data[_to_camel(f.name)]
        return cls(**kwargs)

    def to_json(self, path: Union[str, Path]) -> None:
        """Save configuration to a JSON file."""
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_json(cls, path: Union[str, Path]):
        """Load configuration from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))


@dataclass
class Hyperparameters(_ValidatedConfig):
    """
    Hyperparameters for the Q-learning controller.

    Mathematical Foundation (数学基础)
    ----------------------------------
    - **γ (gamma)**: discount in the TD target y = r + γ max_a' Q⁻(s', a')
    - **α (learning_rate)**: step size of the manual weight update
    - **ε schedule**: linear from the initial ε to ε_min over
      ``epsilon_decay`` training steps

      ε_t = ε_0 + (ε_min - ε_0) · min(1, t / epsilon_decay)

    Attributes
    ----------
    learning_rate : float, default=0.001
        Range [0.0001, 0.1]
    gamma : float, default=0.95
        Range [0.5, 0.999]
    epsilon : float, default=0.1
        Current exploration rate, range [0, 1]
    epsilon_min : float, default=0.01
        Final exploration rate, range [0, 0.1]
    epsilon_decay : int, default=2500
        Steps to decay ε to ε_min, range [1, 100000]
    batch_size : int, default=32
        Sequential updates per training call, range [1, 512]
    target_update_freq : int, default=100
        Training steps between target syncs, range [1, 10000]
    max_episodes : int, default=1000
        Range [1, 1000000]
    max_steps_per_episode : int, default=500
        Range [10, 5000]
    convergence_window : int, default=100
        Range [1, 1000]
    convergence_threshold : float, default=200.0
        Range [0, 100000]
    hidden_size : int, default=8
        Range [4, 256]
    replay_buffer_size : int, default=10000
        Range [1, 1000000]

    Notes
    -----
    Validation never raises: out-of-range values are clamped and
    non-numeric values replaced by the default, each with a logged warning.
    """

    learning_rate: float = 0.001
    gamma: float = 0.95

    epsilon: float = 0.1
    epsilon_min: float = 0.01
    epsilon_decay: int = 2500

    batch_size: int = 32
    target_update_freq: int = 100
    max_episodes: int = 1000
    max_steps_per_episode: int = 500

    convergence_window: int = 100
    convergence_threshold: float = 200.0

    hidden_size: int = 8
    replay_buffer_size: int = 10000

    RANGES = {
        "learning_rate": (0.001, 0.0001, 0.1, False),
        "gamma": (0.95, 0.5, 0.999, False),
        "epsilon": (0.1, 0.0, 1.0, False),
        "epsilon_min": (0.01, 0.0, 0.1, False),
        "epsilon_decay": (2500, 1, 100000, True),
        "batch_size": (32, 1, 512, True),
        "target_update_freq": (100, 1, 10000, True),
        "max_episodes": (1000, 1, 1000000, True),
        "max_steps_per_episode": (500, 10, 5000, True),
        "convergence_window": (100, 1, 1000, True),
        "convergence_threshold": (200.0, 0.0, 100000.0, False),
        "hidden_size": (8, 4, 256, True),
        "replay_buffer_size": (10000, 1, 1000000, True),
    }

    def __post_init__(self) -> None:
        self._validate_ranges()

    def clone(self) -> "Hyperparameters":
        """Return an independent copy."""
        return Hyperparameters.from_dict(self.to_dict())


@dataclass
class RobotConfig(_ValidatedConfig):
    """
    Physical parameters of the two-wheel balancing robot.

    Attributes
    ----------
    mass : float, default=1.0
        Body mass in kg, range [0.5, 3.0]
    center_of_mass_height : float, default=0.4
        Height of the center of mass in m, range [0.2, 1.0]
    motor_strength : float, default=5.0
        Maximum motor torque in N·m, range [2, 10]
    friction : float, default=0.02
        Ground friction coefficient, range [0, 1]
    damping : float, default=0.01
        Angular damping coefficient, range [0, 1]
    timestep : float, default=0.02
        Integration step in s (50 Hz), range [0.001, 0.1]
    wheel_radius : float, default=0.12
        Wheel radius in m, range [0.02, 0.20]
    wheel_mass : float, default=0.2
        Wheel mass in kg, range [0.1, 1.0]
    wheel_friction : float, default=0.3
        Wheel friction coefficient, range [0, 1]
    reward_type : RewardType, default=SIMPLE
        Reward function; unknown values fall back to SIMPLE

    Examples
    --------
    >>> config = RobotConfig(mass=1.5, reward_type="complex")
    >>> config.reward_type
    <RewardType.COMPLEX: 'complex'>
    """

    mass: float = 1.0
    center_of_mass_height: float = 0.4
    motor_strength: float = 5.0
    friction: float = 0.02
    damping: float = 0.01
    timestep: float = 0.02
    wheel_radius: float = 0.12
    wheel_mass: float = 0.2
    wheel_friction: float = 0.3
    reward_type: RewardType = RewardType.SIMPLE

    RANGES = {
        "mass": (1.0, 0.5, 3.0, False),
        "center_of_mass_height": (0.4, 0.2, 1.0, False),
        "motor_strength": (5.0, 2.0, 10.0, False),
        "friction": (0.02, 0.0, 1.0, False),
        "damping": (0.01, 0.0, 1.0, False),
        "timestep": (0.02, 0.001, 0.1, False),
        "wheel_radius": (0.12, 0.02, 0.20, False),
        "wheel_mass": (0.2, 0.1, 1.0, False),
        "wheel_friction": (0.3, 0.0, 1.0, False),
    }

    def __post_init__(self) -> None:
        self._validate_ranges()
        self.reward_type = parse_reward_type(self.reward_type, RewardType.SIMPLE)

    @property
    def moment_of_inertia(self) -> float:
        """Point-mass pendulum inertia I = m·h²."""
        return self.mass * self.center_of_mass_height ** 2

    @property
    def wheel_inertia(self) -> float:
        """Solid-cylinder wheel inertia I_w = ½·m_w·r²."""
        return 0.5 * self.wheel_mass * self.wheel_radius ** 2

    def updated(self, **changes: Any) -> "RobotConfig":
        """
        Return a copy with ``changes`` applied.

        Invalid values fall back to the current value rather than the
        default; unknown names are ignored with a warning.
        """
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        merged = dict(current)
        for name, value in changes.items():
            if name not in current:
                logger.warning(f"Unknown robot parameter: {name}, ignoring")
                continue
            merged[name] = value

        new = RobotConfig.__new__(RobotConfig)
        for name, value in merged.items():
            object.__setattr__(new, name, value)
        new._validate_ranges(fallback=current)
        new.reward_type = parse_reward_type(merged["reward_type"], self.reward_type)
        return new


def parse_reward_type(value: Any, default: RewardType) -> RewardType:
    """Coerce ``value`` to a RewardType, warning and falling back on failure."""
    if isinstance(value, RewardType):
        return value
    try:
        return RewardType(value)
    except ValueError:
        logger.warning(
            f"Invalid reward type: {value!r}. Use 'simple' or 'complex'; "
            f"using {default.value}"
        )
        return default
