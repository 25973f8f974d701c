"""
Two-Wheel Balancing Robot Physics.

This module simulates the robot as an inverted pendulum on wheels.

Core Idea (核心思想)
====================
将机器人建模为轮式倒立摆：电机扭矩作用于车轮，其反作用力矩作用于摆体。
采用固定步长的显式欧拉积分（默认20ms / 50Hz），每一步返回新状态、
标量奖励和终止标志。倒下是正常的终止状态，而不是异常。

Mathematical Foundation (数学基础)
==================================
Pendulum (angle θ, angular velocity ω):

    τ_gravity = m·g·h·sin θ
    τ_damping = -c·ω
    α = (-τ_motor + τ_gravity + τ_damping) / I,    I = m·h²

Horizontal motion (simplified force balance):

    F = τ_motor / r - μ·v·m·g
    a = F / m

Euler update with timestep Δt:

    ω ← ω + α·Δt,   θ ← θ + ω·Δt
    v ← v + a·Δt,   x ← x + v·Δt
    φ_wheel ← φ_wheel + v·Δt / r       (rolling without slip)

θ is renormalized into (-π, π] after every step.
"""

from __future__ import annotations

import logging
import math
from dataclasses import astuple, dataclass, fields
from typing import Any, Dict, Mapping, Optional, Union

import numpy as np

from balancing_dqn.core.config import RobotConfig, parse_reward_type
from balancing_dqn.core.enums import RewardType
from balancing_dqn.core.types import FloatArray, StepResult
from balancing_dqn.physics.history import StateHistory

logger = logging.getLogger(__name__)

GRAVITY = 9.81
FAILURE_ANGLE = math.pi / 3
MAX_ANGULAR_VELOCITY = 10.0
TWO_PI = 2.0 * math.pi


def normalize_angle(angle: float) -> float:
    """
    Wrap ``angle`` into (-π, π].

    Non-finite input is returned unchanged so that numerical blow-up stays
    visible to :meth:`BalancingRobot.is_stable`.

    Examples
    --------
    >>> normalize_angle(-math.pi) == math.pi
    True
    """
    if not math.isfinite(angle):
        return angle
    return angle - TWO_PI * math.ceil((angle - math.pi) / TWO_PI)


@dataclass
class RobotState:
    """
    Complete state of the balancing robot.

    Attributes
    ----------
    angle : float
        Tilt in rad, 0 = upright, positive = tilting forward
    angular_velocity : float
        rad/s
    position : float
        Horizontal position in m
    velocity : float
        Horizontal velocity in m/s
    wheel_angle : float
        Wheel rotation in rad
    wheel_velocity : float
        Wheel angular velocity in rad/s
    """

    angle: float = 0.0
    angular_velocity: float = 0.0
    position: float = 0.0
    velocity: float = 0.0
    wheel_angle: float = 0.0
    wheel_velocity: float = 0.0

    def clone(self) -> "RobotState":
        return RobotState(*astuple(self))

    def has_failed(self) -> bool:
        """True once the robot has tilted past 60 degrees."""
        return abs(self.angle) > FAILURE_ANGLE

    def get_normalized_inputs(
        self,
        max_angle: float = FAILURE_ANGLE,
        max_angular_velocity: float = MAX_ANGULAR_VELOCITY,
    ) -> FloatArray:
        """Single-timestep network input ``[θ/θ_max, ω/ω_max]`` clamped to [-1, 1]."""
        raw = np.array(
            [self.angle / max_angle, self.angular_velocity / max_angular_velocity],
            dtype=np.float64,
        )
        return np.clip(raw, -1.0, 1.0).astype(np.float32)

    def is_finite(self) -> bool:
        return all(math.isfinite(value) for value in astuple(self))

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class BalancingRobot:
    """
    Inverted-pendulum simulation of a two-wheel balancing robot.

    Parameters
    ----------
    config : Optional[RobotConfig]
        Physical parameters; defaults to ``RobotConfig()``
    timesteps : int, default=1
        Depth of the state history exposed by :meth:`get_normalized_inputs`
    max_angle : float, default=π/3
        Angle that maps to ±1 in the normalized inputs
    max_angular_velocity : float, default=10.0
        Angular velocity that maps to ±1 in the normalized inputs
    **overrides
        Individual :class:`RobotConfig` fields applied on top of ``config``

    Examples
    --------
    >>> robot = BalancingRobot(mass=1.2, reward_type="complex")
    >>> robot.reset({"angle": 0.05})
    >>> result = robot.step(1.0)
    >>> result.done
    False
    """

    def __init__(
        self,
        config: Optional[RobotConfig] = None,
        timesteps: int = 1,
        max_angle: float = FAILURE_ANGLE,
        max_angular_velocity: float = MAX_ANGULAR_VELOCITY,
        **overrides: Any,
    ) -> None:
        config = config if config is not None else RobotConfig()
        if overrides:
            config = config.updated(**overrides)
        self.config = config

        self.max_angle = max_angle
        self.max_angular_velocity = max_angular_velocity
        self.history = StateHistory(timesteps=timesteps)

        self.state = RobotState()
        self.current_motor_torque = 0.0
        self.step_count = 0
        self.total_reward = 0.0
        self.reset()

    # Physical parameters are read through the validated config.

    @property
    def mass(self) -> float:
        return self.config.mass

    @property
    def center_of_mass_height(self) -> float:
        return self.config.center_of_mass_height

    @property
    def motor_strength(self) -> float:
        return self.config.motor_strength

    @property
    def timestep(self) -> float:
        return self.config.timestep

    @property
    def wheel_radius(self) -> float:
        return self.config.wheel_radius

    @property
    def reward_type(self) -> RewardType:
        return self.config.reward_type

    @property
    def moment_of_inertia(self) -> float:
        return self.config.moment_of_inertia

    @property
    def wheel_inertia(self) -> float:
        return self.config.wheel_inertia

    def reset(
        self,
        initial_state: Optional[Union[Mapping[str, float], RobotState]] = None,
    ) -> None:
        """
        Reset the robot, optionally from a partial initial state.

        Parameters
        ----------
        initial_state : Optional[Union[Mapping[str, float], RobotState]]
            Any subset of RobotState fields; missing fields are zero
        """
        if isinstance(initial_state, RobotState):
            initial_state = initial_state.to_dict()
        values = dict(initial_state or {})

        self.state = RobotState(
            angle=normalize_angle(float(values.get("angle", 0.0))),
            angular_velocity=float(values.get("angular_velocity", 0.0)),
            position=float(values.get("position", 0.0)),
            velocity=float(values.get("velocity", 0.0)),
            wheel_angle=float(values.get("wheel_angle", 0.0)),
            wheel_velocity=float(values.get("wheel_velocity", 0.0)),
        )
        self.current_motor_torque = 0.0
        self.step_count = 0
        self.total_reward = 0.0

        self.history.reset()
        self.history.add_state(self.state.angle, self.state.angular_velocity)

    def step(self, motor_torque: float) -> StepResult:
        """
        Apply a motor torque and advance the simulation by one timestep.

        Parameters
        ----------
        motor_torque : float
            Requested torque in N·m, clamped to ±motor_strength

        Returns
        -------
        StepResult
            (state snapshot, reward, done)

        Notes
        -----
        Stepping a robot that has already fallen does not advance the
        physics; it returns the failure reward with ``done=True`` again.
        """
        if self.state.has_failed():
            return StepResult(
                self.state.clone(), self.reward_type.failure_reward, True
            )

        strength = self.motor_strength
        self.current_motor_torque = max(-strength, min(strength, float(motor_torque)))

        self._update_physics()
        self.state.angle = normalize_angle(self.state.angle)
        self.history.add_state(self.state.angle, self.state.angular_velocity)

        reward = self._calculate_reward()
        self.total_reward += reward
        self.step_count += 1

        return StepResult(self.state.clone(), reward, self.state.has_failed())

    def _update_physics(self) -> None:
        cfg = self.config
        dt = cfg.timestep
        state = self.state
        torque = self.current_motor_torque

        gravity_torque = cfg.mass * GRAVITY * cfg.center_of_mass_height * math.sin(state.angle)
        damping_torque = -cfg.damping * state.angular_velocity

        # Reaction of the wheel torque acts on the pendulum body
        angular_acceleration = (-torque + gravity_torque + damping_torque) / cfg.moment_of_inertia
        state.angular_velocity += angular_acceleration * dt
        state.angle += state.angular_velocity * dt

        motor_force = torque / cfg.wheel_radius
        friction_force = -cfg.friction * state.velocity * cfg.mass * GRAVITY
        horizontal_acceleration = (motor_force + friction_force) / cfg.mass
        state.velocity += horizontal_acceleration * dt
        state.position += state.velocity * dt

        state.wheel_angle += state.velocity * dt / cfg.wheel_radius
        if math.isfinite(state.wheel_angle):
            state.wheel_angle = math.fmod(state.wheel_angle, TWO_PI)
        state.wheel_velocity = state.velocity / cfg.wheel_radius

    def _calculate_reward(self) -> float:
        if self.state.has_failed():
            return self.reward_type.failure_reward
        if self.reward_type is RewardType.SIMPLE:
            return 1.0
        return 1.0 - abs(self.state.angle) / FAILURE_ANGLE

    def get_state(self) -> RobotState:
        """Snapshot of the current state."""
        return self.state.clone()

    def get_normalized_inputs(self) -> FloatArray:
        """Network input of length 2·timesteps built from the state history."""
        return self.history.get_normalized_inputs(
            self.max_angle, self.max_angular_velocity
        )

    def set_timesteps(self, timesteps: int) -> None:
        self.history.set_timesteps(timesteps)

    @property
    def input_size(self) -> int:
        return self.history.input_size

    def get_config(self) -> Dict[str, Any]:
        return self.config.to_dict()

    def update_config(self, **changes: Any) -> None:
        """
        Update physical parameters between episodes.

        Values are validated like the constructor's (warn and clamp), and
        the derived inertias are recomputed from the new values.
        """
        self.config = self.config.updated(**changes)
        logger.info(f"Robot configuration updated: {self.get_config()}")

    def set_reward_type(self, reward_type: Union[str, RewardType]) -> None:
        """Switch reward function; invalid names keep the current one."""
        new_type = parse_reward_type(reward_type, self.reward_type)
        if new_type is not self.reward_type:
            self.config = self.config.updated(reward_type=new_type)
            logger.info(f"Reward function changed to: {new_type}")

    def get_stats(self) -> Dict[str, float]:
        return {
            "step_count": self.step_count,
            "total_reward": self.total_reward,
            "current_motor_torque": self.current_motor_torque,
            "simulation_time": self.step_count * self.timestep,
        }

    def is_stable(self) -> bool:
        """Advisory check that no state value or the torque has become NaN/inf."""
        return self.state.is_finite() and math.isfinite(self.current_motor_torque)


def create_default_robot(**overrides: Any) -> BalancingRobot:
    """Robot with default parameters and optional overrides."""
    return BalancingRobot(**overrides)


def create_training_robot() -> BalancingRobot:
    """Lightweight robot that trains quickly."""
    return BalancingRobot(
        RobotConfig(
            mass=1.0,
            center_of_mass_height=0.3,
            motor_strength=3.0,
            friction=0.02,
            damping=0.01,
            timestep=0.02,
        )
    )


def create_realistic_robot() -> BalancingRobot:
    """Heavier, more damped robot for demonstrations."""
    return BalancingRobot(
        RobotConfig(
            mass=1.5,
            center_of_mass_height=0.4,
            motor_strength=4.0,
            friction=0.1,
            damping=0.05,
            timestep=0.02,
        )
    )
