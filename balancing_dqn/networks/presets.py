"""
Named network sizes for different robot controllers.

Every preset is a single hidden layer; presets differ in width and the
parameter budget of the target hardware.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from balancing_dqn.networks.architecture import OUTPUT_SIZE, calculate_parameter_count


@dataclass(frozen=True)
class NetworkPreset:
    """
    Architecture preset.

    Attributes
    ----------
    name : str
        Display name
    description : str
        Intended hardware / use case
    hidden_size : int
        Width of the hidden layer
    max_parameters : int
        Parameter budget for a 2-input network
    memory_constraint_kb : int
        Target RAM budget
    target_frequency : int
        Control loop rate in Hz
    deployment : str
        "embedded" or "web"
    """

    name: str
    description: str
    hidden_size: int
    max_parameters: int
    memory_constraint_kb: int = 256
    target_frequency: int = 50
    deployment: str = "embedded"

    def parameter_count(self, input_size: int = 2) -> int:
        return calculate_parameter_count(input_size, self.hidden_size, OUTPUT_SIZE)

    def fits(self, input_size: int = 2) -> bool:
        return self.parameter_count(input_size) <= self.max_parameters


PRESETS: Dict[str, NetworkPreset] = {
    "MICRO": NetworkPreset(
        name="Micro Bot",
        description="Ultra-minimal for 8-bit microcontrollers (< 32KB RAM)",
        hidden_size=4,
        max_parameters=50,
        memory_constraint_kb=32,
        target_frequency=20,
    ),
    "NANO": NetworkPreset(
        name="Nano Bot",
        description="Lightweight for basic two-wheel balancing (Arduino Nano)",
        hidden_size=6,
        max_parameters=80,
        memory_constraint_kb=64,
        target_frequency=30,
    ),
    "CLASSIC": NetworkPreset(
        name="Classic Bot",
        description="Standard two-wheel balancing robot (ESP32/STM32)",
        hidden_size=8,
        max_parameters=150,
        memory_constraint_kb=256,
        target_frequency=50,
    ),
    "ENHANCED": NetworkPreset(
        name="Enhanced Bot",
        description="Wider hidden layer for smoother control (Raspberry Pi)",
        hidden_size=16,
        max_parameters=400,
        memory_constraint_kb=512,
        target_frequency=50,
    ),
    "DQN_STANDARD": NetworkPreset(
        name="DQN Standard",
        description="128-unit hidden layer as in common DQN tutorials",
        hidden_size=128,
        max_parameters=1000,
        memory_constraint_kb=2048,
        target_frequency=100,
        deployment="web",
    ),
}

DEFAULT_PRESET = "CLASSIC"


def get_preset(name: str) -> NetworkPreset:
    """
    Look up a preset by key (case-insensitive).

    Raises
    ------
    KeyError
        If no preset has that key
    """
    key = name.upper()
    if key not in PRESETS:
        raise KeyError(f"Unknown preset: {name}. Available: {', '.join(PRESETS)}")
    return PRESETS[key]


def list_presets() -> List[str]:
    return list(PRESETS)


def recommend_preset(max_parameters: int, input_size: int = 2) -> Optional[str]:
    """
    Largest preset whose network stays within ``max_parameters``.

    Returns ``None`` when even the smallest preset is too large.

    Examples
    --------
    >>> recommend_preset(60)
    'CLASSIC'
    """
    best: Optional[str] = None
    best_count = -1
    for key, preset in PRESETS.items():
        count = preset.parameter_count(input_size)
        if best_count < count <= max_parameters:
            best, best_count = key, count
    return best
