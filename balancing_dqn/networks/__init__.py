"""
Networks Module - Function Approximator.

Components:
    - QNetwork: Two-layer ReLU network with manual clipped updates
    - DenseLayer: Fully connected layer with its own backward step
    - Architecture validation and parameter counting
    - Presets: Named hidden-layer widths for different robot hardware

Example:
    >>> from balancing_dqn.networks import QNetwork
    >>> net = QNetwork().create_network(input_size=2, hidden_size=8)
    >>> q_values = net.forward([0.0, 0.0])
"""

from balancing_dqn.networks.architecture import (
    MAX_PARAMETERS,
    OUTPUT_SIZE,
    ArchitectureError,
    calculate_parameter_count,
    validate_architecture,
)
from balancing_dqn.networks.layers import DenseLayer, he_init, init_weights, xavier_init
from balancing_dqn.networks.presets import (
    PRESETS,
    NetworkPreset,
    get_preset,
    list_presets,
    recommend_preset,
)
from balancing_dqn.networks.q_network import QNetwork

__all__ = [
    "MAX_PARAMETERS",
    "OUTPUT_SIZE",
    "ArchitectureError",
    "calculate_parameter_count",
    "validate_architecture",
    "DenseLayer",
    "he_init",
    "init_weights",
    "xavier_init",
    "PRESETS",
    "NetworkPreset",
    "get_preset",
    "list_presets",
    "recommend_preset",
    "QNetwork",
]
