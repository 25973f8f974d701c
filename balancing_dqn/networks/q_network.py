"""
Two-Layer Q-Network (CPU backend).

Core Idea (核心思想)
====================
用一个单隐层全连接网络近似Q函数：输入为归一化的传感器向量，输出为
三个离散扭矩动作（左、刹车、右）的Q值。网络足够小，可在微控制器上运行，
训练完全依赖手写的裁剪梯度更新。

Mathematical Foundation (数学基础)
==================================
    h = ReLU(x·W_ih + b_h)
    Q(s, ·) = h·W_ho + b_o

Single-action update for TD error δ on action a:

    δ_out = δ · e_a                       (one-hot)
    δ_hidden = (W_ho·δ_out) ⊙ 1[h > 0]    (pre-update W_ho)

Serialized weights are flat row-major lists:

    weightsInputHidden[i·hidden + j] = W_ih[i, j]
    weightsHiddenOutput[j·output + a] = W_ho[j, a]
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import numpy as np

from balancing_dqn.core.enums import InitMethod
from balancing_dqn.core.types import FloatArray
from balancing_dqn.networks.architecture import (
    MAX_PARAMETERS,
    OUTPUT_SIZE,
    ArchitectureError,
    architecture_dict,
    validate_architecture,
)
from balancing_dqn.networks.layers import DenseLayer

logger = logging.getLogger(__name__)

BYTES_PER_FLOAT = 4


class QNetwork:
    """
    Fixed two-layer network with ReLU hidden units and linear outputs.

    Parameters
    ----------
    rng : Optional[np.random.Generator]
        Random generator used for weight initialization

    Attributes
    ----------
    hidden_layer : DenseLayer
        input → hidden
    output_layer : DenseLayer
        hidden → output
    hidden_activation : FloatArray
        ReLU activation from the most recent forward pass

    Examples
    --------
    >>> net = QNetwork()
    >>> _ = net.create_network(2, 8, 3)
    >>> net.get_parameter_count()
    51
    >>> net.forward([0.1, -0.2]).shape
    (3,)
    """

    def __init__(self, rng: Optional[np.random.Generator] = None) -> None:
        self.rng = rng if rng is not None else np.random.default_rng()
        self.input_size = 0
        self.hidden_size = 0
        self.output_size = 0
        self.init_method = InitMethod.HE
        self.hidden_layer: Optional[DenseLayer] = None
        self.output_layer: Optional[DenseLayer] = None
        self.hidden_activation = np.zeros(0, dtype=np.float32)
        self._last_input: Optional[FloatArray] = None

    @property
    def is_initialized(self) -> bool:
        return self.hidden_layer is not None

    def create_network(
        self,
        input_size: int,
        hidden_size: int,
        output_size: int = OUTPUT_SIZE,
        init_method: InitMethod = InitMethod.HE,
        max_parameters: int = MAX_PARAMETERS,
    ) -> "QNetwork":
        """
        Allocate and initialize both layers.

        Raises
        ------
        ArchitectureError
            If the shape is outside the supported range
        """
        validate_architecture(input_size, hidden_size, output_size, max_parameters)

        self.input_size = input_size
        self.hidden_size = hidden_size
        self.output_size = output_size
        self.init_method = InitMethod(init_method)
        self.hidden_layer = DenseLayer(input_size, hidden_size, self.init_method, self.rng)
        self.output_layer = DenseLayer(hidden_size, output_size, self.init_method, self.rng)
        self.hidden_activation = np.zeros(hidden_size, dtype=np.float32)
        self._last_input = None
        return self

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise RuntimeError("Network not initialized. Call create_network() first.")

    def _prepare_input(self, x: Any) -> FloatArray:
        x = np.array(x, dtype=np.float32).reshape(-1)
        if x.shape[0] != self.input_size:
            raise ValueError(
                f"Input size mismatch: expected {self.input_size}, got {x.shape[0]}"
            )

        bad = ~np.isfinite(x)
        if bad.any():
            logger.warning(f"Non-finite network input {x.tolist()}, sanitizing")
            x[bad] = np.nan_to_num(x[bad], nan=0.0, posinf=1.0, neginf=-1.0)
        return x

    def forward(self, x: Any) -> FloatArray:
        """
        Compute Q-values for one input vector.

        NaN inputs become 0 and infinite inputs are clamped to ±1, with a
        warning. Non-finite outputs are replaced by 0.

        Raises
        ------
        RuntimeError
            If the network has not been created
        ValueError
            If ``x`` has the wrong length
        """
        self._require_initialized()
        x = self._prepare_input(x)

        self._last_input = x
        self.hidden_activation = np.maximum(self.hidden_layer.forward(x), 0.0)
        output = self.output_layer.forward(self.hidden_activation)

        bad = ~np.isfinite(output)
        if bad.any():
            logger.warning("Non-finite network output, replacing with 0")
            output[bad] = 0.0
        return output

    def backward(self, action: int, td_error: float, learning_rate: float) -> None:
        """
        Move Q(x, action) towards its target by one clipped step.

        ``x`` is the input of the most recent :meth:`forward` call, whose
        cached hidden activation drives the update. Only the chosen
        action's output receives error; the hidden layer receives it
        through the pre-update output weights gated by ReLU.

        Raises
        ------
        RuntimeError
            If no forward pass has been run yet
        """
        self._require_initialized()
        if self._last_input is None:
            raise RuntimeError("backward() called before forward()")

        x = self._last_input
        hidden = self.hidden_activation

        output_error = np.zeros(self.output_size, dtype=np.float32)
        output_error[action] = td_error

        propagated = self.output_layer.backward(hidden, output_error, learning_rate)
        hidden_error = propagated * (hidden > 0.0)
        self.hidden_layer.backward(x, hidden_error, learning_rate)

    def get_parameter_count(self) -> int:
        if not self.is_initialized:
            return 0
        return self.hidden_layer.parameter_count + self.output_layer.parameter_count

    def get_architecture(self) -> Dict[str, int]:
        return architecture_dict(self.input_size, self.hidden_size, self.output_size)

    def get_memory_usage(self) -> Dict[str, Any]:
        """Byte counts of parameter and activation buffers (float32)."""
        breakdown = {
            "weightsInputHidden": self.input_size * self.hidden_size * BYTES_PER_FLOAT,
            "biasHidden": self.hidden_size * BYTES_PER_FLOAT,
            "weightsHiddenOutput": self.hidden_size * self.output_size * BYTES_PER_FLOAT,
            "biasOutput": self.output_size * BYTES_PER_FLOAT,
            "hiddenActivation": self.hidden_size * BYTES_PER_FLOAT,
            "outputActivation": self.output_size * BYTES_PER_FLOAT,
        }
        total = sum(breakdown.values())
        parameter_bytes = self.get_parameter_count() * BYTES_PER_FLOAT
        return {
            "totalBytes": total,
            "totalKB": total / 1024,
            "parameterBytes": parameter_bytes,
            "parameterKB": parameter_bytes / 1024,
            "breakdown": breakdown,
        }

    def get_weights(self) -> Dict[str, Any]:
        """Copy of all parameters in the serialized (flat list) layout."""
        self._require_initialized()
        return {
            "architecture": self.get_architecture(),
            "weightsInputHidden": self.hidden_layer.weights.reshape(-1).tolist(),
            "biasHidden": self.hidden_layer.bias.tolist(),
            "weightsHiddenOutput": self.output_layer.weights.reshape(-1).tolist(),
            "biasOutput": self.output_layer.bias.tolist(),
            "initMethod": self.init_method.value,
        }

    def set_weights(self, weights: Mapping[str, Any]) -> None:
        """
        Load parameters from the serialized layout.

        An uninitialized network adopts the saved architecture.

        Raises
        ------
        ArchitectureError
            If the saved architecture differs from an initialized network's,
            or an array has the wrong length
        """
        arch = weights["architecture"]
        input_size = int(arch["inputSize"])
        hidden_size = int(arch["hiddenSize"])
        output_size = int(arch["outputSize"])
        init_method = InitMethod(weights.get("initMethod", InitMethod.HE.value))

        if not self.is_initialized:
            self.create_network(input_size, hidden_size, output_size, init_method)
        elif (input_size, hidden_size, output_size) != (
            self.input_size,
            self.hidden_size,
            self.output_size,
        ):
            raise ArchitectureError(
                f"Architecture mismatch: network is "
                f"{self.input_size}-{self.hidden_size}-{self.output_size}, "
                f"weights are {input_size}-{hidden_size}-{output_size}"
            )

        self.hidden_layer.weights = _as_array(
            weights["weightsInputHidden"], (input_size, hidden_size), "weightsInputHidden"
        )
        self.hidden_layer.bias = _as_array(weights["biasHidden"], (hidden_size,), "biasHidden")
        self.output_layer.weights = _as_array(
            weights["weightsHiddenOutput"], (hidden_size, output_size), "weightsHiddenOutput"
        )
        self.output_layer.bias = _as_array(weights["biasOutput"], (output_size,), "biasOutput")

    def copy_weights_from(self, other: "QNetwork") -> None:
        """
        Overwrite this network's parameters with ``other``'s values.

        Raises
        ------
        ArchitectureError
            If the two architectures differ
        """
        self._require_initialized()
        other._require_initialized()
        if other.get_architecture() != self.get_architecture():
            raise ArchitectureError(
                f"Cannot copy weights between architectures "
                f"{other.get_architecture()} and {self.get_architecture()}"
            )
        self.hidden_layer.copy_from(other.hidden_layer)
        self.output_layer.copy_from(other.output_layer)

    def clone(self) -> "QNetwork":
        """Independent network with identical architecture and weights."""
        self._require_initialized()
        twin = QNetwork(rng=self.rng)
        twin.create_network(
            self.input_size, self.hidden_size, self.output_size, self.init_method
        )
        twin.copy_weights_from(self)
        return twin

    def reset_weights(self) -> None:
        """Re-randomize all parameters with the configured init method."""
        self._require_initialized()
        self.hidden_layer.reinitialize(self.rng)
        self.output_layer.reinitialize(self.rng)


def _as_array(values: Any, shape: tuple, name: str) -> FloatArray:
    array = np.array(values, dtype=np.float32)
    expected = int(np.prod(shape))
    if array.size != expected:
        raise ArchitectureError(f"{name} has {array.size} values, expected {expected}")
    return array.reshape(shape)
