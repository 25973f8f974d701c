"""
Dense layer with hand-written gradient update.

Core Idea (核心思想)
====================
不依赖自动微分：每一层自己实现前向计算和一次裁剪后的梯度更新。
Q-learning只对所选动作对应的输出计算TD误差，因此输出层的误差向量
是one-hot形式，隐藏层误差由输出层权重反向传播并经过ReLU门控得到。

Mathematical Foundation (数学基础)
==================================
Forward:

    y = x·W + b,    W ∈ ℝ^{fan_in × fan_out}

Update with error δ ∈ ℝ^{fan_out} and learning rate α:

    W ← clip(W + α·clip(x ⊗ δ, ±g), ±w)
    b ← clip(b + α·clip(δ, ±g), ±w)

Error propagated to the input (computed before the update):

    δ_in = W·δ

Initialization
--------------
- He:     W ~ N(0, sqrt(2 / fan_in)),                   for ReLU layers
- Xavier: W ~ U(-L, L),  L = sqrt(6 / (fan_in + fan_out))
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from balancing_dqn.core.enums import InitMethod
from balancing_dqn.core.types import FloatArray

GRADIENT_CLIP = 0.5
WEIGHT_CLIP = 10.0


def he_init(fan_in: int, fan_out: int, rng: np.random.Generator) -> FloatArray:
    std = math.sqrt(2.0 / fan_in)
    return rng.normal(0.0, std, size=(fan_in, fan_out)).astype(np.float32)


def xavier_init(fan_in: int, fan_out: int, rng: np.random.Generator) -> FloatArray:
    limit = math.sqrt(6.0 / (fan_in + fan_out))
    return rng.uniform(-limit, limit, size=(fan_in, fan_out)).astype(np.float32)


def init_weights(
    fan_in: int,
    fan_out: int,
    method: InitMethod = InitMethod.HE,
    rng: Optional[np.random.Generator] = None,
) -> FloatArray:
    """Weight matrix of shape (fan_in, fan_out) drawn with ``method``."""
    rng = rng if rng is not None else np.random.default_rng()
    if method is InitMethod.XAVIER:
        return xavier_init(fan_in, fan_out, rng)
    return he_init(fan_in, fan_out, rng)


class DenseLayer:
    """
    Fully connected layer ``y = x·W + b`` with float32 storage.

    Parameters
    ----------
    fan_in, fan_out : int
        Layer shape
    init_method : InitMethod, default=HE
        Weight initialization; biases start at zero
    rng : Optional[np.random.Generator]
        Source of randomness for initialization

    Examples
    --------
    >>> layer = DenseLayer(2, 3)
    >>> layer.forward(np.zeros(2, dtype=np.float32)).shape
    (3,)
    """

    def __init__(
        self,
        fan_in: int,
        fan_out: int,
        init_method: InitMethod = InitMethod.HE,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.fan_in = fan_in
        self.fan_out = fan_out
        self.init_method = init_method
        self.weights = init_weights(fan_in, fan_out, init_method, rng)
        self.bias = np.zeros(fan_out, dtype=np.float32)

    @property
    def parameter_count(self) -> int:
        return self.weights.size + self.bias.size

    def reinitialize(self, rng: Optional[np.random.Generator] = None) -> None:
        self.weights = init_weights(self.fan_in, self.fan_out, self.init_method, rng)
        self.bias = np.zeros(self.fan_out, dtype=np.float32)

    def forward(self, x: FloatArray) -> FloatArray:
        return (x @ self.weights + self.bias).astype(np.float32)

    def backward(
        self,
        x: FloatArray,
        upstream_error: FloatArray,
        learning_rate: float,
        grad_clip: float = GRADIENT_CLIP,
        weight_clip: float = WEIGHT_CLIP,
    ) -> FloatArray:
        """
        Apply one clipped update and return the error for the layer input.

        Parameters
        ----------
        x : FloatArray
            Input seen in the forward pass, shape (fan_in,)
        upstream_error : FloatArray
            Error at the layer output, shape (fan_out,). Positive values
            move the output up.
        learning_rate : float
            Step size α
        grad_clip : float, default=0.5
            Bound on each weight and bias step before scaling by α
        weight_clip : float, default=10.0
            Bound on every parameter after the update

        Returns
        -------
        FloatArray
            ``W·δ`` with the pre-update weights, shape (fan_in,)
        """
        delta = np.asarray(upstream_error, dtype=np.float32)
        propagated = self.weights @ delta

        weight_step = np.clip(np.outer(x, delta), -grad_clip, grad_clip)
        bias_step = np.clip(delta, -grad_clip, grad_clip)

        self.weights += np.float32(learning_rate) * weight_step.astype(np.float32)
        self.bias += np.float32(learning_rate) * bias_step
        np.clip(self.weights, -weight_clip, weight_clip, out=self.weights)
        np.clip(self.bias, -weight_clip, weight_clip, out=self.bias)

        return propagated.astype(np.float32)

    def copy_from(self, other: "DenseLayer") -> None:
        """Copy parameter values; shapes must already match."""
        np.copyto(self.weights, other.weights)
        np.copyto(self.bias, other.bias)
