"""
Unit Tests for the Function Approximator.

Tests architecture validation, initialization, forward pass, manual
updates and weight serialization with small networks.
"""

from __future__ import annotations

import math
import unittest

import numpy as np

from balancing_dqn.core.enums import InitMethod
from balancing_dqn.networks.architecture import (
    ArchitectureError,
    calculate_parameter_count,
    validate_architecture,
)
from balancing_dqn.networks.layers import DenseLayer, he_init, xavier_init
from balancing_dqn.networks.presets import (
    PRESETS,
    get_preset,
    list_presets,
    recommend_preset,
)
from balancing_dqn.networks.q_network import QNetwork

NETWORK_LOGGER = "balancing_dqn.networks.q_network"


class TestArchitecture(unittest.TestCase):
    """Test cases for architecture limits."""

    def test_parameter_count(self):
        """P = i·h + h + h·o + o."""
        self.assertEqual(calculate_parameter_count(2, 4, 3), 27)
        self.assertEqual(calculate_parameter_count(2, 8, 3), 51)
        self.assertEqual(calculate_parameter_count(2, 16, 3), 99)

    def test_valid_architecture(self):
        """Valid shapes return their parameter count."""
        self.assertEqual(validate_architecture(16, 256, 3), 16 * 256 + 256 + 256 * 3 + 3)

    def test_invalid_architectures_raise(self):
        """Out-of-range shapes raise instead of clamping."""
        for shape in [(1, 8, 3), (17, 8, 3), (2, 3, 3), (2, 257, 3), (2, 8, 2)]:
            with self.assertRaises(ArchitectureError):
                validate_architecture(*shape)

    def test_parameter_cap(self):
        """Exceeding the parameter cap is an error."""
        with self.assertRaises(ArchitectureError):
            validate_architecture(2, 8, 3, max_parameters=50)

    def test_error_is_value_error(self):
        """ArchitectureError can be caught as ValueError."""
        self.assertTrue(issubclass(ArchitectureError, ValueError))


class TestInitialization(unittest.TestCase):
    """Test cases for He and Xavier initialization."""

    def setUp(self):
        """Large square layer for sampling statistics."""
        self.rng = np.random.default_rng(0)
        self.fan = 256

    def test_he_statistics(self):
        """He weights have std sqrt(2/fan_in)."""
        weights = he_init(self.fan, self.fan, self.rng)
        self.assertEqual(weights.dtype, np.float32)
        self.assertAlmostEqual(float(weights.std()), math.sqrt(2 / self.fan), delta=0.003)

    def test_xavier_statistics(self):
        """Xavier weights are uniform within ±sqrt(6/(in+out))."""
        limit = math.sqrt(6 / (2 * self.fan))
        weights = xavier_init(self.fan, self.fan, self.rng)
        self.assertLessEqual(float(np.abs(weights).max()), limit)
        self.assertAlmostEqual(float(weights.std()), limit / math.sqrt(3), delta=0.003)

    def test_methods_differ(self):
        """The two schemes are observably different for the same shape."""
        he = he_init(self.fan, self.fan, self.rng)
        xavier = xavier_init(self.fan, self.fan, self.rng)
        self.assertGreater(float(he.std()), float(xavier.std()) * 1.2)

    def test_biases_start_at_zero(self):
        """Dense layers start with zero bias."""
        layer = DenseLayer(4, 6, InitMethod.XAVIER, self.rng)
        self.assertTrue(np.all(layer.bias == 0.0))


class TestDenseLayer(unittest.TestCase):
    """Test cases for the manual update of DenseLayer."""

    def setUp(self):
        """2→3 layer with known weights."""
        self.layer = DenseLayer(2, 3, rng=np.random.default_rng(0))
        self.layer.weights = np.array([[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]], dtype=np.float32)
        self.x = np.array([1.0, 0.5], dtype=np.float32)

    def test_forward(self):
        """y = x·W + b."""
        np.testing.assert_allclose(self.layer.forward(self.x), [0.3, 0.45, 0.6], rtol=1e-6)

    def test_backward_clipped_update(self):
        """Steps are clipped to ±0.5 before scaling by the learning rate."""
        delta = np.array([0.0, 2.0, 0.0], dtype=np.float32)
        propagated = self.layer.backward(self.x, delta, learning_rate=0.1)

        np.testing.assert_allclose(propagated, [0.4, 1.0], rtol=1e-6)
        np.testing.assert_allclose(self.layer.weights[:, 1], [0.25, 0.55], rtol=1e-6)
        np.testing.assert_allclose(self.layer.weights[:, 0], [0.1, 0.4], rtol=1e-6)
        np.testing.assert_allclose(self.layer.bias, [0.0, 0.05, 0.0], atol=1e-7)

    def test_weight_clamp(self):
        """Parameters never leave ±10."""
        self.layer.weights[:] = 9.99
        self.layer.backward(self.x, np.ones(3, dtype=np.float32), learning_rate=1.0)
        self.assertLessEqual(float(self.layer.weights.max()), 10.0)


class TestQNetwork(unittest.TestCase):
    """Test cases for QNetwork."""

    def setUp(self):
        """2-8-3 network with a fixed seed."""
        self.net = QNetwork(rng=np.random.default_rng(42)).create_network(2, 8, 3)
        self.x = np.array([0.3, -0.2], dtype=np.float32)

    def test_forward_before_create(self):
        """Forward on an uncreated network is a contract violation."""
        with self.assertRaises(RuntimeError):
            QNetwork().forward([0.0, 0.0])

    def test_wrong_input_length(self):
        """Input length must match the architecture."""
        with self.assertRaises(ValueError):
            self.net.forward([0.0, 0.0, 0.0])

    def test_forward_deterministic(self):
        """Unchanged weights give bit-identical output."""
        first = self.net.forward(self.x)
        second = self.net.forward(self.x)
        self.assertEqual(first.shape, (3,))
        self.assertTrue(np.array_equal(first, second))

    def test_hidden_activation_exposed(self):
        """The last hidden activation is ReLU(x·W_ih + b_h)."""
        self.net.forward(self.x)
        expected = np.maximum(self.x @ self.net.hidden_layer.weights + self.net.hidden_layer.bias, 0)
        np.testing.assert_allclose(self.net.hidden_activation, expected, rtol=1e-6)
        self.assertTrue(np.all(self.net.hidden_activation >= 0))

    def test_nan_input_substituted(self):
        """NaN inputs are treated as 0 with a warning."""
        with self.assertLogs(NETWORK_LOGGER, level="WARNING"):
            output = self.net.forward([float("nan"), -0.2])
        np.testing.assert_array_equal(output, self.net.forward([0.0, -0.2]))

    def test_infinite_input_clamped(self):
        """Infinite inputs are clamped to ±1."""
        with self.assertLogs(NETWORK_LOGGER, level="WARNING"):
            output = self.net.forward([float("inf"), float("-inf")])
        np.testing.assert_array_equal(output, self.net.forward([1.0, -1.0]))

    def test_non_finite_output_zeroed(self):
        """Non-finite Q-values are replaced by 0 with a warning."""
        self.net.output_layer.bias[:] = [np.inf, np.nan, -np.inf]
        with self.assertLogs(NETWORK_LOGGER, level="WARNING"):
            output = self.net.forward(self.x)
        np.testing.assert_array_equal(output, [0.0, 0.0, 0.0])

    def test_parameter_count_and_memory(self):
        """Parameter count and byte usage agree."""
        self.assertEqual(self.net.get_parameter_count(), 51)
        self.assertEqual(self.net.get_memory_usage()["parameterBytes"], 51 * 4)

    def test_weight_layout_row_major(self):
        """Flat weights index as [i·hidden + h] and [h·output + a]."""
        weights = self.net.get_weights()
        w_ih = self.net.hidden_layer.weights
        w_ho = self.net.output_layer.weights
        self.assertAlmostEqual(weights["weightsInputHidden"][1 * 8 + 5], float(w_ih[1, 5]))
        self.assertAlmostEqual(weights["weightsHiddenOutput"][6 * 3 + 2], float(w_ho[6, 2]))
        self.assertEqual(weights["architecture"]["parameterCount"], 51)
        self.assertEqual(weights["initMethod"], "he")

    def test_set_weights_round_trip(self):
        """set_weights(get_weights()) reproduces the outputs exactly."""
        other = QNetwork()
        other.set_weights(self.net.get_weights())
        np.testing.assert_array_equal(other.forward(self.x), self.net.forward(self.x))

    def test_set_weights_architecture_mismatch(self):
        """An initialized network refuses a different architecture."""
        bigger = QNetwork().create_network(2, 16, 3)
        with self.assertRaises(ArchitectureError):
            self.net.set_weights(bigger.get_weights())

    def test_clone_is_independent(self):
        """Clones share values but not storage."""
        twin = self.net.clone()
        np.testing.assert_array_equal(twin.forward(self.x), self.net.forward(self.x))
        twin.output_layer.bias += 1.0
        self.assertFalse(np.array_equal(twin.forward(self.x), self.net.forward(self.x)))

    def test_copy_weights_mismatch(self):
        """Copying between different shapes is an error."""
        other = QNetwork().create_network(4, 8, 3)
        with self.assertRaises(ArchitectureError):
            other.copy_weights_from(self.net)

    def test_reset_weights(self):
        """Re-randomization changes the weights and zeroes biases."""
        before = self.net.hidden_layer.weights.copy()
        self.net.output_layer.bias += 1.0
        self.net.reset_weights()
        self.assertFalse(np.array_equal(before, self.net.hidden_layer.weights))
        self.assertTrue(np.all(self.net.output_layer.bias == 0.0))

    def test_backward_requires_forward(self):
        """backward() needs a preceding forward pass."""
        with self.assertRaises(RuntimeError):
            QNetwork().create_network(2, 8, 3).backward(0, 1.0, 0.1)

    def test_backward_moves_chosen_action(self):
        """A positive TD error raises Q(x, a) and leaves other output columns alone."""
        before = self.net.forward(self.x)
        other_columns = self.net.output_layer.weights[:, 1:].copy()
        self.net.backward(0, 1.0, 0.05)
        after = self.net.forward(self.x)
        self.assertGreater(after[0], before[0])
        np.testing.assert_array_equal(self.net.output_layer.weights[:, 1:], other_columns)

    def test_xavier_network(self):
        """Init method is recorded and serialized."""
        net = QNetwork().create_network(2, 8, 3, InitMethod.XAVIER)
        self.assertEqual(net.get_weights()["initMethod"], "xavier")


class TestPresets(unittest.TestCase):
    """Test cases for network presets."""

    def test_lookup(self):
        """Presets are found case-insensitively."""
        self.assertEqual(get_preset("classic").hidden_size, 8)
        with self.assertRaises(KeyError):
            get_preset("gigantic")

    def test_listing(self):
        """All presets are listed."""
        self.assertEqual(
            list_presets(), ["MICRO", "NANO", "CLASSIC", "ENHANCED", "DQN_STANDARD"]
        )

    def test_presets_fit_their_budget(self):
        """Every preset fits its own parameter budget for 2 inputs."""
        for preset in PRESETS.values():
            self.assertTrue(preset.fits(2), preset.name)

    def test_recommend(self):
        """The largest preset within the budget is recommended."""
        self.assertEqual(recommend_preset(60), "CLASSIC")
        self.assertEqual(recommend_preset(100000), "DQN_STANDARD")
        self.assertIsNone(recommend_preset(10))


if __name__ == "__main__":
    unittest.main()
