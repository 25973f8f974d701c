"""
Unit Tests for the Gymnasium Adapter.
"""

from __future__ import annotations

import unittest

import numpy as np

from balancing_dqn.physics.gym_env import BalancingRobotEnv


class TestBalancingRobotEnv(unittest.TestCase):
    """Test cases for BalancingRobotEnv."""

    def setUp(self):
        """Small environment with a short horizon."""
        self.env = BalancingRobotEnv(timesteps=2, max_steps=10)

    def test_spaces(self):
        """Three discrete actions, 2·timesteps observations."""
        self.assertEqual(self.env.action_space.n, 3)
        self.assertEqual(self.env.observation_space.shape, (4,))

    def test_reset(self):
        """Reset returns an in-bounds float32 observation."""
        obs, info = self.env.reset(seed=0)
        self.assertEqual(obs.dtype, np.float32)
        self.assertTrue(self.env.observation_space.contains(obs))
        self.assertLessEqual(abs(info["angle"]), self.env.initial_angle_range)

    def test_reset_seeded_is_deterministic(self):
        """The same seed gives the same initial angle."""
        _, first = self.env.reset(seed=123)
        _, second = self.env.reset(seed=123)
        self.assertEqual(first["angle"], second["angle"])

    def test_reset_with_angle_option(self):
        """options['angle'] sets the initial tilt."""
        _, info = self.env.reset(options={"angle": 0.2})
        self.assertAlmostEqual(info["angle"], 0.2)

    def test_step_signature(self):
        """Step returns the five-tuple of the Gymnasium API."""
        self.env.reset(seed=1)
        obs, reward, terminated, truncated, info = self.env.step(1)
        self.assertEqual(obs.shape, (4,))
        self.assertIsInstance(reward, float)
        self.assertIsInstance(terminated, bool)
        self.assertIsInstance(truncated, bool)
        self.assertEqual(info["steps"], 1)

    def test_truncation(self):
        """Episodes are truncated at max_steps while still balanced."""
        self.env.reset(options={"angle": 0.0})
        for _ in range(9):
            _, _, terminated, truncated, _ = self.env.step(1)
            self.assertFalse(terminated)
            self.assertFalse(truncated)
        _, _, terminated, truncated, _ = self.env.step(1)
        self.assertFalse(terminated)
        self.assertTrue(truncated)

    def test_termination(self):
        """A fallen robot terminates the episode."""
        self.env.reset(options={"angle": 1.2})
        _, reward, terminated, truncated, _ = self.env.step(0)
        self.assertTrue(terminated)
        self.assertFalse(truncated)
        self.assertEqual(reward, 0.0)

    def test_invalid_action(self):
        """Actions outside Discrete(3) are rejected."""
        self.env.reset(seed=0)
        with self.assertRaises(ValueError):
            self.env.step(3)


if __name__ == "__main__":
    unittest.main()
