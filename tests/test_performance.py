"""
Unit Tests for the Throughput Tracker.
"""

from __future__ import annotations

import unittest

from balancing_dqn.utils.performance import PerformanceTracker


class FakeClock:
    """Manually advanced time source."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestPerformanceTracker(unittest.TestCase):
    """Test cases for PerformanceTracker."""

    def setUp(self):
        """Tracker on a fake clock starting at t=0."""
        self.clock = FakeClock()
        self.tracker = PerformanceTracker(clock=self.clock)

    def _episode(self, step_times, end, training_time=0.0):
        self.tracker.start_episode()
        for t in step_times:
            self.clock.now = t
            self.tracker.record_step()
        self.clock.now = end
        self.tracker.end_episode(len(step_times), training_time)

    def test_single_episode(self):
        """Steps per second and training share after one episode."""
        self._episode([1.0, 2.0], end=2.0, training_time=0.5)
        self.assertEqual(self.tracker.total_episodes, 1)
        self.assertAlmostEqual(self.tracker.steps_per_second, 2.0)
        self.assertAlmostEqual(self.tracker.training_efficiency, 25.0)
        self.assertEqual(self.tracker.episodes_per_minute, 0.0)

    def test_episode_rate(self):
        """Episodes per minute over the span of the window."""
        self._episode([1.0, 2.0], end=2.0, training_time=0.5)
        self._episode([3.0, 4.0, 5.0], end=5.0)
        self.assertAlmostEqual(self.tracker.episodes_per_minute, 40.0)
        self.assertAlmostEqual(self.tracker.steps_per_second, 1.25)
        self.assertAlmostEqual(self.tracker.training_efficiency, 10.0)

    def test_old_samples_expire(self):
        """Samples older than the window no longer count."""
        self._episode([1.0, 2.0], end=2.0, training_time=0.5)
        self.clock.now = 100.0
        self._episode([], end=100.0)
        stats = self.tracker.get_stats()
        self.assertEqual(stats["totalEpisodes"], 2)
        self.assertEqual(stats["totalSteps"], 2)
        self.assertEqual(stats["stepsPerSecond"], 0.0)
        self.assertEqual(stats["elapsedTime"], 100.0)

    def test_reset(self):
        """reset() zeroes counters and restarts the clock."""
        self._episode([1.0], end=1.0)
        self.clock.now = 10.0
        self.tracker.reset()
        stats = self.tracker.get_stats()
        self.assertEqual(stats["totalEpisodes"], 0)
        self.assertEqual(stats["elapsedTime"], 0.0)


if __name__ == "__main__":
    unittest.main()
