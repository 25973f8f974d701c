"""
Training throughput tracker.

Measures episodes per minute, steps per second and the share of episode
wall time spent in training computations, over a rolling 60 s window.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional

SAMPLE_WINDOW = 60.0
MAX_EPISODE_SAMPLES = 1000
MAX_STEP_SAMPLES = 10000


@dataclass
class _EpisodeSample:
    timestamp: float
    duration: float
    steps: int
    training_time: float


class PerformanceTracker:
    """
    Rolling-window throughput statistics.

    Parameters
    ----------
    window : float, default=60.0
        Sampling window in seconds
    clock : Optional[Callable[[], float]]
        Time source, ``time.monotonic`` by default

    Examples
    --------
    >>> tracker = PerformanceTracker()
    >>> tracker.start_episode()
    >>> tracker.end_episode(steps=200, training_time=0.05)
    >>> tracker.total_episodes
    1
    """

    def __init__(
        self,
        window: float = SAMPLE_WINDOW,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.window = window
        self._clock = clock if clock is not None else time.monotonic
        self.reset()

    def reset(self) -> None:
        now = self._clock()
        self.start_time = now
        self._episode_start = now
        self.total_episodes = 0
        self.total_steps = 0
        self.total_training_time = 0.0
        self.episodes_per_minute = 0.0
        self.steps_per_second = 0.0
        self.training_efficiency = 0.0
        self._episodes: Deque[_EpisodeSample] = deque(maxlen=MAX_EPISODE_SAMPLES)
        self._steps: Deque[float] = deque(maxlen=MAX_STEP_SAMPLES)

    def start_episode(self) -> None:
        self._episode_start = self._clock()

    def end_episode(self, steps: int, training_time: float = 0.0) -> None:
        """
        Record a finished episode.

        Parameters
        ----------
        steps : int
            Steps in the episode
        training_time : float
            Seconds spent in training updates during the episode
        """
        now = self._clock()
        self.total_episodes += 1
        self.total_steps += steps
        self.total_training_time += training_time
        self._episodes.append(
            _EpisodeSample(now, now - self._episode_start, steps, training_time)
        )
        self._drop_old_samples(now)
        self._update_rates(now)

    def record_step(self) -> None:
        now = self._clock()
        self._steps.append(now)
        if len(self._steps) % 100 == 0:
            self._drop_old_samples(now)

    def _drop_old_samples(self, now: float) -> None:
        cutoff = now - self.window
        while self._episodes and self._episodes[0].timestamp <= cutoff:
            self._episodes.popleft()
        while self._steps and self._steps[0] <= cutoff:
            self._steps.popleft()

    def _update_rates(self, now: float) -> None:
        if self._episodes:
            span = (now - self._episodes[0].timestamp) / 60.0
            self.episodes_per_minute = len(self._episodes) / span if span > 0 else 0.0

            episode_time = sum(ep.duration for ep in self._episodes)
            training_time = sum(ep.training_time for ep in self._episodes)
            self.training_efficiency = (
                100.0 * training_time / episode_time if episode_time > 0 else 0.0
            )

        span = now - self._steps[0] if self._steps else 0.0
        self.steps_per_second = len(self._steps) / span if span > 0 else 0.0

    def get_stats(self) -> Dict[str, float]:
        return {
            "totalEpisodes": self.total_episodes,
            "totalSteps": self.total_steps,
            "episodesPerMinute": self.episodes_per_minute,
            "stepsPerSecond": self.steps_per_second,
            "trainingEfficiency": self.training_efficiency,
            "totalTrainingTime": self.total_training_time,
            "elapsedTime": self._clock() - self.start_time,
        }
