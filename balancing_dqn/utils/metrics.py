"""
Training Metrics and Convergence Detection.

Core Idea (核心思想)
====================
记录每个episode的奖励、长度、损失和探索率，提供滑动窗口平均，并以
"单向锁存"的方式检测收敛：一旦窗口平均奖励达到阈值，converged 永久为
True，并记录首次触发的episode序号（从1开始）。
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np


def _trailing_mean(values: List[float], window: int) -> float:
    if not values:
        return 0.0
    return float(np.mean(values[-max(1, int(window)):]))


@dataclass
class TrainingMetrics:
    """
    Append-only per-episode statistics.

    Attributes
    ----------
    episode_rewards : List[float]
        Total reward of every episode
    episode_lengths : List[int]
        Steps of every episode
    losses : List[float]
        Mean training loss of every episode
    epsilon_history : List[float]
        Exploration rate at the end of every episode
    best_reward : float
        Highest episode reward seen, -inf before the first episode
    total_steps : int
        Sum of all episode lengths
    converged : bool
        Convergence latch
    convergence_episode : Optional[int]
        1-based index of the episode that first triggered convergence

    Examples
    --------
    >>> metrics = TrainingMetrics()
    >>> metrics.add_episode(120.0, 120, 0.01, 0.1)
    >>> metrics.get_average_reward(100)
    120.0
    """

    episode_rewards: List[float] = field(default_factory=list)
    episode_lengths: List[int] = field(default_factory=list)
    losses: List[float] = field(default_factory=list)
    epsilon_history: List[float] = field(default_factory=list)
    best_reward: float = float("-inf")
    total_steps: int = 0
    converged: bool = False
    convergence_episode: Optional[int] = None
    _start_time: float = field(
        default_factory=time.time, init=False, compare=False, repr=False
    )

    @property
    def num_episodes(self) -> int:
        return len(self.episode_rewards)

    def add_episode(self, reward: float, length: int, loss: float, epsilon: float) -> None:
        self.episode_rewards.append(float(reward))
        self.episode_lengths.append(int(length))
        self.losses.append(float(loss))
        self.epsilon_history.append(float(epsilon))
        self.total_steps += int(length)
        self.best_reward = max(self.best_reward, float(reward))

    def get_average_reward(self, window: int = 100) -> float:
        """Mean of the last ``window`` rewards (all of them if fewer)."""
        return _trailing_mean(self.episode_rewards, window)

    def get_average_length(self, window: int = 100) -> float:
        return _trailing_mean(self.episode_lengths, window)

    def check_convergence(self, threshold: float, window: int) -> bool:
        """
        Latch convergence once the trailing average reaches ``threshold``.

        Nothing is evaluated until at least ``window`` episodes exist.
        Once latched, later regressions do not clear the flag.
        """
        if self.converged:
            return True
        if len(self.episode_rewards) < window:
            return False
        if self.get_average_reward(window) >= threshold:
            self.converged = True
            self.convergence_episode = len(self.episode_rewards)
        return self.converged

    def get_training_time(self) -> float:
        """Seconds since creation or last reset."""
        return time.time() - self._start_time

    def get_smoothed_rewards(self, window: int = 10) -> np.ndarray:
        """Moving average of rewards, same length as the reward series."""
        rewards = np.asarray(self.episode_rewards, dtype=np.float64)
        if rewards.size == 0:
            return rewards
        window = max(1, min(int(window), rewards.size))
        cumulative = np.cumsum(np.insert(rewards, 0, 0.0))
        counts = np.minimum(np.arange(1, rewards.size + 1), window)
        starts = np.arange(1, rewards.size + 1) - counts
        return (cumulative[1:] - cumulative[starts]) / counts

    def get_summary(self) -> Dict[str, Any]:
        return {
            "totalEpisodes": self.num_episodes,
            "totalSteps": self.total_steps,
            "averageReward": self.get_average_reward(100),
            "averageLength": self.get_average_length(100),
            "bestReward": self.best_reward if self.num_episodes else 0.0,
            "converged": self.converged,
            "convergenceEpisode": self.convergence_episode,
            "trainingTime": self.get_training_time(),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Full series for the saved model file."""
        return {
            "episodeRewards": list(self.episode_rewards),
            "episodeLengths": list(self.episode_lengths),
            "losses": list(self.losses),
            "epsilonHistory": list(self.epsilon_history),
            "bestReward": self.best_reward if self.num_episodes else None,
            "totalSteps": self.total_steps,
            "converged": self.converged,
            "convergenceEpisode": self.convergence_episode,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrainingMetrics":
        best = data.get("bestReward")
        return cls(
            episode_rewards=[float(r) for r in data.get("episodeRewards", [])],
            episode_lengths=[int(n) for n in data.get("episodeLengths", [])],
            losses=[float(x) for x in data.get("losses", [])],
            epsilon_history=[float(e) for e in data.get("epsilonHistory", [])],
            best_reward=float("-inf") if best is None else float(best),
            total_steps=int(data.get("totalSteps", 0)),
            converged=bool(data.get("converged", False)),
            convergence_episode=data.get("convergenceEpisode"),
        )

    def reset(self) -> None:
        self.episode_rewards.clear()
        self.episode_lengths.clear()
        self.losses.clear()
        self.epsilon_history.clear()
        self.best_reward = float("-inf")
        self.total_steps = 0
        self.converged = False
        self.convergence_episode = None
        self._start_time = time.time()
