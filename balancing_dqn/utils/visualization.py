"""
Visualization Utilities.

Plotting functions for training analysis.

Core Idea (核心思想)
====================
用matplotlib替代浏览器图表：
- 训练曲线（奖励、长度、损失、探索率）
- 策略切片：固定角速度时，各动作Q值随倾角的变化
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Tuple, Union

import numpy as np

from balancing_dqn.utils.metrics import TrainingMetrics

ACTION_LABELS = ("Left (-1)", "Brake (0)", "Right (+1)")


def _pyplot():
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        raise ImportError(
            "matplotlib required for plotting. "
            "Install with: pip install matplotlib"
        )
    return plt


def _finish(plt: Any, save_path: Optional[Union[str, Path]], show: bool) -> None:
    if save_path is not None:
        plt.savefig(save_path, dpi=150, bbox_inches="tight")
    if show:
        plt.show()
    else:
        plt.close()


def plot_training_curves(
    metrics: TrainingMetrics,
    title: str = "Balancing Robot Training",
    smoothing_window: int = 10,
    save_path: Optional[Union[str, Path]] = None,
    show: bool = True,
) -> None:
    """
    Plot a 2×2 overview of a training run.

    Parameters
    ----------
    metrics : TrainingMetrics
        Per-episode statistics from the agent
    title : str
        Figure title
    smoothing_window : int, default=10
        Window size for the moving average of rewards
    save_path : Optional[Union[str, Path]]
        Path to save the figure
    show : bool, default=True
        Whether to display the plot

    Examples
    --------
    >>> agent.run_training(robot)
    >>> plot_training_curves(agent.get_metrics(), show=False, save_path="curves.png")
    """
    plt = _pyplot()
    fig, axes = plt.subplots(2, 2, figsize=(14, 10))

    ax1 = axes[0, 0]
    rewards = metrics.episode_rewards
    if rewards:
        smoothed = metrics.get_smoothed_rewards(smoothing_window)
        ax1.plot(rewards, alpha=0.3, color="blue", label="Raw")
        ax1.plot(smoothed, color="blue", linewidth=2, label=f"Smoothed ({smoothing_window})")
        if metrics.converged:
            ax1.axvline(
                metrics.convergence_episode - 1,
                color="red",
                linestyle="--",
                label=f"Converged (episode {metrics.convergence_episode})",
            )
        ax1.legend()
    ax1.set_xlabel("Episode")
    ax1.set_ylabel("Reward")
    ax1.set_title("Episode Rewards")
    ax1.grid(True, alpha=0.3)

    ax2 = axes[0, 1]
    if metrics.episode_lengths:
        ax2.plot(metrics.episode_lengths, alpha=0.5, color="green")
        ax2.axhline(metrics.get_average_length(), color="red", linestyle="--")
    ax2.set_xlabel("Episode")
    ax2.set_ylabel("Steps")
    ax2.set_title("Episode Lengths")
    ax2.grid(True, alpha=0.3)

    ax3 = axes[1, 0]
    if metrics.losses:
        ax3.plot(metrics.losses, alpha=0.5, color="orange")
    ax3.set_xlabel("Episode")
    ax3.set_ylabel("Mean Huber Loss")
    ax3.set_title("Training Loss")
    ax3.grid(True, alpha=0.3)

    ax4 = axes[1, 1]
    if metrics.epsilon_history:
        ax4.plot(metrics.epsilon_history, color="purple")
    ax4.set_xlabel("Episode")
    ax4.set_ylabel("Epsilon")
    ax4.set_title("Exploration Rate")
    ax4.grid(True, alpha=0.3)

    fig.suptitle(title, fontsize=14)
    plt.tight_layout()
    _finish(plt, save_path, show)


def plot_q_values(
    agent: Any,
    angle_range: Tuple[float, float] = (-1.0, 1.0),
    angular_velocity: float = 0.0,
    num_points: int = 101,
    title: str = "Q-Values vs. Tilt",
    save_path: Optional[Union[str, Path]] = None,
    show: bool = True,
) -> None:
    """
    Plot Q(s, a) for every action across a sweep of normalized angles.

    Older timesteps of a multi-timestep input repeat the same
    (angle, angular_velocity) pair.

    Parameters
    ----------
    agent : QLearningAgent
        Initialized agent
    angle_range : Tuple[float, float]
        Normalized angle interval to sweep
    angular_velocity : float
        Normalized angular velocity held fixed during the sweep
    num_points : int
        Resolution of the sweep
    """
    plt = _pyplot()
    angles = np.linspace(angle_range[0], angle_range[1], num_points)
    timesteps = agent.input_size // 2

    q_values = np.array(
        [
            agent.get_all_q_values(np.tile([angle, angular_velocity], timesteps))
            for angle in angles
        ]
    )

    fig, ax = plt.subplots(figsize=(10, 6))
    for action, label in enumerate(ACTION_LABELS):
        ax.plot(angles, q_values[:, action], linewidth=2, label=label)

    greedy = np.argmax(q_values, axis=1)
    ax.scatter(angles, q_values[np.arange(num_points), greedy], s=8, color="black", label="Greedy")

    ax.set_xlabel("Normalized Angle")
    ax.set_ylabel("Q-Value")
    ax.set_title(f"{title} (ω = {angular_velocity:+.2f})")
    ax.legend()
    ax.grid(True, alpha=0.3)
    plt.tight_layout()
    _finish(plt, save_path, show)
