"""
Utilities Module - Metrics, Throughput and Plotting.

Components:
    - TrainingMetrics: Per-episode statistics with convergence latch
    - PerformanceTracker: Episodes/minute and steps/second
    - plot_training_curves, plot_q_values: matplotlib figures
"""

from balancing_dqn.utils.metrics import TrainingMetrics
from balancing_dqn.utils.performance import PerformanceTracker
from balancing_dqn.utils.visualization import plot_q_values, plot_training_curves

__all__ = [
    "TrainingMetrics",
    "PerformanceTracker",
    "plot_q_values",
    "plot_training_curves",
]
