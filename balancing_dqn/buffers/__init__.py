"""
Buffers Module - Experience Replay.

Components:
    - ReplayBuffer: Fixed-capacity ring buffer with uniform sampling
"""

from balancing_dqn.buffers.replay import ReplayBuffer

__all__ = ["ReplayBuffer"]
