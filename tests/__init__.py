"""Unit tests for the balancing robot DQN."""
