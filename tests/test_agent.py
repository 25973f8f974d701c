"""
Unit Tests for the Q-Learning Agent.

Tests action selection, the training step, the exploration schedule,
target network synchronization, persistence and the episode loop.
"""

from __future__ import annotations

import json
import os
import tempfile
import unittest

import numpy as np

from balancing_dqn.agents.q_learning import (
    QLearningAgent,
    create_fast_agent,
    create_optimal_agent,
    huber_loss,
)
from balancing_dqn.core.types import StepResult
from balancing_dqn.physics.robot import BalancingRobot

AGENT_LOGGER = "balancing_dqn.agents.q_learning"


class UnstableEnvironment:
    """Environment whose physics blows up on the first step."""

    def __init__(self):
        self.steps = 0

    def reset(self, initial_state=None):
        self.steps = 0

    def step(self, motor_torque):
        self.steps += 1
        return StepResult(None, 1.0, False)

    def get_normalized_inputs(self):
        if self.steps:
            return np.array([np.nan, 0.0], dtype=np.float32)
        return np.zeros(2, dtype=np.float32)

    def is_stable(self):
        return self.steps == 0


class TestHuberLoss(unittest.TestCase):
    """Test cases for huber_loss."""

    def test_quadratic_and_linear_regions(self):
        """Quadratic inside ±1, linear outside."""
        self.assertEqual(huber_loss(0.5), 0.125)
        self.assertEqual(huber_loss(-3.0), 2.5)
        self.assertEqual(huber_loss(1.0), 0.5)


class TestActionSelection(unittest.TestCase):
    """Test cases for select_action."""

    def setUp(self):
        """Initialized 2-8-3 agent."""
        self.agent = QLearningAgent(seed=0)
        self.agent.initialize(input_size=2)
        self.state = np.array([0.2, -0.1], dtype=np.float32)

    def test_uninitialized_agent_raises(self):
        """Selecting or training before initialize() is an error."""
        agent = QLearningAgent()
        with self.assertRaises(RuntimeError):
            agent.select_action(self.state)
        with self.assertRaises(RuntimeError):
            agent.train(self.state, 0, 1.0, self.state, False)

    def test_greedy_without_exploration(self):
        """ε = 0 always picks argmax Q."""
        self.agent.hyperparams.epsilon = 0.0
        expected = int(np.argmax(self.agent.get_all_q_values(self.state)))
        for _ in range(100):
            self.assertEqual(self.agent.select_action(self.state), expected)

    def test_full_exploration_covers_actions(self):
        """ε = 1 picks uniformly at random while training."""
        self.agent.hyperparams.epsilon = 1.0
        actions = {self.agent.select_action(self.state) for _ in range(200)}
        self.assertEqual(actions, {0, 1, 2})

    def test_evaluation_ignores_epsilon(self):
        """training=False is always greedy."""
        self.agent.hyperparams.epsilon = 1.0
        expected = int(np.argmax(self.agent.get_all_q_values(self.state)))
        for _ in range(20):
            self.assertEqual(self.agent.select_action(self.state, training=False), expected)

    def test_ties_pick_lowest_index(self):
        """Equal Q-values resolve to action 0."""
        self.agent.hyperparams.epsilon = 0.0
        self.agent.q_network.output_layer.weights[:] = 0.0
        self.agent.q_network.output_layer.bias[:] = 0.0
        self.assertEqual(self.agent.select_action(self.state), 0)

    def test_wrong_state_length(self):
        """State length must match the network input."""
        with self.assertRaises(ValueError):
            self.agent.select_action([0.0, 0.0, 0.0])


class TestTraining(unittest.TestCase):
    """Test cases for train()."""

    def setUp(self):
        """Small, fast-learning agent."""
        self.agent = QLearningAgent(
            seed=1, hidden_size=8, batch_size=2, learning_rate=0.1, epsilon=0.0
        )
        self.agent.initialize(input_size=2)
        self.state = np.array([0.5, -0.3], dtype=np.float32)

    def test_invalid_action(self):
        """Actions outside [0, 3) or of the wrong type are rejected."""
        for bad in (3, -1, 1.0, True):
            with self.assertRaises(ValueError):
                self.agent.train(self.state, bad, 1.0, self.state, False)

    def test_no_update_until_batch_available(self):
        """The first call only stores the transition."""
        before = self.agent.get_all_q_values(self.state)
        loss = self.agent.train(self.state, 0, 1.0, self.state, True)
        self.assertEqual(loss, 0.0)
        np.testing.assert_array_equal(self.agent.get_all_q_values(self.state), before)
        self.assertEqual(self.agent.step_count, 1)

    def test_zero_state_bias_update(self):
        """From a zero state only the output bias of the chosen action moves."""
        zero = np.zeros(2, dtype=np.float32)
        before = self.agent.get_all_q_values(zero)
        self.agent.train(zero, 0, 1.0, zero, True)
        loss = self.agent.train(zero, 0, 1.0, zero, True)
        after = self.agent.get_all_q_values(zero)

        self.assertGreater(loss, 0.0)
        self.assertAlmostEqual(float(after[0] - before[0]), 0.1, places=6)
        self.assertEqual(float(after[2]), float(before[2]))

    def test_two_experience_direction(self):
        """One rewarded and one punished transition widen Q0 - Q2."""
        before = self.agent.get_all_q_values(self.state)
        self.agent.train(self.state, 0, 2.0, self.state, True)
        self.agent.train(self.state, 2, -1.0, self.state, True)
        after = self.agent.get_all_q_values(self.state)
        self.assertGreater(after[0] - after[2], before[0] - before[2])

    def test_learns_preferred_action(self):
        """Rewarding action 0 and punishing action 2 separates their Q-values."""
        initial = self.agent.get_all_q_values(self.state)
        for _ in range(100):
            self.agent.train(self.state, 0, 1.0, self.state, True)
            self.agent.train(self.state, 2, -1.0, self.state, True)
        q_values = self.agent.get_all_q_values(self.state)

        self.assertGreater(q_values[0], q_values[2])
        self.assertLess(abs(q_values[0] - 1.0), abs(initial[0] - 1.0) + 1e-6)
        self.assertTrue(np.all(np.isfinite(q_values)))

    def test_linear_epsilon_decay(self):
        """ε moves linearly from its first-train value to epsilon_min."""
        agent = QLearningAgent(
            seed=2, epsilon=0.5, epsilon_min=0.1, epsilon_decay=10, batch_size=100
        )
        agent.initialize(input_size=2)
        for _ in range(5):
            agent.train(self.state, 1, 0.0, self.state, False)
        self.assertAlmostEqual(agent.epsilon, 0.3)
        for _ in range(10):
            agent.train(self.state, 1, 0.0, self.state, False)
        self.assertAlmostEqual(agent.epsilon, 0.1)
        self.assertEqual(agent.initial_epsilon, 0.5)

    def test_target_network_sync(self):
        """The target network is a full copy every target_update_freq steps."""
        agent = QLearningAgent(seed=3, target_update_freq=5, batch_size=1, learning_rate=0.1)
        agent.initialize(input_size=2)
        for _ in range(4):
            agent.train(self.state, 0, 1.0, self.state, False)
        self.assertFalse(
            np.array_equal(
                agent.target_network.output_layer.bias, agent.q_network.output_layer.bias
            )
        )

        agent.train(self.state, 0, 1.0, self.state, False)
        self.assertEqual(agent.last_target_update, 5)
        self.assertEqual(agent.target_network.get_weights(), agent.q_network.get_weights())


class TestPersistence(unittest.TestCase):
    """Test cases for save/load."""

    def setUp(self):
        """Agent with a few training steps."""
        self.agent = QLearningAgent(seed=4, batch_size=2, learning_rate=0.05)
        self.agent.initialize(input_size=2)
        self.state = np.array([0.3, 0.1], dtype=np.float32)
        for action in (0, 1, 2, 0):
            self.agent.train(self.state, action, 1.0, self.state, False)

    def _assert_same_q(self, other):
        np.testing.assert_allclose(
            other.get_all_q_values(self.state),
            self.agent.get_all_q_values(self.state),
            atol=1e-6,
        )

    def test_save_load_round_trip(self):
        """A fresh agent reproduces the saved Q-values and counters."""
        restored = QLearningAgent()
        restored.load(json.loads(json.dumps(self.agent.save())))
        self._assert_same_q(restored)
        self.assertEqual(restored.step_count, 4)
        self.assertEqual(restored.hyperparams, self.agent.hyperparams)

    def test_checkpoint_file(self):
        """Checkpoints round-trip through a JSON file."""
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "models", "robot.json")
            self.agent.save_checkpoint(path)
            restored = QLearningAgent()
            restored.load_checkpoint(path)
        self._assert_same_q(restored)

    def test_load_rebuilds_on_architecture_change(self):
        """Loading a wider network replaces the live one."""
        wide = QLearningAgent(seed=5, hidden_size=16)
        wide.initialize(input_size=2)
        self.agent.load(wide.save())
        self.assertEqual(self.agent.q_network.hidden_size, 16)
        self.assertEqual(self.agent.hyperparams.hidden_size, 16)

    def test_newer_version_rejected(self):
        """Unknown future formats are refused."""
        data = self.agent.save()
        data["version"] = 2
        with self.assertRaises(ValueError):
            self.agent.load(data)


class TestEpisodes(unittest.TestCase):
    """Test cases for the episode and training loops."""

    def setUp(self):
        """Short episodes on the default robot."""
        self.agent = QLearningAgent(seed=6, max_steps_per_episode=50, batch_size=8)
        self.agent.initialize(input_size=2)
        self.robot = BalancingRobot()

    def test_run_episode(self):
        """An episode reports its statistics and updates metrics."""
        result = self.agent.run_episode(self.robot)
        self.assertEqual(result["episode"], 1)
        self.assertLessEqual(result["steps"], 50)
        self.assertFalse(result["unstable"])
        self.assertEqual(self.agent.metrics.num_episodes, 1)
        self.assertEqual(self.agent.step_count, result["steps"])

    def test_unstable_physics_ends_episode(self):
        """Non-finite physics is a terminal transition with reward -10."""
        with self.assertLogs(AGENT_LOGGER, level="WARNING"):
            result = self.agent.run_episode(UnstableEnvironment())
        self.assertTrue(result["unstable"])
        self.assertEqual(result["steps"], 1)
        self.assertEqual(result["totalReward"], -10.0)
        stored = self.agent.replay_buffer.sample(1)[0]
        self.assertTrue(stored.done)
        self.assertTrue(np.all(np.isfinite(stored.next_state)))

    def test_callback_stops_training(self):
        """Returning False from the callback stops the loop."""
        self.agent.hyperparams.max_episodes = 5
        seen = []

        def on_episode_end(result, metrics):
            seen.append(result["episode"])
            return False

        summary = self.agent.run_training(self.robot, on_episode_end=on_episode_end)
        self.assertEqual(seen, [1])
        self.assertEqual(summary["totalEpisodes"], 1)

    def test_random_initial_angle(self):
        """initial_angle_range perturbs the starting tilt of every episode."""
        starts = []

        class RecordingRobot(BalancingRobot):
            def reset(self, initial_state=None):
                starts.append(initial_state)
                super().reset(initial_state)

        self.agent.hyperparams.max_episodes = 3
        self.agent.run_training(RecordingRobot(), initial_angle_range=0.05)
        angles = [s["angle"] for s in starts[1:]]
        self.assertEqual(len(angles), 3)
        self.assertTrue(all(abs(a) <= 0.05 for a in angles))
        self.assertGreater(len(set(angles)), 1)

    def test_upright_start_by_default(self):
        """Without a range, episodes start upright."""
        starts = []

        class RecordingRobot(BalancingRobot):
            def reset(self, initial_state=None):
                starts.append(initial_state)
                super().reset(initial_state)

        self.agent.hyperparams.max_episodes = 2
        self.agent.run_training(RecordingRobot())
        self.assertEqual(starts[1:], [None, None])

    def test_early_stop_on_convergence(self):
        """early_stop ends training at the first converged episode."""
        agent = QLearningAgent(
            seed=7,
            max_steps_per_episode=50,
            max_episodes=5,
            convergence_threshold=0.0,
            convergence_window=1,
        )
        agent.initialize(input_size=2)
        summary = agent.run_training(self.robot, early_stop=True)
        self.assertTrue(summary["converged"])
        self.assertEqual(summary["totalEpisodes"], 1)
        self.assertEqual(summary["convergenceEpisode"], 1)

    def test_evaluate_restores_epsilon(self):
        """Evaluation is greedy and leaves ε unchanged."""
        self.agent.hyperparams.epsilon = 0.7
        results = self.agent.evaluate(self.robot, num_episodes=2)
        self.assertEqual(len(results["results"]), 2)
        self.assertEqual(self.agent.epsilon, 0.7)
        self.assertEqual(self.agent.step_count, 0)

    def test_reset(self):
        """reset() clears counters, buffer and metrics."""
        self.agent.hyperparams.epsilon = 0.4
        self.agent.run_episode(self.robot)
        self.agent.reset()
        self.assertEqual(self.agent.step_count, 0)
        self.assertEqual(self.agent.episode, 0)
        self.assertEqual(self.agent.replay_buffer.size(), 0)
        self.assertEqual(self.agent.metrics.num_episodes, 0)
        self.assertEqual(self.agent.epsilon, 0.4)

    def test_history_input(self):
        """Multi-timestep robots feed a wider network."""
        robot = BalancingRobot(timesteps=2)
        agent = QLearningAgent(seed=8, max_steps_per_episode=20)
        agent.initialize(input_size=robot.input_size)
        result = agent.run_episode(robot)
        self.assertEqual(agent.q_network.input_size, 4)
        self.assertGreater(result["steps"], 0)

    def test_metrics_copy(self):
        """get_metrics() returns an independent snapshot."""
        self.agent.run_episode(self.robot)
        snapshot = self.agent.get_metrics()
        snapshot.episode_rewards.append(999.0)
        self.assertEqual(self.agent.metrics.num_episodes, 1)


class TestFactories(unittest.TestCase):
    """Test cases for agent factories."""

    def test_fast_agent(self):
        agent = create_fast_agent()
        self.assertEqual(agent.hyperparams.hidden_size, 6)
        self.assertEqual(agent.hyperparams.learning_rate, 0.01)
        self.assertEqual(agent.hyperparams.batch_size, 16)

    def test_optimal_agent(self):
        agent = create_optimal_agent()
        self.assertEqual(agent.hyperparams.hidden_size, 12)
        self.assertEqual(agent.hyperparams.convergence_threshold, 300.0)


if __name__ == "__main__":
    unittest.main()
