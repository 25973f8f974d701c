"""
Q-Learning Agent for the Balancing Robot.

Core Idea (核心思想)
====================
DQN控制器：ε-贪心选择离散扭矩，经验存入回放缓冲区，从缓冲区采样后
逐样本地计算TD误差并手动更新在线网络，目标网络按训练步数周期性完整复制。

State Machine (状态机)
======================
    Uninitialized --initialize()--> Ready
    Ready --select_action()/train()--> Ready
    Ready --reset()--> Ready            (networks re-randomized)
    Ready --save()/load()--> Ready      (weights swapped in place)

Mathematical Foundation (数学基础)
==================================
TD target with target network Q⁻:

    y = r                          if done
    y = r + γ · max_a' Q⁻(s', a')  otherwise

    δ = clip(y - Q(s, a), -5, 5)

Reported loss is the Huber loss of δ with threshold 1:

    L(δ) = ½δ²          if |δ| ≤ 1
    L(δ) = |δ| - ½      otherwise

Exploration decays linearly with training steps t:

    ε_t = ε_0 + (ε_min - ε_0) · min(1, t / epsilon_decay)

Notes
-----
"Batch size" is the number of sequential single-sample updates per
training call, not a vectorized minibatch average.
"""

from __future__ import annotations

import copy
import json
import logging
import random
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import numpy as np

from balancing_dqn.buffers.replay import ReplayBuffer
from balancing_dqn.core.config import Hyperparameters
from balancing_dqn.core.enums import InitMethod
from balancing_dqn.core.types import Environment, FloatArray
from balancing_dqn.networks.architecture import OUTPUT_SIZE
from balancing_dqn.networks.q_network import QNetwork
from balancing_dqn.utils.metrics import TrainingMetrics
from balancing_dqn.utils.performance import PerformanceTracker

logger = logging.getLogger(__name__)

MODEL_FORMAT_VERSION = 1
TD_ERROR_CLIP = 5.0
HUBER_DELTA = 1.0
INSTABILITY_PENALTY = -10.0

EpisodeCallback = Callable[[Dict[str, Any], TrainingMetrics], Optional[bool]]


def huber_loss(error: float, delta: float = HUBER_DELTA) -> float:
    """
    Huber loss of a scalar error.

    Examples
    --------
    >>> huber_loss(0.5)
    0.125
    >>> huber_loss(3.0)
    2.5
    """
    magnitude = abs(error)
    if magnitude <= delta:
        return 0.5 * error * error
    return delta * (magnitude - 0.5 * delta)


class QLearningAgent:
    """
    DQN controller with experience replay and a target network.

    Parameters
    ----------
    hyperparams : Optional[Hyperparameters]
        Training hyperparameters; copied, never shared
    seed : Optional[int]
        Seed for exploration, replay sampling and weight initialization
    **overrides
        Individual hyperparameter fields applied on top of ``hyperparams``

    Attributes
    ----------
    ACTIONS : Tuple[float, float, float]
        Motor torques for action indices 0 (left), 1 (brake), 2 (right)
    q_network : QNetwork
        Online network, updated every training step
    target_network : QNetwork
        Delayed copy used for bootstrap targets
    replay_buffer : ReplayBuffer
        Transition store
    metrics : TrainingMetrics
        Per-episode statistics

    Examples
    --------
    >>> from balancing_dqn.physics import BalancingRobot
    >>> agent = QLearningAgent(hidden_size=8, max_episodes=50)
    >>> agent.initialize(input_size=2)
    >>> summary = agent.run_training(BalancingRobot())
    """

    ACTIONS = (-1.0, 0.0, 1.0)

    def __init__(
        self,
        hyperparams: Optional[Hyperparameters] = None,
        seed: Optional[int] = None,
        **overrides: Any,
    ) -> None:
        params = hyperparams.clone() if hyperparams is not None else Hyperparameters()
        if overrides:
            params = Hyperparameters.from_dict({**params.to_dict(), **overrides})
        self.hyperparams = params

        self.seed = seed
        self._rng = random.Random(seed)
        self._np_rng = np.random.default_rng(seed)

        self.num_actions = len(self.ACTIONS)
        self.input_size = 0
        self.init_method = InitMethod.HE
        self.q_network: Optional[QNetwork] = None
        self.target_network: Optional[QNetwork] = None
        self.replay_buffer = ReplayBuffer(params.replay_buffer_size, rng=self._rng)

        self.metrics = TrainingMetrics()
        self.performance = PerformanceTracker()
        self.episode = 0
        self.step_count = 0
        self.last_target_update = 0
        self.initial_epsilon: Optional[float] = None
        self.is_initialized = False

    @property
    def epsilon(self) -> float:
        return self.hyperparams.epsilon

    def initialize(
        self,
        input_size: int = 2,
        init_method: Union[InitMethod, str] = InitMethod.HE,
    ) -> None:
        """
        Create the online network and its target copy.

        Parameters
        ----------
        input_size : int, default=2
            Length of the normalized state vector (2 per history timestep)
        init_method : InitMethod, default=HE
            Weight initialization scheme

        Raises
        ------
        ArchitectureError
            If ``input_size`` or the hidden size is unsupported
        """
        self.init_method = InitMethod(init_method)
        self.q_network = QNetwork(rng=self._np_rng).create_network(
            input_size, self.hyperparams.hidden_size, OUTPUT_SIZE, self.init_method
        )
        self.target_network = self.q_network.clone()
        self.input_size = input_size
        self.is_initialized = True

        logger.info(
            f"Q-learning initialized: {input_size}-{self.hyperparams.hidden_size}-"
            f"{OUTPUT_SIZE} network, {self.q_network.get_parameter_count()} parameters"
        )

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise RuntimeError("Q-learning not initialized. Call initialize() first.")

    def _check_state(self, state: Any) -> FloatArray:
        state = np.asarray(state, dtype=np.float32).reshape(-1)
        if state.shape[0] != self.input_size:
            raise ValueError(
                f"Invalid state: expected length {self.input_size}, got {state.shape[0]}"
            )
        return state

    def _check_action(self, action: Any) -> int:
        if isinstance(action, bool) or not isinstance(action, (int, np.integer)):
            raise ValueError(f"Invalid action: {action!r}")
        if not 0 <= action < self.num_actions:
            raise ValueError(f"Invalid action: {action}. Must be in [0, {self.num_actions})")
        return int(action)

    def select_action(self, state: Any, training: bool = True) -> int:
        """
        ε-greedy action selection.

        Exploration only happens when ``training`` is True. Greedy ties
        resolve to the lowest action index.

        Returns
        -------
        int
            Action index in [0, 3)
        """
        self._require_initialized()
        state = self._check_state(state)

        if training and self._rng.random() < self.hyperparams.epsilon:
            return self._rng.randrange(self.num_actions)

        q_values = self.q_network.forward(state)
        return int(np.argmax(q_values))

    def train(
        self,
        state: Any,
        action: int,
        reward: float,
        next_state: Any,
        done: bool,
    ) -> float:
        """
        Store a transition and run one round of replay updates.

        Every call advances the step counter and the exploration schedule.
        Updates start once the buffer holds ``batch_size`` transitions.

        Returns
        -------
        float
            Mean Huber loss over the sampled batch, 0.0 if no update ran

        Raises
        ------
        ValueError
            If the action index or a state length is invalid
        """
        self._require_initialized()
        action = self._check_action(action)
        state = self._check_state(state)
        next_state = self._check_state(next_state)

        self.replay_buffer.add(state, action, reward, next_state, done)
        self.step_count += 1
        self._update_epsilon()

        loss = 0.0
        if self.replay_buffer.size() >= self.hyperparams.batch_size:
            loss = self._train_batch()

        if self.step_count - self.last_target_update >= self.hyperparams.target_update_freq:
            self._update_target_network()
            self.last_target_update = self.step_count

        return loss

    def _update_epsilon(self) -> None:
        params = self.hyperparams
        if self.initial_epsilon is None:
            self.initial_epsilon = params.epsilon

        progress = min(1.0, self.step_count / params.epsilon_decay)
        params.epsilon = self.initial_epsilon + (params.epsilon_min - self.initial_epsilon) * progress

    def _train_batch(self) -> float:
        params = self.hyperparams
        batch = self.replay_buffer.sample(params.batch_size)
        if not batch:
            return 0.0

        total_loss = 0.0
        for experience in batch:
            current_q = float(self.q_network.forward(experience.state)[experience.action])

            if experience.done:
                target_q = experience.reward
            else:
                next_q = self.target_network.forward(experience.next_state)
                target_q = experience.reward + params.gamma * float(np.max(next_q))

            td_error = float(np.clip(target_q - current_q, -TD_ERROR_CLIP, TD_ERROR_CLIP))
            total_loss += huber_loss(td_error)
            self.q_network.backward(experience.action, td_error, params.learning_rate)

        return total_loss / len(batch)

    def _update_target_network(self) -> None:
        self.target_network.copy_weights_from(self.q_network)
        logger.debug(f"Target network synchronized at step {self.step_count}")

    def run_episode(
        self,
        environment: Environment,
        verbose: bool = False,
        initial_state: Optional[Mapping[str, float]] = None,
    ) -> Dict[str, Any]:
        """
        Run one training episode.

        The episode ends when the environment reports ``done``, when the
        physics becomes numerically unstable (recorded as a terminal
        transition with reward -10), or after ``max_steps_per_episode``.

        Returns
        -------
        Dict[str, Any]
            episode, totalReward, steps, averageLoss, epsilon, failed, unstable
        """
        self._require_initialized()
        environment.reset(initial_state)
        state = environment.get_normalized_inputs()

        total_reward = 0.0
        steps = 0
        total_loss = 0.0
        loss_count = 0
        training_time = 0.0
        done = False
        unstable = False

        self.performance.start_episode()
        for step in range(self.hyperparams.max_steps_per_episode):
            action = self.select_action(state, training=True)
            result = environment.step(self.ACTIONS[action])
            next_state = environment.get_normalized_inputs()
            reward, done = result.reward, result.done

            if not environment.is_stable():
                logger.warning(
                    f"Physics became unstable at step {step} of episode "
                    f"{self.episode + 1}, ending episode"
                )
                next_state = np.nan_to_num(next_state, nan=0.0, posinf=1.0, neginf=-1.0)
                reward, done, unstable = INSTABILITY_PENALTY, True, True

            start = time.perf_counter()
            loss = self.train(state, action, reward, next_state, done)
            training_time += time.perf_counter() - start
            if loss > 0:
                total_loss += loss
                loss_count += 1

            self.performance.record_step()
            total_reward += reward
            steps += 1
            state = next_state
            if done:
                break

        self.episode += 1
        average_loss = total_loss / loss_count if loss_count else 0.0
        self.metrics.add_episode(total_reward, steps, average_loss, self.epsilon)
        self.performance.end_episode(steps, training_time)

        if verbose:
            logger.info(
                f"Episode {self.episode}: reward={total_reward:.2f}, steps={steps}, "
                f"loss={average_loss:.4f}, epsilon={self.epsilon:.3f}"
            )

        return {
            "episode": self.episode,
            "totalReward": total_reward,
            "steps": steps,
            "averageLoss": average_loss,
            "epsilon": self.epsilon,
            "failed": done,
            "unstable": unstable,
        }

    def run_training(
        self,
        environment: Environment,
        on_episode_end: Optional[EpisodeCallback] = None,
        early_stop: bool = False,
        verbose: bool = False,
        log_interval: int = 100,
        initial_angle_range: float = 0.0,
    ) -> Dict[str, Any]:
        """
        Train for up to ``max_episodes`` episodes.

        Parameters
        ----------
        environment : Environment
            Simulator to train on
        on_episode_end : Optional[EpisodeCallback]
            Called with (episode result, metrics) after every episode;
            returning ``False`` stops training
        early_stop : bool, default=False
            Stop as soon as convergence is detected
        verbose : bool, default=False
            Log progress every ``log_interval`` episodes
        log_interval : int, default=100
        initial_angle_range : float, default=0.0
            When positive, every episode starts from an angle drawn
            uniformly from ±``initial_angle_range`` rad; otherwise upright

        Returns
        -------
        Dict[str, Any]
            Metrics summary
        """
        self._require_initialized()
        params = self.hyperparams
        logger.info(f"Starting training for up to {params.max_episodes} episodes")

        for _ in range(params.max_episodes):
            initial_state = None
            if initial_angle_range > 0:
                initial_state = {
                    "angle": self._rng.uniform(-initial_angle_range, initial_angle_range)
                }
            result = self.run_episode(environment, initial_state=initial_state)

            was_converged = self.metrics.converged
            converged = self.metrics.check_convergence(
                params.convergence_threshold, params.convergence_window
            )
            if converged and not was_converged:
                logger.info(
                    f"Converged at episode {self.metrics.convergence_episode} "
                    f"(average reward {self.metrics.get_average_reward(params.convergence_window):.2f})"
                )

            if verbose and self.episode % log_interval == 0:
                logger.info(
                    f"Episode {self.episode:5d} | "
                    f"Avg Reward: {self.metrics.get_average_reward(log_interval):8.2f} | "
                    f"Avg Steps: {self.metrics.get_average_length(log_interval):7.1f} | "
                    f"ε: {self.epsilon:.3f}"
                )

            if on_episode_end is not None and on_episode_end(result, self.metrics) is False:
                logger.info(f"Training stopped by callback after episode {self.episode}")
                break
            if early_stop and converged:
                logger.info("Early stopping: convergence reached")
                break

        return self.metrics.get_summary()

    def evaluate(self, environment: Environment, num_episodes: int = 10) -> Dict[str, Any]:
        """
        Run greedy episodes without training.

        Epsilon is forced to 0 for the duration and restored afterwards.

        Returns
        -------
        Dict[str, Any]
            episodes, averageReward, bestReward, worstReward, averageSteps,
            and per-episode results
        """
        self._require_initialized()
        saved_epsilon = self.hyperparams.epsilon
        self.hyperparams.epsilon = 0.0
        results: List[Dict[str, Any]] = []

        try:
            for episode in range(num_episodes):
                environment.reset()
                state = environment.get_normalized_inputs()
                total_reward = 0.0
                steps = 0

                for _ in range(self.hyperparams.max_steps_per_episode):
                    action = self.select_action(state, training=False)
                    result = environment.step(self.ACTIONS[action])
                    total_reward += result.reward
                    steps += 1
                    state = environment.get_normalized_inputs()
                    if result.done or not environment.is_stable():
                        break

                results.append({"episode": episode + 1, "reward": total_reward, "steps": steps})
        finally:
            self.hyperparams.epsilon = saved_epsilon

        rewards = [r["reward"] for r in results]
        return {
            "episodes": num_episodes,
            "averageReward": float(np.mean(rewards)) if rewards else 0.0,
            "bestReward": max(rewards) if rewards else 0.0,
            "worstReward": min(rewards) if rewards else 0.0,
            "averageSteps": float(np.mean([r["steps"] for r in results])) if results else 0.0,
            "results": results,
        }

    def get_q_value(self, state: Any, action: int) -> float:
        self._require_initialized()
        action = self._check_action(action)
        return float(self.q_network.forward(self._check_state(state))[action])

    def get_all_q_values(self, state: Any) -> FloatArray:
        """Q-values of all actions for ``state`` (a copy)."""
        self._require_initialized()
        return self.q_network.forward(self._check_state(state)).copy()

    def get_weights(self) -> Dict[str, Any]:
        self._require_initialized()
        return self.q_network.get_weights()

    def get_metrics(self) -> TrainingMetrics:
        return copy.deepcopy(self.metrics)

    def get_summary(self) -> Dict[str, Any]:
        summary = self.metrics.get_summary()
        summary.update(
            {
                "episode": self.episode,
                "stepCount": self.step_count,
                "epsilon": self.epsilon,
                "bufferSize": self.replay_buffer.size(),
            }
        )
        return summary

    def get_stats(self) -> Dict[str, Any]:
        stats = {
            "isInitialized": self.is_initialized,
            "episode": self.episode,
            "stepCount": self.step_count,
            "epsilon": self.epsilon,
            "bufferSize": self.replay_buffer.size(),
            "bufferCapacity": self.replay_buffer.max_size,
            "lastTargetUpdate": self.last_target_update,
            "hyperparameters": self.hyperparams.to_dict(),
            "performance": self.performance.get_stats(),
        }
        if self.is_initialized:
            stats["architecture"] = self.q_network.get_architecture()
            stats["memoryUsage"] = self.q_network.get_memory_usage()
        return stats

    def save(self) -> Dict[str, Any]:
        """
        Serialize hyperparameters, both networks and counters.

        The result is a JSON-compatible dict; ``load(save())`` reproduces
        the same Q-values.
        """
        self._require_initialized()
        return {
            "version": MODEL_FORMAT_VERSION,
            "hyperparameters": self.hyperparams.to_dict(),
            "weights": self.q_network.get_weights(),
            "targetWeights": self.target_network.get_weights(),
            "episode": self.episode,
            "stepCount": self.step_count,
            "lastTargetUpdate": self.last_target_update,
            "initialEpsilon": self.initial_epsilon,
            "actions": list(self.ACTIONS),
            "metrics": self.metrics.to_dict(),
            "timestamp": datetime.now().isoformat(),
        }

    def load(self, model_data: Mapping[str, Any]) -> None:
        """
        Restore a model produced by :meth:`save`.

        The networks are rebuilt when the saved input or hidden size
        differs from the live one.

        Raises
        ------
        ValueError
            If the model format version is newer than supported
        """
        version = int(model_data.get("version", MODEL_FORMAT_VERSION))
        if version > MODEL_FORMAT_VERSION:
            raise ValueError(
                f"Unsupported model version {version} "
                f"(this build reads up to {MODEL_FORMAT_VERSION})"
            )

        if "hyperparameters" in model_data:
            self.hyperparams = Hyperparameters.from_dict(model_data["hyperparameters"])

        weights = model_data["weights"]
        arch = weights["architecture"]
        input_size = int(arch["inputSize"])
        hidden_size = int(arch["hiddenSize"])

        if (
            not self.is_initialized
            or input_size != self.q_network.input_size
            or hidden_size != self.q_network.hidden_size
        ):
            logger.info(f"Rebuilding networks for saved architecture {input_size}-{hidden_size}")
            self.hyperparams.hidden_size = hidden_size
            self.initialize(input_size, weights.get("initMethod", InitMethod.HE.value))

        self.q_network.set_weights(weights)
        self.target_network.set_weights(model_data.get("targetWeights", weights))

        if self.replay_buffer.max_size != self.hyperparams.replay_buffer_size:
            self.replay_buffer = ReplayBuffer(self.hyperparams.replay_buffer_size, rng=self._rng)

        self.episode = int(model_data.get("episode", 0))
        self.step_count = int(model_data.get("stepCount", 0))
        self.last_target_update = int(model_data.get("lastTargetUpdate", self.step_count))
        self.initial_epsilon = model_data.get("initialEpsilon")
        if "metrics" in model_data:
            self.metrics = TrainingMetrics.from_dict(model_data["metrics"])

        logger.info(f"Model loaded (episode {self.episode}, step {self.step_count})")

    def save_checkpoint(self, path: Union[str, Path]) -> None:
        """Write :meth:`save` output to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.save(), f)
        logger.info(f"Checkpoint saved to {path}")

    def load_checkpoint(self, path: Union[str, Path]) -> None:
        with open(path, "r", encoding="utf-8") as f:
            self.load(json.load(f))
        logger.info(f"Checkpoint loaded from {path}")

    def reset(self) -> None:
        """Clear all training state and re-randomize the networks."""
        self.metrics.reset()
        self.performance.reset()
        self.replay_buffer.clear()
        self.episode = 0
        self.step_count = 0
        self.last_target_update = 0
        if self.initial_epsilon is not None:
            self.hyperparams.epsilon = self.initial_epsilon
            self.initial_epsilon = None

        if self.is_initialized:
            self.q_network.reset_weights()
            self.target_network = self.q_network.clone()
        logger.info("Q-learning reset")


def create_default_agent(**overrides: Any) -> QLearningAgent:
    return QLearningAgent(**overrides)


def create_fast_agent() -> QLearningAgent:
    """Agent tuned for short training runs."""
    return QLearningAgent(
        learning_rate=0.01,
        epsilon=0.3,
        epsilon_decay=1000,
        batch_size=16,
        target_update_freq=50,
        max_episodes=500,
        hidden_size=6,
    )


def create_optimal_agent() -> QLearningAgent:
    """Agent tuned for final balancing performance."""
    return QLearningAgent(
        learning_rate=0.001,
        epsilon=0.1,
        epsilon_decay=5000,
        batch_size=32,
        target_update_freq=100,
        max_episodes=2000,
        hidden_size=12,
        convergence_threshold=300.0,
    )
