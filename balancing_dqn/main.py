"""
Command-line entry point for the balancing robot DQN.

Usage:
    balancing-dqn train [--episodes N] [--hidden-size H] [--reward-type TYPE]
                        [--timesteps T] [--seed S] [--save PATH] [--plot PATH]
                        [--initial-angle RAD] [--early-stop]
    balancing-dqn evaluate --load PATH [--episodes N] [--reward-type TYPE]

Examples:
    # Train 500 episodes with a 16-unit hidden layer and save the model
    balancing-dqn train --episodes 500 --hidden-size 16 --save models/robot.json

    # Use the last 4 timesteps as input and plot the learning curves
    balancing-dqn train --timesteps 4 --plot curves.png

    # Evaluate a saved model for 20 greedy episodes
    balancing-dqn evaluate --load models/robot.json --episodes 20
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from balancing_dqn.agents.q_learning import QLearningAgent
from balancing_dqn.core.config import RobotConfig
from balancing_dqn.physics.robot import BalancingRobot

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Train and evaluate a DQN controller for a two-wheel balancing robot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    train = subparsers.add_parser("train", help="Train a new controller")
    train.add_argument(
        "--episodes",
        type=int,
        default=1000,
        help="Maximum number of training episodes (default: 1000)",
    )
    train.add_argument(
        "--hidden-size",
        type=int,
        default=8,
        help="Hidden layer width, 4-256 (default: 8)",
    )
    train.add_argument(
        "--reward-type",
        type=str,
        default="simple",
        choices=["simple", "complex"],
        help="Reward function (default: simple)",
    )
    train.add_argument(
        "--timesteps",
        type=int,
        default=1,
        help="State history depth fed to the network, 1-8 (default: 1)",
    )
    train.add_argument("--seed", type=int, default=None, help="Random seed")
    train.add_argument("--save", type=str, default=None, help="Write the trained model (JSON)")
    train.add_argument("--plot", type=str, default=None, help="Save training curves to this image")
    train.add_argument(
        "--initial-angle",
        type=float,
        default=0.05,
        help="Half-width (rad) of the random initial tilt per episode, 0 = upright (default: 0.05)",
    )
    train.add_argument(
        "--early-stop",
        action="store_true",
        help="Stop as soon as convergence is detected",
    )

    evaluate = subparsers.add_parser("evaluate", help="Evaluate a saved controller")
    evaluate.add_argument("--load", type=str, required=True, help="Model file (JSON)")
    evaluate.add_argument(
        "--episodes",
        type=int,
        default=10,
        help="Number of evaluation episodes (default: 10)",
    )
    evaluate.add_argument(
        "--reward-type",
        type=str,
        default="simple",
        choices=["simple", "complex"],
        help="Reward function; use the one the model was trained with (default: simple)",
    )

    return parser.parse_args(argv)


def run_train(args: argparse.Namespace) -> int:
    robot = BalancingRobot(RobotConfig(reward_type=args.reward_type), timesteps=args.timesteps)
    agent = QLearningAgent(
        seed=args.seed,
        max_episodes=args.episodes,
        hidden_size=args.hidden_size,
    )
    agent.initialize(input_size=robot.input_size)

    logger.info("=" * 60)
    logger.info(
        f"Training {robot.input_size}-{agent.hyperparams.hidden_size}-3 controller "
        f"({args.reward_type} reward)"
    )
    logger.info("=" * 60)

    summary = agent.run_training(
        robot,
        early_stop=args.early_stop,
        verbose=True,
        initial_angle_range=args.initial_angle,
    )

    logger.info("Training complete!")
    logger.info(f"Episodes: {summary['totalEpisodes']}, steps: {summary['totalSteps']}")
    logger.info(f"Average reward (100 ep): {summary['averageReward']:.2f}")
    logger.info(f"Best reward: {summary['bestReward']:.2f}")
    if summary["converged"]:
        logger.info(f"Converged at episode {summary['convergenceEpisode']}")

    if args.save:
        agent.save_checkpoint(args.save)

    if args.plot:
        from balancing_dqn.utils.visualization import plot_training_curves

        plot_training_curves(agent.get_metrics(), save_path=args.plot, show=False)
        logger.info(f"Training curves saved to {args.plot}")

    return 0


def run_evaluate(args: argparse.Namespace) -> int:
    agent = QLearningAgent()
    agent.load_checkpoint(args.load)

    robot = BalancingRobot(
        RobotConfig(reward_type=args.reward_type), timesteps=agent.input_size // 2
    )
    results = agent.evaluate(robot, num_episodes=args.episodes)

    logger.info(f"Evaluation over {results['episodes']} episodes:")
    logger.info(f"  Average reward: {results['averageReward']:.2f}")
    logger.info(f"  Best / worst:   {results['bestReward']:.2f} / {results['worstReward']:.2f}")
    logger.info(f"  Average steps:  {results['averageSteps']:.1f}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if args.command == "train":
        return run_train(args)
    return run_evaluate(args)


if __name__ == "__main__":
    raise SystemExit(main())
