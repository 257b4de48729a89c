#!/usr/bin/env python3
"""
Grid Q-Learning - Main Entry Point
==================================

Trains a tic-tac-toe agent by self-play and then checks it against a
random opponent. Whenever the agent loses a game it is retrained; the run
ends once it goes STREAK_LIMIT games in a row without losing.

Usage:
    # Load (or create) the model and run the play/retrain loop
    python main.py

    # Shorter training rounds, 4 learner threads
    python main.py --episodes 5000 --workers 4

    # Ignore the saved model and start from fresh weights
    python main.py --fresh

    # Only measure the saved model against a random opponent
    python main.py --evaluate --eval-games 500

    # Larger board
    python main.py --board-size 4 --model models/board4.json
"""

import argparse
import os
import sys
from typing import Any, Dict

from config import Config
from gridq.ai.agent import Agent
from gridq.ai.errors import GridQError, PersistenceError
from gridq.ai.evaluator import Evaluator, StreakTracker
from gridq.ai.trainer import Trainer
from gridq.game import BaseGame, get_game, list_games
from gridq.utils.logger import LogLevel, get_log_path, get_logger, setup_logging


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Grid Q-Learning - self-play tic-tac-toe with a hand-written network",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
EXAMPLES
========
    python main.py                          Play/retrain until 100 games without a loss
    python main.py --episodes 5000          Shorter training rounds
    python main.py --evaluate               Measure the saved model only
    python main.py --fresh --seed 7         Reproducible run from fresh weights
        """
    )

    # Mode selection
    parser.add_argument(
        '--evaluate', action='store_true',
        help='Evaluate the saved model against a random opponent and exit'
    )
    parser.add_argument(
        '--fresh', action='store_true',
        help='Ignore any saved model and start from random weights'
    )

    # Model options
    parser.add_argument(
        '--model', type=str, default=None,
        help='Path to the model file (default: models/trained_network.json)'
    )
    parser.add_argument(
        '--game', type=str, default=None, choices=list_games(),
        help='Game to learn (default: tictactoe)'
    )
    parser.add_argument(
        '--board-size', type=int, default=None,
        help='Board side length (default: 3)'
    )

    # Training parameters
    parser.add_argument(
        '--episodes', type=int, default=None,
        help='Self-play episodes per training round (default: 50000)'
    )
    parser.add_argument(
        '--lr', type=float, default=None,
        help='Learning rate'
    )
    parser.add_argument(
        '--batch-size', type=int, default=None,
        help='Transitions replayed per episode'
    )
    parser.add_argument(
        '--workers', type=int, default=None,
        help='Learner threads sharing the network (default: 1)'
    )

    # Play loop
    parser.add_argument(
        '--streak-limit', type=int, default=None,
        help='Games without a loss needed to stop (default: 100)'
    )
    parser.add_argument(
        '--eval-games', type=int, default=None,
        help='Games played by --evaluate (default: 100)'
    )

    # Other options
    parser.add_argument(
        '--seed', type=int, default=None,
        help='Random seed for reproducibility'
    )
    parser.add_argument(
        '--log-level', type=str, default='info',
        choices=[level.name.lower() for level in LogLevel],
        help='Console/file log level'
    )
    parser.add_argument(
        '--no-log-file', action='store_true',
        help='Log to the console only'
    )
    parser.add_argument(
        '--log-dir', type=str, default=None,
        help='Directory for log files (default: logs)'
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """Apply CLI overrides; Config validates the result."""
    overrides: Dict[str, Any] = {}
    mapping = {
        'episodes': 'MAX_EPISODES',
        'lr': 'LEARNING_RATE',
        'batch_size': 'BATCH_SIZE',
        'workers': 'NUM_WORKERS',
        'streak_limit': 'STREAK_LIMIT',
        'seed': 'SEED',
        'board_size': 'BOARD_SIZE',
        'eval_games': 'EVAL_GAMES',
        'game': 'GAME',
        'log_dir': 'LOG_DIR',
    }
    for arg_name, field_name in mapping.items():
        value = getattr(args, arg_name)
        if value is not None:
            overrides[field_name] = value

    config = Config(**overrides)
    if args.model:
        config.MODEL_DIR, config.MODEL_FILENAME = os.path.split(args.model)
    return config


def make_game(config: Config) -> BaseGame:
    """Build a fresh board for the configured game."""
    game_cls = get_game(config.GAME)
    if game_cls is None:
        raise ValueError(f"Unknown game {config.GAME!r}, choose from {list_games()}")
    return game_cls(config.BOARD_SIZE)


def train_and_save(trainer: Trainer, config: Config, logger) -> None:
    """One training round followed by a save. Save failures are logged only."""
    trainer.train(config.MAX_EPISODES)
    try:
        trainer.agent.save(config.MODEL_PATH, episodes=trainer.metrics.episodes)
    except PersistenceError as e:
        logger.error(f"Error saving network: {e}")


def run_streak_loop(config: Config, agent: Agent, logger) -> int:
    """
    Play greedy games against a random opponent until the agent goes
    STREAK_LIMIT games without losing, retraining after every loss.

    Returns:
        Number of evaluation games played
    """
    trainer = Trainer(make_game(config), agent, config)
    evaluator = Evaluator(make_game(config), agent, seed=config.SEED)
    streak = StreakTracker(config.STREAK_LIMIT)
    needs_training = False

    while not streak.done:
        if needs_training:
            print("Loss: training network...")
            train_and_save(trainer, config, logger)
            print("Training complete.")

        record = evaluator.play_game()
        print(evaluator.game.render_boards(record.boards))

        if record.illegal_move:
            print(f"Invalid move by '{record.agent_player}'. Game Over!")
        if record.winner is not None:
            print(f"Winner: {record.winner}", end='')
        elif not record.illegal_move:
            print("Draw", end='')

        needs_training = streak.record(record)
        if needs_training:
            print(f" No Loss streak broken at: {streak.last_streak}/{streak.limit}")
        else:
            print(f" {streak.streak}/{streak.limit}")

    logger.info(f"Reached {streak.limit} games without a loss after {streak.games} games")
    return streak.games


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    level = LogLevel.from_name(args.log_level)
    logger = get_logger('main')

    try:
        config = build_config(args)
    except AssertionError as e:
        setup_logging(level=level, file_output=False, force=True)
        logger.error(f"Invalid configuration: {e}")
        return 2

    setup_logging(
        level=level,
        log_dir=config.LOG_DIR,
        file_output=not args.no_log_file,
        force=True,
    )
    log_path = get_log_path()
    if log_path is not None:
        logger.info(f"Logging to {log_path}")

    game = make_game(config)
    agent = Agent(game.state_size, game.action_size, config)
    if args.fresh:
        logger.info(f"Starting from fresh weights: {agent.network}")
    else:
        agent.load(config.MODEL_PATH)

    try:
        if args.evaluate:
            results = Evaluator(game, agent, seed=config.SEED).evaluate(config.EVAL_GAMES)
            print(
                f"wins={results.wins} draws={results.draws} losses={results.losses} "
                f"illegal={results.illegal_moves} win_rate={results.win_rate:.1%}"
            )
            return 0

        run_streak_loop(config, agent, logger)
    except KeyboardInterrupt:
        print("\n\n⛔ Training interrupted by user")
        try:
            agent.save(config.MODEL_PATH, reason='interrupted')
        except PersistenceError as e:
            logger.error(f"Error saving network: {e}")
        return 130
    except GridQError as e:
        logger.error(f"Error during training: {e}")
        return 1
    finally:
        agent.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
