"""
Deterministic Model Evaluator
=============================

Plays the trained agent greedily (ε=0) as the first player against a
uniformly random opponent, to measure how the model actually plays rather
than how its exploring self-play games went.

Usage:
    evaluator = Evaluator(game, agent)
    results = evaluator.evaluate(num_games=100)

    # Driver loop: keep playing until the agent goes STREAK_LIMIT games
    # without losing, retraining whenever it loses.
    streak = StreakTracker(limit=100)
    record = evaluator.play_game()
    streak.record(record)
"""

import json
import os
import random
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .agent import Agent
from ..game.base_game import BaseGame
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class GameRecord:
    """One evaluation game."""
    winner: Optional[str]
    agent_player: str
    moves: int
    illegal_move: bool = False
    boards: List[Any] = field(default_factory=list)

    @property
    def agent_won(self) -> bool:
        return self.winner == self.agent_player

    @property
    def agent_lost(self) -> bool:
        return self.illegal_move or (self.winner is not None and self.winner != self.agent_player)

    @property
    def is_draw(self) -> bool:
        return self.winner is None and not self.illegal_move


@dataclass
class EvalResults:
    """Results from a deterministic evaluation run."""
    timestamp: str
    episode: int
    num_games: int

    wins: int
    draws: int
    losses: int
    illegal_moves: int

    win_rate: float
    loss_rate: float
    mean_moves: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class StreakTracker:
    """
    Counts consecutive games without a loss.

    A loss (including an illegal move by the agent) resets the streak and
    flags that the model should be retrained.
    """

    def __init__(self, limit: int):
        self.limit = limit
        self.streak = 0
        self.best_streak = 0
        self.last_streak = 0
        self.games = 0

    def record(self, game: GameRecord) -> bool:
        """
        Update the streak with a finished game.

        Returns:
            True if the game broke the streak
        """
        self.games += 1
        self.last_streak = self.streak
        if game.agent_lost:
            self.streak = 0
            return True
        self.streak += 1
        self.best_streak = max(self.best_streak, self.streak)
        return False

    @property
    def done(self) -> bool:
        return self.streak >= self.limit


class Evaluator:
    """
    Runs greedy games against a random opponent.

    Key features:
    - Agent acts with ε=0 (select_action(training=False))
    - Records every board position for display
    - Optionally appends results to a JSON log for historical comparison
    """

    def __init__(
        self,
        game: BaseGame,
        agent: Agent,
        log_dir: Optional[str] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize the evaluator.

        Args:
            game: Game instance (a separate one from the trainer's is safest)
            agent: Agent instance
            log_dir: Directory for JSON evaluation logs (None = no file logging)
            seed: Seed of the random opponent
        """
        self.game = game
        self.agent = agent
        self.log_dir = log_dir
        self._rng = random.Random(seed)

        self.eval_history: List[EvalResults] = []

        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

    def play_game(self, record_boards: bool = True) -> GameRecord:
        """
        Play one game: agent first, random opponent second.

        An illegal move by the agent ends the game immediately and counts
        as a loss.
        """
        game = self.game
        game.reset()
        agent_player, opponent = game.players
        player = agent_player
        boards: List[Any] = []
        moves = 0

        while not game.is_over():
            if player == agent_player:
                state = game.encode(player)
                action = self.agent.select_action(state, game.legal_actions(), training=False)
                if not game.apply(player, action):
                    logger.debug(f"Illegal move by '{player}' on cell {action}")
                    return GameRecord(None, agent_player, moves, illegal_move=True, boards=boards)
            else:
                game.play_random_move(player, self._rng)

            moves += 1
            if record_boards:
                boards.append(game.copy_board())
            player = opponent if player == agent_player else agent_player

        return GameRecord(game.winner(), agent_player, moves, boards=boards)

    def evaluate(self, num_games: int = 100, episode_num: int = 0) -> EvalResults:
        """
        Run `num_games` greedy games.

        Args:
            num_games: Number of evaluation games to run
            episode_num: Current training episode (for logging)

        Returns:
            EvalResults with all metrics
        """
        if num_games <= 0:
            raise ValueError("num_games must be positive")

        records = [self.play_game(record_boards=False) for _ in range(num_games)]
        wins = sum(r.agent_won for r in records)
        losses = sum(r.agent_lost for r in records)
        illegal = sum(r.illegal_move for r in records)

        results = EvalResults(
            timestamp=datetime.now().isoformat(timespec='seconds'),
            episode=episode_num,
            num_games=num_games,
            wins=wins,
            draws=num_games - wins - losses,
            losses=losses,
            illegal_moves=illegal,
            win_rate=wins / num_games,
            loss_rate=losses / num_games,
            mean_moves=sum(r.moves for r in records) / num_games,
        )
        self.eval_history.append(results)
        self.log_results(results)
        return results

    def log_results(self, results: EvalResults) -> None:
        """Log a summary and append to the JSON log if enabled."""
        logger.info(
            f"Eval @ ep {results.episode} | games={results.num_games} | "
            f"win={results.win_rate * 100:.1f}% | draw={results.draws} | "
            f"loss={results.loss_rate * 100:.1f}% | illegal={results.illegal_moves}"
        )
        if not self.log_dir:
            return
        path = os.path.join(self.log_dir, 'eval_history.json')
        history = [r.to_dict() for r in self.eval_history]
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(history, f, indent=2)
