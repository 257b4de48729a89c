"""
Training Loop
=============

Orchestrates self-play Q-learning:
    1. Run an episode: both players share the agent, each sees the board
       from its own side
    2. Turn every move into a Transition with a shaped reward
    3. Store the episode in the replay buffer and replay one batch
    4. Decay epsilon
    5. Track metrics

Episode state machine:

    Start → (SelectAction → ApplyMove → ObserveOutcome)* → Terminal

    illegal move          REWARD_ILLEGAL   terminal
    mover completes line  REWARD_WIN       terminal
    board full            REWARD_DRAW      terminal
    otherwise             REWARD_STEP
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

import numpy as np

from .agent import Agent
from .replay_buffer import Transition
from ..game.base_game import BaseGame
from ..utils.logger import get_logger, log_training_metrics

from config import Config

logger = get_logger(__name__)


class Outcome(Enum):
    """How an episode ended, from the last mover's side."""
    WIN = 'win'
    DRAW = 'draw'
    ILLEGAL = 'illegal'


@dataclass
class EpisodeStats:
    """Statistics for a single episode."""
    episode: int
    steps: int
    total_reward: float
    epsilon: float
    avg_loss: Optional[float]
    duration: float
    outcome: Outcome
    winner: Optional[str]


class TrainingMetrics:
    """
    Tracks and stores training metrics over time.

    Metrics tracked:
        - Total rewards
        - Moves per episode
        - Loss values
        - Epsilon values
        - Episode outcomes (win / draw / illegal)
    """

    def __init__(self, history_length: int = 1000):
        """
        Initialize metrics tracker.

        Args:
            history_length: Maximum history to store
        """
        self.history_length = history_length

        self.rewards: List[float] = []
        self.steps: List[int] = []
        self.losses: List[float] = []
        self.epsilons: List[float] = []
        self.durations: List[float] = []
        self.outcomes: List[Outcome] = []

        self.episodes = 0
        self.totals = {outcome: 0 for outcome in Outcome}

    def add(self, stats: EpisodeStats) -> None:
        """Add episode statistics."""
        self.episodes += 1
        self.totals[stats.outcome] += 1

        self.rewards.append(stats.total_reward)
        self.steps.append(stats.steps)
        if stats.avg_loss is not None:
            self.losses.append(stats.avg_loss)
        self.epsilons.append(stats.epsilon)
        self.durations.append(stats.duration)
        self.outcomes.append(stats.outcome)

        # Trim to history length
        for attr in ['rewards', 'steps', 'losses', 'epsilons', 'durations', 'outcomes']:
            values = getattr(self, attr)
            if len(values) > self.history_length:
                setattr(self, attr, values[-self.history_length:])

    def get_recent_average(self, metric: str, n: int = 100) -> float:
        """Get average of last n values for a metric."""
        values = getattr(self, metric, [])
        if not values:
            return 0.0
        return float(np.mean(values[-n:]))

    def get_outcome_rate(self, outcome: Outcome, n: int = 100) -> float:
        """Fraction of the last n episodes that ended with `outcome`."""
        if not self.outcomes:
            return 0.0
        recent = self.outcomes[-n:]
        return sum(1 for o in recent if o is outcome) / len(recent)


class Trainer:
    """
    Manages the self-play training loop.

    Example:
        >>> game = TicTacToe(3)
        >>> agent = Agent(game.state_size, game.action_size)
        >>> trainer = Trainer(game, agent)
        >>> metrics = trainer.train(num_episodes=1000)
    """

    def __init__(self, game: BaseGame, agent: Agent, config: Optional[Config] = None):
        """
        Initialize the trainer.

        Args:
            game: Game instance (implements BaseGame)
            agent: Agent to train
            config: Configuration object
        """
        self.game = game
        self.agent = agent
        self.config = config or agent.config

        self.metrics = TrainingMetrics(self.config.METRICS_HISTORY_LENGTH)
        self.current_episode = 0
        self.total_steps = 0

    def reward_for(self, player: str, legal: bool) -> tuple:
        """
        Reward and terminal flag for the move `player` just attempted.

        Returns:
            (reward, terminal, outcome) with outcome None while play continues
        """
        if not legal:
            return self.config.REWARD_ILLEGAL, True, Outcome.ILLEGAL
        if self.game.winner() == player:
            return self.config.REWARD_WIN, True, Outcome.WIN
        if self.game.is_full():
            return self.config.REWARD_DRAW, True, Outcome.DRAW
        return self.config.REWARD_STEP, False, None

    def play_episode(self) -> tuple:
        """
        Play one self-play game with the current epsilon.

        Returns:
            (transitions, outcome, winner)
        """
        self.game.reset()
        player, _ = self.game.players
        transitions: List[Transition] = []

        while True:
            state = self.game.encode(player)
            action = self.agent.select_action(state, self.game.legal_actions(), training=True)

            legal = self.game.apply(player, action)
            next_state = self.game.encode(player)
            reward, terminal, outcome = self.reward_for(player, legal)

            transitions.append(Transition(state, action, reward, next_state, terminal))

            if terminal:
                winner = player if outcome is Outcome.WIN else None
                return transitions, outcome, winner

            player = self.game.opponent(player)

    def run_episode(self) -> EpisodeStats:
        """
        Run a single training episode: play, store, replay, decay.

        Returns:
            Episode statistics
        """
        start_time = time.time()

        transitions, outcome, winner = self.play_episode()
        self.agent.remember_episode(transitions)
        loss = self.agent.learn()

        # Decay epsilon after a full game
        self.agent.decay_epsilon()

        self.total_steps += len(transitions)

        return EpisodeStats(
            episode=self.current_episode,
            steps=len(transitions),
            total_reward=float(sum(t.reward for t in transitions)),
            epsilon=self.agent.epsilon,
            avg_loss=loss,
            duration=time.time() - start_time,
            outcome=outcome,
            winner=winner
        )

    def train(
        self,
        num_episodes: Optional[int] = None,
        progress_callback: Optional[Callable[[int, int, EpisodeStats], None]] = None
    ) -> TrainingMetrics:
        """
        Run the training loop.

        Args:
            num_episodes: Number of episodes (default from config)
            progress_callback: Function to call with progress updates

        Returns:
            Training metrics
        """
        if num_episodes is None:
            num_episodes = self.config.MAX_EPISODES

        # Each run starts from EPSILON_START with empty memory
        self.agent.reset_training_state()

        logger.info(
            f"Starting training: episodes={num_episodes} | sizes={self.agent.layer_sizes} | "
            f"workers={self.config.NUM_WORKERS} | lr={self.config.LEARNING_RATE}"
        )

        try:
            for episode in range(num_episodes):
                self.current_episode = episode
                stats = self.run_episode()
                self.metrics.add(stats)

                if (episode + 1) % self.config.LOG_EVERY == 0:
                    n = self.config.LOG_EVERY
                    log_training_metrics(
                        episode=episode + 1,
                        reward=self.metrics.get_recent_average('rewards', n),
                        epsilon=stats.epsilon,
                        loss=self.agent.get_average_loss(n) if self.metrics.losses else None,
                        steps=self.total_steps,
                        win_rate=self.metrics.get_outcome_rate(Outcome.WIN, n),
                        illegal_rate=self.metrics.get_outcome_rate(Outcome.ILLEGAL, n),
                    )

                if progress_callback:
                    progress_callback(episode, num_episodes, stats)
        finally:
            self.agent.close()

        logger.info(
            f"Training complete: episodes={self.metrics.episodes} | "
            f"final_eps={self.agent.epsilon:.4f} | total_moves={self.total_steps:,} | "
            f"updates={self.agent.steps:,}"
        )
        return self.metrics
