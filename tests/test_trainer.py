"""
Tests for the self-play Trainer.

These tests verify:
    - Reward shaping per outcome
    - Episode structure (terminal flag only on the last move)
    - One learning pass and one epsilon decay per episode
    - Metrics tracking
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Config
from gridq.ai.agent import Agent
from gridq.ai.trainer import EpisodeStats, Outcome, Trainer, TrainingMetrics
from gridq.game.tictactoe import TicTacToe


@pytest.fixture
def config():
    """Small configuration for fast testing."""
    return Config(BATCH_SIZE=8, MEMORY_SIZE=200, SEED=0, LOG_EVERY=5,
                  METRICS_HISTORY_LENGTH=10)


@pytest.fixture
def game():
    return TicTacToe(3)


@pytest.fixture
def trainer(game, config):
    agent = Agent(game.state_size, game.action_size, config)
    return Trainer(game, agent, config)


class TestRewards:
    """Test reward shaping."""

    def test_illegal(self, trainer, config):
        """Illegal moves are penalized and end the episode."""
        reward, terminal, outcome = trainer.reward_for('X', legal=False)
        assert reward == config.REWARD_ILLEGAL
        assert terminal
        assert outcome is Outcome.ILLEGAL

    def test_win(self, trainer, game, config):
        """Completing a line is rewarded and ends the episode."""
        for action in (0, 1, 2):
            game.apply('X', action)
        reward, terminal, outcome = trainer.reward_for('X', legal=True)
        assert reward == config.REWARD_WIN
        assert terminal
        assert outcome is Outcome.WIN

    def test_draw(self, trainer, game, config):
        """A full board without a winner is a draw."""
        for player, action in zip('XOXOXOXOX', (0, 1, 2, 4, 3, 5, 7, 6, 8)):
            game.apply(player, action)
        reward, terminal, outcome = trainer.reward_for('X', legal=True)
        assert reward == config.REWARD_DRAW
        assert terminal
        assert outcome is Outcome.DRAW

    def test_step(self, trainer, game, config):
        """Ordinary moves get the step reward."""
        game.apply('X', 4)
        reward, terminal, outcome = trainer.reward_for('X', legal=True)
        assert reward == config.REWARD_STEP
        assert not terminal
        assert outcome is None

    def test_default_reward_values(self):
        """Default rewards: illegal -100, win 10, draw -0.5, step -0.1."""
        cfg = Config()
        assert (cfg.REWARD_ILLEGAL, cfg.REWARD_WIN, cfg.REWARD_DRAW, cfg.REWARD_STEP) == \
            (-100.0, 10.0, -0.5, -0.1)


class TestEpisode:
    """Test episode play."""

    def test_only_last_transition_terminal(self, trainer):
        """Every move but the last continues the episode."""
        for _ in range(10):
            transitions, outcome, _ = trainer.play_episode()
            assert transitions[-1].terminal
            assert not any(t.terminal for t in transitions[:-1])
            assert outcome in (Outcome.WIN, Outcome.DRAW, Outcome.ILLEGAL)

    def test_episode_length_bounded(self, trainer):
        """A game lasts at most one move per cell."""
        for _ in range(10):
            transitions, _, _ = trainer.play_episode()
            assert 1 <= len(transitions) <= 9

    def test_winner_reported(self, trainer):
        """The winner is the player of the winning move."""
        for _ in range(30):
            transitions, outcome, winner = trainer.play_episode()
            if outcome is Outcome.WIN:
                assert winner == ('X' if len(transitions) % 2 == 1 else 'O')
                assert transitions[-1].reward == trainer.config.REWARD_WIN
            else:
                assert winner is None

    def test_perspective_alternates(self, trainer):
        """Each transition is encoded from the mover's side."""
        trainer.agent.config.EXPLORE_LEGAL_ONLY = True
        transitions, _, _ = trainer.play_episode()
        for i, t in enumerate(transitions):
            # The mover has placed i // 2 marks before its move
            assert t.state[:9].sum() == i // 2
            assert t.state[9:].sum() == (i + 1) // 2

    def test_illegal_move_ends_episode(self, trainer):
        """An illegal move is the last transition and carries the penalty."""
        for _ in range(50):
            transitions, outcome, _ = trainer.play_episode()
            if outcome is Outcome.ILLEGAL:
                assert transitions[-1].reward == trainer.config.REWARD_ILLEGAL
                return
        pytest.skip("no illegal move in 50 exploring episodes")


class TestRunEpisode:
    """Test a full training step."""

    def test_transitions_stored(self, trainer):
        """The episode's transitions go into replay memory."""
        stats = trainer.run_episode()
        assert len(trainer.agent.memory) == stats.steps

    def test_epsilon_decays_once(self, trainer, config):
        """Epsilon decays once per episode."""
        trainer.run_episode()
        assert trainer.agent.epsilon == pytest.approx(config.EPSILON_START * config.EPSILON_DECAY)

    def test_learns_once_buffer_ready(self, trainer, config):
        """After the buffer holds a batch, each episode replays one batch."""
        while len(trainer.agent.memory) < config.BATCH_SIZE:
            trainer.run_episode()
        steps_before = trainer.agent.steps
        stats = trainer.run_episode()
        assert trainer.agent.steps == steps_before + config.BATCH_SIZE
        assert stats.avg_loss is not None


class TestTrain:
    """Test the training loop."""

    def test_train_runs_requested_episodes(self, trainer):
        """train(n) plays n episodes."""
        metrics = trainer.train(num_episodes=12)
        assert metrics.episodes == 12
        assert sum(metrics.totals.values()) == 12

    def test_progress_callback(self, trainer):
        """The callback sees every episode."""
        seen = []
        trainer.train(num_episodes=4, progress_callback=lambda ep, total, stats: seen.append(ep))
        assert seen == [0, 1, 2, 3]

    def test_zero_episodes_runs_nothing(self, trainer):
        """train(0) plays no episodes instead of falling back to MAX_EPISODES."""
        metrics = trainer.train(num_episodes=0)
        assert metrics.episodes == 0
        assert len(trainer.agent.memory) == 0

    def test_each_run_restarts_epsilon(self, game):
        """A second run starts its schedule from EPSILON_START again."""
        cfg = Config(BATCH_SIZE=8, MEMORY_SIZE=200, EPSILON_DECAY=0.5, SEED=2)
        agent = Agent(game.state_size, game.action_size, cfg)
        trainer = Trainer(game, agent, cfg)

        trainer.train(num_episodes=10)
        assert agent.epsilon == pytest.approx(cfg.EPSILON_END)

        first = []
        trainer.train(num_episodes=1, progress_callback=lambda ep, total, stats: first.append(stats))
        assert first[0].epsilon == pytest.approx(cfg.EPSILON_START * cfg.EPSILON_DECAY)

    def test_each_run_starts_with_empty_memory(self, trainer):
        """Replay memory only holds the current run's transitions."""
        trainer.train(num_episodes=5)
        stats = []
        trainer.train(num_episodes=1, progress_callback=lambda ep, total, s: stats.append(s))
        assert len(trainer.agent.memory) == stats[0].steps

    def test_threaded_training(self, game):
        """Training with several workers completes and keeps the network finite."""
        cfg = Config(BATCH_SIZE=8, MEMORY_SIZE=200, NUM_WORKERS=3, SEED=1)
        agent = Agent(game.state_size, game.action_size, cfg)
        Trainer(game, agent, cfg).train(num_episodes=20)
        for layer in agent.network.layers:
            assert np.all(np.isfinite(layer.weights))


class TestTrainingMetrics:
    """Test metrics tracking."""

    def make_stats(self, outcome, reward=1.0, loss=0.5):
        return EpisodeStats(episode=0, steps=3, total_reward=reward, epsilon=0.5,
                            avg_loss=loss, duration=0.01, outcome=outcome, winner=None)

    def test_recent_average(self):
        """Average over the last n values."""
        metrics = TrainingMetrics()
        for r in (1.0, 2.0, 3.0):
            metrics.add(self.make_stats(Outcome.DRAW, reward=r))
        assert metrics.get_recent_average('rewards', 2) == pytest.approx(2.5)

    def test_empty_average(self):
        """No data gives 0."""
        assert TrainingMetrics().get_recent_average('rewards') == 0.0

    def test_history_trimmed(self):
        """Only history_length values are kept."""
        metrics = TrainingMetrics(history_length=3)
        for _ in range(5):
            metrics.add(self.make_stats(Outcome.WIN))
        assert len(metrics.rewards) == 3
        assert metrics.episodes == 5
        assert metrics.totals[Outcome.WIN] == 5

    def test_outcome_rate(self):
        """Outcome rate over recent episodes."""
        metrics = TrainingMetrics()
        for outcome in (Outcome.WIN, Outcome.ILLEGAL, Outcome.WIN, Outcome.DRAW):
            metrics.add(self.make_stats(outcome))
        assert metrics.get_outcome_rate(Outcome.WIN) == pytest.approx(0.5)
        assert metrics.get_outcome_rate(Outcome.ILLEGAL, 2) == pytest.approx(0.0)

    def test_missing_loss_not_recorded(self):
        """Episodes without a learning pass do not add a loss."""
        metrics = TrainingMetrics()
        metrics.add(self.make_stats(Outcome.DRAW, loss=None))
        assert metrics.losses == []
