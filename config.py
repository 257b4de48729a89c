"""
Configuration file for Grid Game Q-Learning
===========================================

All hyperparameters, game settings, and training options are centralized here.
Modify these values to experiment with different training configurations.

Usage:
    from config import Config
    cfg = Config()
    print(cfg.LEARNING_RATE)
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Config:
    """
    Central configuration for the entire project.

    Sections:
    1. Board - Grid game dimensions
    2. Neural Network - Architecture configuration
    3. Regularization - Weight decay and delta clipping
    4. Training - Learning hyperparameters
    5. Exploration - Epsilon-greedy settings
    6. Rewards - Reward shaping
    7. Concurrency - Parallel learning workers
    8. Training Control - Episode budget, evaluation and logging
    9. System - Paths and seeding
    """

    # =========================================================================
    # BOARD SETTINGS
    # =========================================================================

    # Side length of the square board (3 = classic tic-tac-toe)
    BOARD_SIZE: int = 3

    @property
    def CELL_COUNT(self) -> int:
        """Number of cells on the board."""
        return self.BOARD_SIZE * self.BOARD_SIZE

    # =========================================================================
    # NEURAL NETWORK ARCHITECTURE
    # =========================================================================

    # Input is one-hot per cell per player:
    # - own pieces     = CELL_COUNT
    # - opponent pieces = CELL_COUNT

    @property
    def STATE_SIZE(self) -> int:
        """Calculate input layer size based on the board encoding."""
        return 2 * self.CELL_COUNT

    @property
    def ACTION_SIZE(self) -> int:
        """One action per target cell."""
        return self.CELL_COUNT

    # Hidden layer widths (None = one hidden layer of 2 * CELL_COUNT units)
    HIDDEN_LAYERS: Optional[List[int]] = None

    # One activation per layer (hidden layers + output layer)
    # Options: 'tanh', 'relu', 'leaky_relu[:slope]', 'elu[:alpha]', 'linear'
    ACTIVATIONS: List[str] = field(default_factory=lambda: ['tanh', 'tanh'])

    @property
    def LAYER_SIZES(self) -> List[int]:
        """Full width list: input, hidden layers, output."""
        hidden = self.HIDDEN_LAYERS if self.HIDDEN_LAYERS is not None else [2 * self.CELL_COUNT]
        return [self.STATE_SIZE] + list(hidden) + [self.ACTION_SIZE]

    # =========================================================================
    # REGULARIZATION
    # =========================================================================

    # Weight decay applied on every update, scaled by the learning rate
    L1_REGULARIZATION: float = 0.001
    L2_REGULARIZATION: float = 0.001

    # Per-unit deltas are clipped to [-DELTA_CLIP, DELTA_CLIP]
    DELTA_CLIP: float = 1.0

    # Units whose clipped delta is smaller than this are left untouched
    MIN_DELTA: float = 1e-6

    # =========================================================================
    # TRAINING HYPERPARAMETERS
    # =========================================================================

    # Learning rate - step size of every single-sample update
    LEARNING_RATE: float = 0.0001

    # Discount factor (gamma) - How much to value future rewards
    GAMMA: float = 0.9

    # Batch size - Number of transitions replayed after each episode
    BATCH_SIZE: int = 300

    # Replay buffer capacity (oldest transitions are evicted first)
    MEMORY_SIZE: int = 10_000

    # =========================================================================
    # EXPLORATION SETTINGS (Epsilon-Greedy)
    # =========================================================================

    # Starting exploration rate (1.0 = 100% random)
    EPSILON_START: float = 1.0

    # Minimum exploration rate, never reaches zero
    EPSILON_END: float = 0.1

    # Decay rate per episode: epsilon *= EPSILON_DECAY after each episode
    EPSILON_DECAY: float = 0.9999

    # Random exploration picks among legal cells only (False = any cell,
    # which lets the agent learn the illegal-move penalty)
    EXPLORE_LEGAL_ONLY: bool = False

    # =========================================================================
    # REWARD SHAPING
    # =========================================================================

    REWARD_ILLEGAL: float = -100.0   # Occupied or out-of-range cell, ends the episode
    REWARD_WIN: float = 10.0         # Acting side completes a line
    REWARD_DRAW: float = -0.5        # Board full without a winner
    REWARD_STEP: float = -0.1        # Every other move, favours short wins

    # =========================================================================
    # CONCURRENCY
    # =========================================================================

    # Threads replaying a batch (1 = sequential updates on the canonical network)
    NUM_WORKERS: int = 1

    # =========================================================================
    # TRAINING CONTROL
    # =========================================================================

    # Episodes per training run
    MAX_EPISODES: int = 50_000

    # Print stats every N episodes
    LOG_EVERY: int = 1000

    # Number of recent episodes used for rolling statistics
    METRICS_HISTORY_LENGTH: int = 1000

    # Consecutive games without a loss before the driver stops
    STREAK_LIMIT: int = 100

    # Games played by a standalone evaluation run
    EVAL_GAMES: int = 100

    # =========================================================================
    # SYSTEM SETTINGS
    # =========================================================================

    # Paths
    MODEL_DIR: str = 'models'
    MODEL_FILENAME: str = 'trained_network.json'
    LOG_DIR: str = 'logs'

    # Registered game to train on (see gridq.game.GAME_REGISTRY)
    GAME: str = 'tictactoe'

    @property
    def MODEL_PATH(self) -> str:
        """Full path of the persisted model."""
        return os.path.join(self.MODEL_DIR, self.MODEL_FILENAME)

    # Random seed for reproducibility (None for random)
    SEED: Optional[int] = None

    def __post_init__(self):
        """Validation and derived calculations."""
        assert self.BOARD_SIZE >= 3, "Board size must be at least 3"
        assert self.LEARNING_RATE > 0, "Learning rate must be positive"
        assert 0 < self.GAMMA <= 1, "Gamma must be in (0, 1]"
        assert self.BATCH_SIZE > 0, "Batch size must be positive"
        assert self.MEMORY_SIZE >= self.BATCH_SIZE, "Memory size must hold at least one batch"
        assert 0 < self.EPSILON_END <= self.EPSILON_START <= 1, \
            "Epsilon must satisfy 0 < end <= start <= 1"
        assert 0 < self.EPSILON_DECAY < 1, "Epsilon decay must be in (0, 1)"
        assert self.L1_REGULARIZATION >= 0, "L1 regularization must be non-negative"
        assert self.L2_REGULARIZATION >= 0, "L2 regularization must be non-negative"
        assert self.DELTA_CLIP > 0, "Delta clip must be positive"
        assert self.NUM_WORKERS >= 1, "At least one worker is required"
        assert len(self.ACTIVATIONS) == len(self.LAYER_SIZES) - 1, \
            "Need exactly one activation per layer"



if __name__ == "__main__":
    # Print configuration summary
    cfg = Config()
    print("=" * 60)
    print("Grid Game Q-Learning - Configuration Summary")
    print("=" * 60)
    print(f"\nBoard: {cfg.BOARD_SIZE}x{cfg.BOARD_SIZE} = {cfg.CELL_COUNT} cells")
    print("\nNeural Network:")
    print(f"   Layer sizes: {cfg.LAYER_SIZES}")
    print(f"   Activations: {cfg.ACTIVATIONS}")
    print("\nTraining:")
    print(f"   Learning rate: {cfg.LEARNING_RATE}")
    print(f"   Batch size: {cfg.BATCH_SIZE}")
    print(f"   Gamma: {cfg.GAMMA}")
    print("\nExploration:")
    print(f"   Epsilon: {cfg.EPSILON_START} -> {cfg.EPSILON_END}")
    print(f"   Decay: {cfg.EPSILON_DECAY}")
    print("=" * 60)
