"""
Grid Game Q-Learning - Source Package
=====================================

This package contains all the components for teaching a hand-written
neural network to play a grid game through self-play Q-learning.

Modules:
    game/   - Game rules engine (tic-tac-toe on an N x N board)
    ai/     - Neural network, replay buffer, agent and training logic
    utils/  - Logging helpers
"""

__version__ = "1.0.0"
