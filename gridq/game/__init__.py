"""
Game Module
===========

Rules engines the agent can learn to play.

Classes:
    TicTacToe - N x N tic-tac-toe
    BaseGame  - Abstract base class for creating new games

Game Registry:
    Use get_game(name) to get a game class by name
    Use list_games() to get all available games
"""

from typing import Dict, List, Optional, Type

from .base_game import BaseGame
from .tictactoe import TicTacToe


# Maps game names to their classes. To add a new game, inherit from
# BaseGame and add an entry here; it can then be picked with --game or
# Config.GAME.
GAME_REGISTRY: Dict[str, Type[BaseGame]] = {
    'tictactoe': TicTacToe,
}


def get_game(name: str) -> Optional[Type[BaseGame]]:
    """
    Get a game class by name.

    Example:
        >>> GameClass = get_game('tictactoe')
        >>> game = GameClass(3)
    """
    return GAME_REGISTRY.get(name.lower())


def list_games() -> List[str]:
    """Get a list of all available game names."""
    return list(GAME_REGISTRY.keys())


__all__ = [
    'BaseGame',
    'TicTacToe',
    'GAME_REGISTRY',
    'get_game',
    'list_games',
]
