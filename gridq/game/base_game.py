"""
Base Game Interface
===================

Abstract base class that defines the interface a two-player grid game must
implement. The learning code only talks to games through these methods and
never looks at the board representation.

To add a new game:
1. Create a new file in gridq/game/
2. Inherit from BaseGame
3. Implement all abstract methods
4. Register it in GAME_REGISTRY in __init__.py
"""

from abc import ABC, abstractmethod
import random
from typing import Any, Optional, Sequence, Set

import numpy as np


class BaseGame(ABC):
    """
    Abstract base class for two-player grid games.

    Properties:
        state_size: int - Length of the feature vector returned by encode()
        action_size: int - Number of cells (one action per cell)

    Methods:
        reset() -> None
            Clear the board

        encode(player) -> np.ndarray
            Feature vector seen from `player`'s side

        legal_actions() -> Set[int]
            Indices of the cells that can be played

        apply(player, action) -> bool
            Place a mark; False if the move is illegal

        winner() -> Optional[str]
            Player who completed a line, if any

        is_full() -> bool
            True if no empty cell is left

        copy_board() -> Any
            Snapshot of the board, e.g. for replaying an evaluation game
    """

    @property
    @abstractmethod
    def state_size(self) -> int:
        """Return the dimension of the feature vector."""
        pass

    @property
    @abstractmethod
    def action_size(self) -> int:
        """Return the number of possible actions."""
        pass

    @property
    @abstractmethod
    def players(self) -> tuple:
        """The two player marks, first mover first."""
        pass

    @abstractmethod
    def reset(self) -> None:
        """Reset the game to an empty board."""
        pass

    @abstractmethod
    def encode(self, player: str) -> np.ndarray:
        """
        Encode the board from one player's perspective.

        Args:
            player: The perspective player

        Returns:
            np.ndarray: float32 vector of length state_size
        """
        pass

    @abstractmethod
    def legal_actions(self) -> Set[int]:
        """Return the set of playable action indices."""
        pass

    @abstractmethod
    def apply(self, player: str, action: int) -> bool:
        """
        Play a move.

        Args:
            player: Mark of the moving player
            action: Cell index

        Returns:
            True if the move was applied, False if it was illegal
        """
        pass

    @abstractmethod
    def winner(self) -> Optional[str]:
        """Return the winning player, or None."""
        pass

    @abstractmethod
    def is_full(self) -> bool:
        """Return True if the board has no empty cell."""
        pass

    @abstractmethod
    def render(self) -> str:
        """Return a text rendering of the board."""
        pass

    @abstractmethod
    def copy_board(self) -> Any:
        """Return a snapshot of the board that later moves do not change."""
        pass

    @abstractmethod
    def render_boards(self, boards: Sequence[Any]) -> str:
        """Render several copy_board() snapshots side by side."""
        pass

    def opponent(self, player: str) -> str:
        """The other player."""
        first, second = self.players
        return second if player == first else first

    def is_over(self) -> bool:
        return self.winner() is not None or self.is_full()

    def play_random_move(self, player: str, rng: Optional[random.Random] = None) -> int:
        """
        Play a uniformly random legal move.

        Returns:
            The action played

        Raises:
            IndexError: If no legal move is available
        """
        rng = rng or random
        legal = sorted(self.legal_actions())
        if not legal:
            raise IndexError("No valid moves available")
        action = rng.choice(legal)
        self.apply(player, action)
        return action
