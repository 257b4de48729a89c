"""
Tic-Tac-Toe
===========

N x N tic-tac-toe. A player wins by filling a whole row, column or
diagonal with their mark. Cells are numbered row-major:

    0 | 1 | 2
    3 | 4 | 5
    6 | 7 | 8

Encoding for a perspective player p (length 2 * N²):
    [0, N²)      1.0 where the cell holds p's mark
    [N², 2·N²)   1.0 where the cell holds the opponent's mark
"""

from typing import List, Optional, Sequence, Set

import numpy as np

from .base_game import BaseGame
from ..ai.errors import IllegalActionError

EMPTY = '-'

Board = List[List[str]]


class TicTacToe(BaseGame):
    """
    Tic-tac-toe on a square board.

    Example:
        >>> game = TicTacToe(3)
        >>> game.apply('X', 4)
        True
        >>> game.apply('O', 4)   # occupied
        False
    """

    PLAYERS = ('X', 'O')

    def __init__(self, size: int = 3):
        if size < 3:
            raise ValueError("Board size must be at least 3")
        self.size = size
        self.board: Board = []
        self.reset()

    # ------------------------------------------------------------------
    # BaseGame interface
    # ------------------------------------------------------------------

    @property
    def state_size(self) -> int:
        return 2 * self.action_size

    @property
    def action_size(self) -> int:
        return self.size * self.size

    @property
    def players(self) -> tuple:
        return self.PLAYERS

    def reset(self) -> None:
        self.board = [[EMPTY] * self.size for _ in range(self.size)]

    def encode(self, player: str) -> np.ndarray:
        cells = self.action_size
        features = np.zeros(2 * cells, dtype=np.float32)
        for row in range(self.size):
            for col in range(self.size):
                cell = self.board[row][col]
                idx = row * self.size + col
                if cell == player:
                    features[idx] = 1.0
                elif cell != EMPTY:
                    features[cells + idx] = 1.0
        return features

    def legal_actions(self) -> Set[int]:
        return {
            row * self.size + col
            for row in range(self.size)
            for col in range(self.size)
            if self.board[row][col] == EMPTY
        }

    def apply(self, player: str, action: int) -> bool:
        try:
            self.make_move(player, action)
        except IllegalActionError:
            return False
        return True

    def winner(self) -> Optional[str]:
        for line in self._lines():
            first = line[0]
            if first != EMPTY and all(cell == first for cell in line):
                return first
        return None

    def is_full(self) -> bool:
        return all(cell != EMPTY for row in self.board for cell in row)

    def render(self) -> str:
        return '\n'.join(' '.join(row) for row in self.board)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def make_move(self, player: str, action: int) -> None:
        """
        Place `player`'s mark on cell `action`.

        Raises:
            IllegalActionError: If the cell is out of bounds or occupied
        """
        if player not in self.PLAYERS:
            raise ValueError(f"Unknown player {player!r}")
        if not 0 <= action < self.action_size:
            raise IllegalActionError(f"Invalid move: cell {action} out of bounds")
        row, col = divmod(action, self.size)
        if self.board[row][col] != EMPTY:
            raise IllegalActionError(f"Invalid move: cell {action} already occupied")
        self.board[row][col] = player

    def _lines(self) -> List[List[str]]:
        n = self.size
        lines = [list(row) for row in self.board]
        lines += [[self.board[r][c] for r in range(n)] for c in range(n)]
        lines.append([self.board[i][i] for i in range(n)])
        lines.append([self.board[i][n - 1 - i] for i in range(n)])
        return lines

    def copy_board(self) -> Board:
        return [list(row) for row in self.board]

    @staticmethod
    def render_boards(boards: Sequence[Board]) -> str:
        """Render several boards side by side, separated by ' | '."""
        if not boards:
            return ''
        size = len(boards[0])
        rows = []
        for row in range(size):
            rows.append(' | '.join(' '.join(board[row]) for board in boards) + ' |')
        return '\n'.join(rows)
