"""
Exception types raised by the learning stack.

    GridQError
    ├── DimensionMismatchError   shape inconsistency (also a ValueError)
    ├── IllegalActionError       occupied or out-of-range cell
    ├── PersistenceError         model file unreadable or incompatible
    └── InsufficientSamplesError batch larger than the replay buffer
"""

from typing import Tuple, Union


class GridQError(Exception):
    """Base class for all gridq errors."""


class DimensionMismatchError(GridQError, ValueError):
    """A vector or layer does not have the width its consumer expects."""

    def __init__(self, what: str, expected: int, actual: Union[int, Tuple[int, ...]]):
        got = f"shape {actual}" if isinstance(actual, tuple) else actual
        super().__init__(f"{what}: expected width {expected}, got {got}")
        self.expected = expected
        self.actual = actual


class IllegalActionError(GridQError):
    """A move targeted a cell that is outside the board or already taken."""


class PersistenceError(GridQError):
    """A model could not be saved, read, or matched to the expected topology."""


class InsufficientSamplesError(GridQError):
    """More transitions were requested than the buffer currently holds."""
