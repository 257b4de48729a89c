"""
Experience Replay Buffer
========================

A memory buffer that stores transitions for training the Q-network.

Why Experience Replay?
    1. Breaks correlation between consecutive moves of a game
       (Neural networks learn poorly from correlated data)

    2. Improves sample efficiency
       (Each transition can be replayed after many later games)

How it works:
    1. Both self-play sides store (state, action, reward, next_state, terminal)
    2. After each episode a random batch is drawn, without replacement
    3. Old transitions are discarded when the buffer is full (FIFO)

References:
    Mnih et al., 2015 - "Human-level control through deep reinforcement learning"
"""

import threading
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Union

import numpy as np

from .errors import InsufficientSamplesError


@dataclass(frozen=True, eq=False)
class Transition:
    """
    One step of experience.

    Attributes:
        state: Encoded board before the move (acting player's perspective)
        action: Cell index that was played
        reward: Reward received for the move
        next_state: Encoded board after the move (same perspective)
        terminal: True if the move ended the episode (no bootstrapping)
    """
    state: np.ndarray
    action: int
    reward: float
    next_state: np.ndarray
    terminal: bool


class ReplayBuffer:
    """
    Fixed-size FIFO buffer of transitions with contiguous numpy storage.

    Optimizations:
        - Contiguous numpy arrays for all data
        - Circular buffer: eviction of the oldest entry is O(1)
        - Lazy initialization to support unknown state_size at creation

    Thread safety:
        push/extend/sample/clear take an internal lock, so sampling never
        observes a half-written row. sample() returns copies.

    Example:
        >>> buffer = ReplayBuffer(capacity=10000)
        >>> buffer.push(state, action, reward, next_state, terminal)
        >>> batch = buffer.sample(64)   # list of Transition
    """

    def __init__(self, capacity: int, state_size: int = 0,
                 rng: Optional[np.random.Generator] = None):
        """
        Initialize the replay buffer.

        Args:
            capacity: Maximum number of transitions to store
            state_size: Size of state vector (auto-detected on first push if 0)
            rng: Random generator used for sampling
        """
        if capacity <= 0:
            raise ValueError("Capacity must be positive")
        self.capacity = capacity
        self._state_size = state_size
        self._size = 0  # Current number of transitions stored
        self._position = 0  # Next write position (also the oldest entry once full)
        self._initialized = False
        self._lock = threading.Lock()
        self._rng = rng if rng is not None else np.random.default_rng()

        if state_size > 0:
            self._init_arrays(state_size)

    def _init_arrays(self, state_size: int) -> None:
        """Initialize contiguous storage arrays."""
        self._state_size = state_size
        self.states = np.empty((self.capacity, state_size), dtype=np.float32)
        self.actions = np.empty(self.capacity, dtype=np.int64)
        self.rewards = np.empty(self.capacity, dtype=np.float32)
        self.next_states = np.empty((self.capacity, state_size), dtype=np.float32)
        self.terminals = np.empty(self.capacity, dtype=np.bool_)
        self._initialized = True

    def push(
        self,
        state: Union[Transition, np.ndarray],
        action: Optional[int] = None,
        reward: Optional[float] = None,
        next_state: Optional[np.ndarray] = None,
        terminal: Optional[bool] = None
    ) -> None:
        """
        Add a transition to the buffer.

        Accepts either a Transition or its five fields. When the buffer is
        full, the oldest transition is overwritten.
        """
        if isinstance(state, Transition):
            transition = state
        else:
            if action is None or reward is None or next_state is None or terminal is None:
                raise TypeError("push() needs a Transition or all five fields")
            transition = Transition(state, int(action), float(reward), next_state, bool(terminal))

        with self._lock:
            self._write(transition)

    def extend(self, transitions: Iterable[Transition]) -> None:
        """Add several transitions in order."""
        with self._lock:
            for transition in transitions:
                self._write(transition)

    def _write(self, transition: Transition) -> None:
        if not self._initialized:
            self._init_arrays(len(transition.state))

        # np.copyto for explicit copy semantics (callers may reuse their arrays)
        np.copyto(self.states[self._position], transition.state)
        self.actions[self._position] = transition.action
        self.rewards[self._position] = transition.reward
        np.copyto(self.next_states[self._position], transition.next_state)
        self.terminals[self._position] = transition.terminal

        self._position = (self._position + 1) % self.capacity
        self._size = min(self._size + 1, self.capacity)

    def _row(self, index: int) -> Transition:
        return Transition(
            state=self.states[index].copy(),
            action=int(self.actions[index]),
            reward=float(self.rewards[index]),
            next_state=self.next_states[index].copy(),
            terminal=bool(self.terminals[index]),
        )

    def _chronological_indices(self) -> np.ndarray:
        start = self._position if self._size == self.capacity else 0
        return (start + np.arange(self._size)) % self.capacity

    def sample(self, batch_size: int) -> List[Transition]:
        """
        Sample distinct transitions uniformly at random (no replacement).

        Args:
            batch_size: Number of transitions to sample

        Returns:
            List of Transition copies

        Raises:
            InsufficientSamplesError: If batch_size exceeds the buffer size
        """
        with self._lock:
            if batch_size > self._size:
                raise InsufficientSamplesError(
                    f"Cannot sample {batch_size} transitions from a buffer holding {self._size}"
                )
            indices = self._rng.choice(self._size, size=batch_size, replace=False)
            return [self._row(i) for i in indices]

    def to_list(self) -> List[Transition]:
        """All stored transitions, oldest first."""
        with self._lock:
            return [self._row(i) for i in self._chronological_indices()]

    def __iter__(self) -> Iterator[Transition]:
        return iter(self.to_list())

    def __len__(self) -> int:
        """Return current buffer size."""
        return self._size

    def is_ready(self, batch_size: int) -> bool:
        """Check if buffer has enough transitions for sampling."""
        return self._size >= batch_size

    def clear(self) -> None:
        """Clear all transitions from the buffer."""
        with self._lock:
            self._size = 0
            self._position = 0
