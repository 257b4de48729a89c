"""
Shared Network
==============

Owner of the one canonical, mutable Network used during training.

Concurrency model:
    - Every mutation (backpropagate) holds the lock for the whole update,
      so concurrent updates are serialized. They are never merged.
    - Readers that need many forward passes (Bellman targets) take a
      snapshot: a deep copy made under the lock whose arrays are
      write-protected. The lock is not held while the snapshot is used.
"""

import threading
from contextlib import contextmanager
from typing import Iterator

import numpy as np

from .layer import VectorLike
from .network import Network


class SharedNetwork:
    """
    Mutual-exclusion wrapper around the canonical network.

    Example:
        >>> shared = SharedNetwork(Network([18, 18, 9], [tanh, tanh]))
        >>> snapshot = shared.snapshot()          # read-only copy
        >>> target = snapshot.forward(state)      # no lock held
        >>> shared.backpropagate(state, target, 0.001)
    """

    def __init__(self, network: Network):
        self._network = network
        self._lock = threading.Lock()
        self.updates = 0

    @property
    def network(self) -> Network:
        """The canonical network. Only safe to use while no worker is training."""
        return self._network

    @contextmanager
    def locked(self) -> Iterator[Network]:
        """Hold the lock and yield the canonical network."""
        with self._lock:
            yield self._network

    def snapshot(self) -> Network:
        """Point-in-time, write-protected copy of the canonical network."""
        with self._lock:
            return self._network.clone(read_only=True)

    def forward(self, inputs: VectorLike) -> np.ndarray:
        with self._lock:
            return self._network.forward(inputs)

    def backpropagate(self, inputs: VectorLike, target: VectorLike, learning_rate: float) -> float:
        """Serialized in-place update of the canonical network."""
        with self._lock:
            loss = self._network.backpropagate(inputs, target, learning_rate)
            self.updates += 1
            return loss

    def replace(self, network: Network) -> None:
        """Swap in a different canonical network (e.g. after loading)."""
        with self._lock:
            self._network = network
