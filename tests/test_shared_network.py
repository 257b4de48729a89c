"""
Tests for SharedNetwork.

These tests verify:
    - Snapshots are read-only point-in-time copies
    - Concurrent updates are serialized
"""

import threading

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gridq.ai.activation import Activation
from gridq.ai.network import Network
from gridq.ai.shared_network import SharedNetwork


@pytest.fixture
def shared():
    """Shared 6 -> 6 -> 3 network."""
    net = Network([6, 6, 3], [Activation.tanh(), Activation.tanh()],
                  rng=np.random.default_rng(11))
    return SharedNetwork(net)


class TestSnapshot:
    """Test snapshot semantics."""

    def test_snapshot_matches_canonical(self, shared):
        """A fresh snapshot computes the same outputs."""
        x = np.linspace(0, 1, 6)
        np.testing.assert_array_equal(shared.snapshot().forward(x), shared.forward(x))

    def test_snapshot_is_read_only(self, shared):
        """Writing to a snapshot's parameters raises."""
        snapshot = shared.snapshot()
        with pytest.raises(ValueError):
            snapshot.layers[0].weights[0, 0] = 0.0

    def test_snapshot_cannot_train(self, shared):
        """backpropagate() on a snapshot raises instead of mutating."""
        snapshot = shared.snapshot()
        with pytest.raises(ValueError):
            snapshot.backpropagate(np.ones(6), np.full(3, 0.9), 0.1)

    def test_snapshot_unaffected_by_updates(self, shared):
        """Updates to the canonical network do not leak into old snapshots."""
        x = np.ones(6)
        snapshot = shared.snapshot()
        before = snapshot.forward(x).copy()

        shared.backpropagate(x, np.full(3, 0.9), 0.1)

        np.testing.assert_array_equal(snapshot.forward(x), before)
        assert not np.array_equal(shared.forward(x), before)


class TestUpdates:
    """Test serialized updates."""

    def test_update_counter(self, shared):
        """Each backpropagate() counts once."""
        shared.backpropagate(np.ones(6), np.zeros(3), 0.01)
        shared.backpropagate(np.ones(6), np.zeros(3), 0.01)
        assert shared.updates == 2

    def test_concurrent_updates_all_applied(self, shared):
        """Updates from many threads are all applied, one at a time."""
        def worker():
            for _ in range(25):
                shared.backpropagate(np.ones(6), np.full(3, 0.5), 0.001)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert shared.updates == 100
        for layer in shared.network.layers:
            assert np.all(np.isfinite(layer.weights))

    def test_locked_yields_canonical(self, shared):
        """locked() gives access to the canonical network."""
        with shared.locked() as net:
            assert net is shared.network

    def test_replace(self, shared):
        """replace() swaps the canonical network."""
        other = Network([6, 3], [Activation.linear()])
        shared.replace(other)
        assert shared.network is other
