"""
Tests for model persistence.

These tests verify:
    - Save/load reproduces the network exactly
    - Topology mismatches are rejected
    - Malformed files are rejected
    - load_or_create falls back to fresh weights
"""

import json

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gridq.ai.activation import Activation
from gridq.ai.errors import PersistenceError
from gridq.ai.model_io import (
    FORMAT_VERSION, load_network, load_or_create, read_model_file, save_network,
)
from gridq.ai.network import Network

TANH2 = [Activation.tanh(), Activation.tanh()]


@pytest.fixture
def network():
    return Network([18, 18, 9], TANH2, rng=np.random.default_rng(21))


@pytest.fixture
def model_path(tmp_path):
    return str(tmp_path / 'models' / 'trained_network.json')


class TestSaveLoad:
    """Test round trips."""

    def test_round_trip_exact(self, network, model_path):
        """A loaded network produces identical outputs."""
        save_network(network, model_path)
        loaded = load_network(model_path, [18, 18, 9], TANH2)

        x = np.linspace(-1, 1, 18)
        np.testing.assert_array_equal(loaded.forward(x), network.forward(x))

    def test_creates_directories(self, network, model_path):
        """Missing parent directories are created."""
        save_network(network, model_path)
        assert os.path.exists(model_path)

    def test_no_temp_file_left(self, network, model_path):
        """The temporary file is renamed into place."""
        save_network(network, model_path)
        assert not os.path.exists(model_path + '.tmp')

    def test_failed_write_removes_temp_file(self, network, model_path):
        """Unserializable metadata fails cleanly and leaves no partial file."""
        with pytest.raises(PersistenceError):
            save_network(network, model_path, metadata={'note': object()})
        assert not os.path.exists(model_path + '.tmp')
        assert not os.path.exists(model_path)

    def test_metadata_keys_not_reserved(self, network, model_path):
        """Metadata may use any key, including params and path."""
        save_network(network, model_path, metadata={'params': 1, 'path': 'x', 'event': 'y'})
        assert read_model_file(model_path)['metadata']['path'] == 'x'

    def test_file_layout(self, network, model_path):
        """The file stores version, layers and metadata."""
        save_network(network, model_path, metadata={'episode': 7})
        payload = read_model_file(model_path)
        assert payload['format_version'] == FORMAT_VERSION
        assert len(payload['layers']) == 2
        assert payload['layers'][0]['activation'] == {'kind': 'tanh', 'param': None}
        assert payload['metadata'] == {'episode': 7}

    def test_overwrite(self, network, model_path):
        """Saving twice keeps the latest network."""
        save_network(network, model_path)
        other = Network([18, 18, 9], TANH2, rng=np.random.default_rng(22))
        save_network(other, model_path)

        loaded = load_network(model_path, [18, 18, 9], TANH2)
        x = np.ones(18)
        np.testing.assert_array_equal(loaded.forward(x), other.forward(x))

    def test_parameterized_activation_preserved(self, model_path):
        """Activation parameters survive the round trip."""
        acts = [Activation.leaky_relu(0.05), Activation.linear()]
        net = Network([4, 3, 2], acts)
        save_network(net, model_path)
        loaded = load_network(model_path, [4, 3, 2], acts)
        assert loaded.activations == acts


class TestValidation:
    """Test rejected files."""

    def test_missing_file(self, tmp_path):
        """A missing file raises PersistenceError."""
        with pytest.raises(PersistenceError):
            load_network(str(tmp_path / 'nope.json'), [18, 18, 9], TANH2)

    def test_corrupt_json(self, tmp_path):
        """Unparseable content raises PersistenceError."""
        path = tmp_path / 'bad.json'
        path.write_text('{not json')
        with pytest.raises(PersistenceError):
            load_network(str(path), [18, 18, 9], TANH2)

    def test_wrong_layer_count(self, network, model_path):
        """A model with another depth is rejected."""
        save_network(network, model_path)
        with pytest.raises(PersistenceError):
            load_network(model_path, [18, 18, 18, 9], TANH2 + [Activation.tanh()])

    def test_wrong_widths(self, network, model_path):
        """A model for another board size is rejected."""
        save_network(network, model_path)
        with pytest.raises(PersistenceError):
            load_network(model_path, [32, 32, 16], TANH2)

    def test_wrong_activation(self, network, model_path):
        """A model with other activations is rejected."""
        save_network(network, model_path)
        with pytest.raises(PersistenceError):
            load_network(model_path, [18, 18, 9], [Activation.relu(), Activation.tanh()])

    def test_inconsistent_layer_shapes(self, network, model_path):
        """A bias vector that does not match its weights is rejected."""
        save_network(network, model_path)
        with open(model_path) as f:
            payload = json.load(f)
        payload['layers'][0]['biases'] = payload['layers'][0]['biases'][:-1]
        with open(model_path, 'w') as f:
            json.dump(payload, f)

        with pytest.raises(PersistenceError):
            load_network(model_path, [18, 18, 9], TANH2)

    def test_non_finite_values(self, network, model_path):
        """NaN parameters are rejected."""
        save_network(network, model_path)
        with open(model_path) as f:
            payload = json.load(f)
        payload['layers'][1]['weights'][0][0] = float('nan')
        with open(model_path, 'w') as f:
            json.dump(payload, f)

        with pytest.raises(PersistenceError):
            load_network(model_path, [18, 18, 9], TANH2)

    def test_unknown_version(self, network, model_path):
        """A future format version is rejected."""
        save_network(network, model_path)
        with open(model_path) as f:
            payload = json.load(f)
        payload['format_version'] = FORMAT_VERSION + 1
        with open(model_path, 'w') as f:
            json.dump(payload, f)

        with pytest.raises(PersistenceError):
            read_model_file(model_path)

    def test_unwritable_destination(self, network, tmp_path):
        """Save errors surface as PersistenceError."""
        blocker = tmp_path / 'file'
        blocker.write_text('x')
        with pytest.raises(PersistenceError):
            save_network(network, str(blocker / 'model.json'))


class TestLoadOrCreate:
    """Test the fallback path."""

    def test_loads_existing(self, network, model_path):
        """An existing compatible model is loaded."""
        save_network(network, model_path)
        loaded = load_or_create(model_path, [18, 18, 9], TANH2)
        x = np.ones(18)
        np.testing.assert_array_equal(loaded.forward(x), network.forward(x))

    def test_missing_gives_fresh(self, tmp_path):
        """A missing file gives a fresh network of the requested shape."""
        net = load_or_create(str(tmp_path / 'missing.json'), [18, 18, 9], TANH2,
                             rng=np.random.default_rng(0))
        assert net.sizes == [18, 18, 9]

    def test_mismatch_gives_fallback(self, network, model_path):
        """An incompatible model is replaced by the given fallback."""
        save_network(network, model_path)
        fallback = Network([32, 32, 16], TANH2)
        assert load_or_create(model_path, [32, 32, 16], TANH2, fallback=fallback) is fallback
