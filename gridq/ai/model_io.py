"""
Model Persistence
=================

Save and load a Network as JSON.

File layout:
    {
        "format_version": 1,
        "saved_at": "2026-01-01T12:00:00",
        "layers": [
            {"weights": [[...], ...], "biases": [...],
             "activation": {"kind": "tanh", "param": null}},
            ...
        ],
        "metadata": {...}          # optional, e.g. episode / epsilon
    }

Loading validates the topology against the expected layer sizes and
activations, so a model trained for another board size or architecture is
rejected instead of being silently misused.
"""

import json
import os
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import numpy as np

from .activation import Activation
from .errors import GridQError, PersistenceError
from .network import Network
from ..utils.logger import get_logger, log_model_event

logger = get_logger(__name__)

FORMAT_VERSION = 1


def save_network(network: Network, path: str, metadata: Optional[Dict[str, Any]] = None) -> None:
    """
    Write the full layer stack to `path`.

    Args:
        network: Network to persist
        path: Destination file (parent directories are created)
        metadata: Optional JSON-serializable extras stored alongside

    Raises:
        PersistenceError: If the file cannot be written
    """
    payload = {
        'format_version': FORMAT_VERSION,
        'saved_at': datetime.now().isoformat(timespec='seconds'),
        **network.to_dict(),
        'metadata': metadata or {},
    }
    tmp_path = f"{path}.tmp"
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f)
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise PersistenceError(f"Failed to save model to {path}: {e}") from e

    context = {'params': network.count_parameters()}
    context.update(metadata or {})
    log_model_event('save', path, **context)


def read_model_file(path: str) -> Dict[str, Any]:
    """Read and decode a model file without building a network."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            payload = json.load(f)
    except FileNotFoundError as e:
        raise PersistenceError(f"Model file not found: {path}") from e
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PersistenceError(f"Failed to read model from {path}: {e}") from e

    if not isinstance(payload, dict) or not isinstance(payload.get('layers'), list):
        raise PersistenceError(f"Malformed model file: {path}")
    version = payload.get('format_version', FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise PersistenceError(f"Unsupported model format version {version} in {path}")
    return payload


def check_topology(
    network: Network,
    expected_sizes: Sequence[int],
    expected_activations: Sequence[Activation]
) -> None:
    """
    Raise PersistenceError unless the network matches the expected topology.
    """
    if len(network.layers) != len(expected_activations) or \
            len(expected_sizes) != len(expected_activations) + 1:
        raise PersistenceError(
            f"Layer count mismatch: model has {len(network.layers)} layers, "
            f"expected {len(expected_activations)}"
        )
    for i, layer in enumerate(network.layers):
        expected_in, expected_out = expected_sizes[i], expected_sizes[i + 1]
        if (layer.input_size, layer.output_size) != (expected_in, expected_out):
            raise PersistenceError(
                f"Layer {i} shape mismatch: model {layer.input_size}x{layer.output_size}, "
                f"expected {expected_in}x{expected_out}"
            )
        if layer.activation != expected_activations[i]:
            raise PersistenceError(
                f"Layer {i} activation mismatch: model {layer.activation}, "
                f"expected {expected_activations[i]}"
            )


def load_network(
    path: str,
    expected_sizes: Sequence[int],
    expected_activations: Sequence[Activation],
    **network_kwargs
) -> Network:
    """
    Load a network and validate it against the expected topology.

    Args:
        path: Model file
        expected_sizes: Layer widths the caller needs
        expected_activations: Activation per layer the caller needs
        **network_kwargs: l1 / l2 / clip / min_delta for the loaded network

    Returns:
        The loaded Network

    Raises:
        PersistenceError: On I/O failure, malformed content or topology mismatch
    """
    payload = read_model_file(path)
    try:
        network = Network.from_dict(payload, **network_kwargs)
    except (GridQError, KeyError, TypeError, ValueError) as e:
        raise PersistenceError(f"Malformed model file {path}: {e}") from e

    check_topology(network, expected_sizes, expected_activations)
    for layer in network.layers:
        if not (np.all(np.isfinite(layer.weights)) and np.all(np.isfinite(layer.biases))):
            raise PersistenceError(f"Model file {path} contains non-finite parameters")

    log_model_event('load', path, sizes=network.sizes)
    return network


def load_or_create(
    path: str,
    sizes: Sequence[int],
    activations: Sequence[Activation],
    rng: Optional[np.random.Generator] = None,
    fallback: Optional[Network] = None,
    **network_kwargs
) -> Network:
    """
    Load the model at `path`, falling back to fresh random weights.

    Any PersistenceError is logged and training proceeds from scratch,
    either with `fallback` or with a newly initialized network.
    """
    try:
        return load_network(path, sizes, activations, **network_kwargs)
    except PersistenceError as e:
        logger.warning(f"{e} - starting from freshly initialized weights")

    network = fallback if fallback is not None else Network(sizes, activations, rng=rng, **network_kwargs)
    log_model_event('fresh', path, sizes=network.sizes)
    return network
