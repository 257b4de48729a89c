"""
Q-Network
=========

The neural network that approximates Q-values for state-action pairs.

Theory:
    Q-Learning aims to learn Q(s, a) = expected future reward.
    A dense layer stack approximates this function:

    Input:  one-hot board encoding (own pieces, opponent pieces)
    Output: one Q-value per board cell

Training is online, single-sample backpropagation written out by hand:

    e  = target - Q(s)                       error at the output layer
    for each layer, last to first:
        layer.update(x_layer, e, lr)         delta rule + L1/L2 decay
        e = W · e                            error for the previous layer

W · e is the transpose matrix-vector product (W has shape inputs x outputs)
and uses the weights as they are after the layer's own update. There is no
momentum, no batching and no second-order term.
"""

from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .activation import Activation
from .errors import DimensionMismatchError
from .layer import (
    Layer, VectorLike, as_vector,
    L1_REGULARIZATION, L2_REGULARIZATION, DELTA_CLIP, MIN_DELTA,
)


class Network:
    """
    Feedforward network made of dense layers.

    Architecture:
        sizes[0] → sizes[1] → ... → sizes[-1]
        layer i maps sizes[i] to sizes[i + 1] with activations[i]

    Attributes:
        layers: The layer stack, owned exclusively by this network
        l1, l2: Weight decay coefficients used by backpropagate()

    Example:
        >>> net = Network([18, 18, 9], [Activation.tanh(), Activation.tanh()])
        >>> q_values = net.forward(np.zeros(18))  # shape (9,)
    """

    def __init__(
        self,
        sizes: Sequence[int],
        activations: Sequence[Activation],
        l1: float = L1_REGULARIZATION,
        l2: float = L2_REGULARIZATION,
        clip: float = DELTA_CLIP,
        min_delta: float = MIN_DELTA,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Initialize the network with random weights.

        Args:
            sizes: Layer widths, input first, output last
            activations: One activation per layer (len(sizes) - 1 entries)
            l1: L1 decay coefficient
            l2: L2 decay coefficient
            clip: Delta clipping bound used by every layer update
            min_delta: Convergence threshold below which units are skipped
            rng: Random generator for weight initialization

        Raises:
            DimensionMismatchError: If sizes and activations disagree
        """
        if len(sizes) != len(activations) + 1:
            raise DimensionMismatchError("activation count", len(sizes) - 1, len(activations))
        if len(activations) == 0:
            raise ValueError("A network needs at least one layer")

        rng = rng if rng is not None else np.random.default_rng()
        layers = [
            Layer(sizes[i], sizes[i + 1], activations[i], rng=rng)
            for i in range(len(activations))
        ]
        self._init_from_layers(layers, l1, l2, clip, min_delta)

    @classmethod
    def from_layers(
        cls,
        layers: Sequence[Layer],
        l1: float = L1_REGULARIZATION,
        l2: float = L2_REGULARIZATION,
        clip: float = DELTA_CLIP,
        min_delta: float = MIN_DELTA
    ) -> 'Network':
        """Assemble a network from existing layers (widths must chain)."""
        if not layers:
            raise ValueError("A network needs at least one layer")
        for prev, nxt in zip(layers, layers[1:]):
            if prev.output_size != nxt.input_size:
                raise DimensionMismatchError("layer input", prev.output_size, nxt.input_size)

        network = cls.__new__(cls)
        network._init_from_layers(list(layers), l1, l2, clip, min_delta)
        return network

    def _init_from_layers(self, layers: List[Layer], l1: float, l2: float,
                          clip: float, min_delta: float) -> None:
        self.layers = layers
        self.l1 = l1
        self.l2 = l2
        self.clip = clip
        self.min_delta = min_delta

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def input_size(self) -> int:
        return self.layers[0].input_size

    @property
    def output_size(self) -> int:
        return self.layers[-1].output_size

    @property
    def sizes(self) -> List[int]:
        return [self.input_size] + [layer.output_size for layer in self.layers]

    @property
    def activations(self) -> List[Activation]:
        return [layer.activation for layer in self.layers]

    # ------------------------------------------------------------------
    # Forward / backward
    # ------------------------------------------------------------------

    def forward(self, inputs: VectorLike) -> np.ndarray:
        """
        Forward pass through every layer.

        Args:
            inputs: Feature vector of length input_size

        Returns:
            Q-values, float32 vector of length output_size
        """
        x = inputs
        for layer in self.layers:
            x = layer.forward(x)
        return x

    def forward_with_activations(self, inputs: VectorLike) -> List[np.ndarray]:
        """Forward pass returning the output vector of every layer."""
        outputs = []
        x = inputs
        for layer in self.layers:
            x = layer.forward(x)
            outputs.append(x)
        return outputs

    def backpropagate(self, inputs: VectorLike, target: VectorLike, learning_rate: float) -> float:
        """
        Move the network output for `inputs` toward `target`.

        Args:
            inputs: Feature vector the target refers to
            target: Desired output vector (length output_size)
            learning_rate: Step size

        Returns:
            Mean squared output error before the update
        """
        x = as_vector(inputs, self.input_size, "network input")
        target_vec = as_vector(target, self.output_size, "network target")

        outputs = self.forward_with_activations(x)
        errors = target_vec - outputs[-1]
        loss = float(np.mean(errors.astype(np.float64) ** 2))

        for idx in range(len(self.layers) - 1, -1, -1):
            layer = self.layers[idx]
            layer_input = x if idx == 0 else outputs[idx - 1]
            layer.update(
                layer_input, errors, learning_rate,
                l1=self.l1, l2=self.l2, clip=self.clip, min_delta=self.min_delta
            )
            if idx > 0:
                errors = layer.weights @ errors

        return loss

    # ------------------------------------------------------------------
    # Copies and introspection
    # ------------------------------------------------------------------

    def clone(self, read_only: bool = False) -> 'Network':
        """Independent deep copy (optionally with write-protected arrays)."""
        return Network.from_layers(
            [layer.clone(read_only=read_only) for layer in self.layers],
            l1=self.l1, l2=self.l2, clip=self.clip, min_delta=self.min_delta
        )

    def get_layer_info(self) -> List[Dict[str, Any]]:
        """
        Get information about each layer.

        Returns:
            List of dicts with layer metadata, input layer first
        """
        info: List[Dict[str, Any]] = [{
            'name': 'Input',
            'neurons': self.input_size,
            'type': 'input',
        }]
        for i, layer in enumerate(self.layers):
            is_output = i == len(self.layers) - 1
            info.append({
                'name': 'Output' if is_output else f'Hidden {i + 1}',
                'neurons': layer.output_size,
                'activation': str(layer.activation),
                'type': 'output' if is_output else 'hidden',
            })
        return info

    def get_weights(self) -> List[np.ndarray]:
        """Copies of all weight matrices."""
        return [layer.weights.copy() for layer in self.layers]

    def count_parameters(self) -> int:
        """Return total number of trainable parameters."""
        return sum(layer.parameter_count for layer in self.layers)

    def to_dict(self) -> Dict[str, Any]:
        return {'layers': [layer.to_dict() for layer in self.layers]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], **kwargs) -> 'Network':
        return cls.from_layers([Layer.from_dict(d) for d in data['layers']], **kwargs)

    def __repr__(self) -> str:
        acts = ', '.join(str(a) for a in self.activations)
        return f"Network(sizes={self.sizes}, activations=[{acts}])"
