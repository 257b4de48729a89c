"""
Dense Layer
===========

One fully connected transformation: y = activation(x · W + b)

    W  weights, shape (input_size, output_size)  rows = inputs, cols = outputs
    b  biases,  shape (output_size,)

Update rule (stochastic delta rule with L1/L2 weight decay):

    δⱼ = clip(errorⱼ · f'(yⱼ), -1, 1)       yⱼ = current output of unit j
    skip unit j when |δⱼ| < 1e-6
    wᵢⱼ ← wᵢⱼ + lr·δⱼ - lr·(λ₁·sign(wᵢⱼ) + λ₂·wᵢⱼ)    for every input i
    bⱼ  ← bⱼ  + lr·δⱼ - lr·(λ₁·sign(bⱼ)  + λ₂·bⱼ)

The weight step is not scaled by the input value: every weight feeding an
updated unit moves by the same lr·δⱼ before decay.
"""

from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from .activation import Activation
from .errors import DimensionMismatchError

VectorLike = Union[Sequence[float], np.ndarray]

# Defaults for the update rule (see Config for the trainer-level settings)
L1_REGULARIZATION = 0.001
L2_REGULARIZATION = 0.001
DELTA_CLIP = 1.0
MIN_DELTA = 1e-6


def as_vector(values: VectorLike, width: int, what: str) -> np.ndarray:
    """Convert to a float32 vector, failing fast on a width mismatch."""
    vec = np.asarray(values, dtype=np.float32)
    if vec.ndim != 1 or vec.shape[0] != width:
        actual = vec.shape[0] if vec.ndim == 1 else vec.shape
        raise DimensionMismatchError(what, width, actual)
    return vec


class Layer:
    """
    Dense layer with its own activation.

    Attributes:
        weights: float32 matrix (input_size, output_size)
        biases: float32 vector (output_size,)
        activation: Activation applied to every output unit

    Example:
        >>> layer = Layer(18, 9, Activation.tanh())
        >>> layer.forward(np.zeros(18)).shape
        (9,)
    """

    def __init__(
        self,
        input_size: int,
        output_size: int,
        activation: Activation,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Create a layer with weights and biases drawn uniformly from [-1, 1).

        Args:
            input_size: Width of the incoming vector
            output_size: Number of units
            activation: Activation function of the units
            rng: Random generator (a fresh unseeded one if None)
        """
        if input_size <= 0 or output_size <= 0:
            raise ValueError(f"Layer sizes must be positive, got {input_size}x{output_size}")
        rng = rng if rng is not None else np.random.default_rng()
        self.weights = rng.uniform(-1.0, 1.0, size=(input_size, output_size)).astype(np.float32)
        self.biases = rng.uniform(-1.0, 1.0, size=output_size).astype(np.float32)
        self.activation = activation

    @classmethod
    def from_arrays(cls, weights: np.ndarray, biases: np.ndarray, activation: Activation) -> 'Layer':
        """Build a layer around existing parameters (copied to float32)."""
        weights = np.array(weights, dtype=np.float32)
        biases = np.array(biases, dtype=np.float32)
        if weights.ndim != 2:
            raise DimensionMismatchError("weight matrix rank", 2, weights.ndim)
        if biases.ndim != 1 or biases.shape[0] != weights.shape[1]:
            raise DimensionMismatchError("bias vector", weights.shape[1], biases.size)

        layer = cls.__new__(cls)
        layer.weights = weights
        layer.biases = biases
        layer.activation = activation
        return layer

    @property
    def input_size(self) -> int:
        return self.weights.shape[0]

    @property
    def output_size(self) -> int:
        return self.weights.shape[1]

    @property
    def parameter_count(self) -> int:
        return self.weights.size + self.biases.size

    def forward(self, inputs: VectorLike) -> np.ndarray:
        """
        Evaluate the layer.

        Args:
            inputs: Vector of length input_size

        Returns:
            Activated outputs, float32 vector of length output_size

        Raises:
            DimensionMismatchError: If the input width is wrong
        """
        x = as_vector(inputs, self.input_size, "layer input")
        return self.activation.compute(x @ self.weights + self.biases)

    def update(
        self,
        inputs: VectorLike,
        output_errors: VectorLike,
        learning_rate: float,
        l1: float = L1_REGULARIZATION,
        l2: float = L2_REGULARIZATION,
        clip: float = DELTA_CLIP,
        min_delta: float = MIN_DELTA
    ) -> np.ndarray:
        """
        Apply one delta-rule step in place.

        Args:
            inputs: The input this layer saw during the forward pass
            output_errors: Error signal per output unit (target - output)
            learning_rate: Step size
            l1: L1 decay coefficient
            l2: L2 decay coefficient
            clip: Deltas are clipped to [-clip, clip]
            min_delta: Units with a smaller clipped |delta| are skipped

        Returns:
            The clipped delta of every unit (skipped units included)
        """
        errors = as_vector(output_errors, self.output_size, "layer error")
        outputs = self.forward(inputs)

        deltas = errors * self.activation.derivative(outputs)
        np.clip(deltas, -clip, clip, out=deltas)

        active = np.abs(deltas) >= min_delta
        if not active.any():
            return deltas

        step = deltas[active] * np.float32(learning_rate)

        w = self.weights[:, active]
        self.weights[:, active] = w + step - learning_rate * (l1 * np.sign(w) + l2 * w)

        b = self.biases[active]
        self.biases[active] = b + step - learning_rate * (l1 * np.sign(b) + l2 * b)

        return deltas

    def clone(self, read_only: bool = False) -> 'Layer':
        """Deep copy; with read_only=True the copy's arrays reject writes."""
        copy = Layer.from_arrays(self.weights, self.biases, self.activation)
        if read_only:
            copy.weights.flags.writeable = False
            copy.biases.flags.writeable = False
        return copy

    def to_dict(self) -> Dict[str, Any]:
        return {
            'weights': self.weights.tolist(),
            'biases': self.biases.tolist(),
            'activation': self.activation.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Layer':
        return cls.from_arrays(
            np.asarray(data['weights'], dtype=np.float32),
            np.asarray(data['biases'], dtype=np.float32),
            Activation.from_dict(data['activation'])
        )

    def __repr__(self) -> str:
        return f"Layer({self.input_size} -> {self.output_size}, {self.activation})"
