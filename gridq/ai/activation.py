"""
Activation Functions
====================

A small, closed family of scalar activation functions, each paired with
its derivative.

    tanh            y = tanh(x)                  dy = 1 - tanh(x)²
    relu            y = max(x, 0)                dy = 1 if x > 0 else 0
    leaky_relu(s)   y = x if x > 0 else s·x      dy = 1 if x > 0 else s
    elu(a)          y = x if x > 0 else a(eˣ-1)  dy = 1 if x > 0 else a·eˣ
    linear          y = x                        dy = 1

Backpropagation calls derivative() with the layer's *activated output*,
not the pre-activation sum. For tanh this evaluates 1 - tanh(tanh(z))².
Trained models depend on this convention, so it is kept as is.

Both functions accept Python floats (returning floats) or numpy arrays
(returning arrays of the same shape and dtype).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

import numpy as np

ArrayOrFloat = Union[float, np.ndarray]


class ActivationKind(Enum):
    """Tags of the supported activation variants."""
    TANH = 'tanh'
    RELU = 'relu'
    LEAKY_RELU = 'leaky_relu'
    ELU = 'elu'
    LINEAR = 'linear'


# Variants that carry a parameter, with its default value
_DEFAULT_PARAMS = {
    ActivationKind.LEAKY_RELU: 0.01,
    ActivationKind.ELU: 1.0,
}


def _as_result(x: ArrayOrFloat, value: np.ndarray) -> ArrayOrFloat:
    if isinstance(x, np.ndarray):
        return value.astype(x.dtype, copy=False)
    return float(value)


@dataclass(frozen=True)
class Activation:
    """
    An activation function value.

    Use the named constructors rather than building instances directly:

        >>> Activation.tanh().compute(0.0)
        0.0
        >>> Activation.leaky_relu(0.1).compute(-2.0)
        -0.2
    """
    kind: ActivationKind
    param: Optional[float] = None

    def __post_init__(self):
        if self.kind in _DEFAULT_PARAMS:
            if self.param is None:
                object.__setattr__(self, 'param', _DEFAULT_PARAMS[self.kind])
            object.__setattr__(self, 'param', float(self.param))
        elif self.param is not None:
            raise ValueError(f"Activation '{self.kind.value}' takes no parameter")

    # ------------------------------------------------------------------
    # Named constructors
    # ------------------------------------------------------------------

    @classmethod
    def tanh(cls) -> 'Activation':
        return cls(ActivationKind.TANH)

    @classmethod
    def relu(cls) -> 'Activation':
        return cls(ActivationKind.RELU)

    @classmethod
    def leaky_relu(cls, slope: float = 0.01) -> 'Activation':
        return cls(ActivationKind.LEAKY_RELU, slope)

    @classmethod
    def elu(cls, alpha: float = 1.0) -> 'Activation':
        return cls(ActivationKind.ELU, alpha)

    @classmethod
    def linear(cls) -> 'Activation':
        return cls(ActivationKind.LINEAR)

    @classmethod
    def from_name(cls, name: str) -> 'Activation':
        """
        Parse a config string such as 'tanh', 'relu' or 'leaky_relu:0.05'.

        Raises:
            ValueError: If the name or parameter is not recognized
        """
        kind_name, _, param_text = name.strip().lower().partition(':')
        try:
            kind = ActivationKind(kind_name)
        except ValueError:
            options = ', '.join(k.value for k in ActivationKind)
            raise ValueError(f"Unknown activation {name!r} (options: {options})") from None
        param = float(param_text) if param_text else None
        return cls(kind, param)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def compute(self, x: ArrayOrFloat) -> ArrayOrFloat:
        """Apply the activation to x."""
        v = np.asarray(x)
        if self.kind is ActivationKind.TANH:
            out = np.tanh(v)
        elif self.kind is ActivationKind.RELU:
            out = np.maximum(v, 0.0)
        elif self.kind is ActivationKind.LEAKY_RELU:
            out = np.where(v > 0, v, self.param * v)
        elif self.kind is ActivationKind.ELU:
            out = np.where(v > 0, v, self.param * np.expm1(np.minimum(v, 0.0)))
        else:
            out = v
        return _as_result(x, out)

    def derivative(self, x: ArrayOrFloat) -> ArrayOrFloat:
        """Derivative of the activation, evaluated at x."""
        v = np.asarray(x)
        if self.kind is ActivationKind.TANH:
            out = 1.0 - np.tanh(v) ** 2
        elif self.kind is ActivationKind.RELU:
            out = np.where(v > 0, 1.0, 0.0)
        elif self.kind is ActivationKind.LEAKY_RELU:
            out = np.where(v > 0, 1.0, self.param)
        elif self.kind is ActivationKind.ELU:
            out = np.where(v > 0, 1.0, self.param * np.exp(np.minimum(v, 0.0)))
        else:
            out = np.ones_like(v, dtype=np.float64)
        return _as_result(x, out)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind.value, 'param': self.param}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Activation':
        return cls(ActivationKind(data['kind']), data.get('param'))

    def __str__(self) -> str:
        if self.param is None:
            return self.kind.value
        return f"{self.kind.value}:{self.param:g}"
