"""
AI Module
=========

Hand-written Q-learning components for grid games.

Classes:
    Activation    - Activation function family (tanh, relu, leaky_relu, elu, linear)
    Layer         - Dense layer with delta-rule update
    Network       - Layer stack with manual backpropagation
    SharedNetwork - Lock-guarded canonical network with read-only snapshots
    ReplayBuffer  - Experience replay memory
    Agent         - Epsilon-greedy Q-learning agent
    Trainer       - Self-play training loop
    Evaluator     - Greedy games against a random opponent
"""

from .activation import Activation, ActivationKind
from .layer import Layer
from .network import Network
from .shared_network import SharedNetwork
from .replay_buffer import ReplayBuffer, Transition
from .agent import Agent
from .trainer import Trainer
from .evaluator import Evaluator

__all__ = [
    'Activation', 'ActivationKind', 'Layer', 'Network', 'SharedNetwork',
    'ReplayBuffer', 'Transition', 'Agent', 'Trainer', 'Evaluator',
]
