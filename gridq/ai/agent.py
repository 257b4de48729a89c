"""
Q-Learning Agent
================

The AI agent that learns to play a grid game with Q-learning.

Key Components:
    1. Shared Network  - The canonical Q-network behind a lock
    2. Replay Buffer   - Stores transitions for training
    3. Epsilon-Greedy  - Balances exploration vs exploitation

Training Algorithm:
    1. Observe state s
    2. Choose action a (epsilon-greedy over the legal cells)
    3. Play it, observe reward r and next state s'
    4. Store (s, a, r, s', terminal) in the replay buffer
    5. Sample a batch of distinct transitions
    6. Target: y = Q(s) with y[a] = r + γ · max Q(s')   (y[a] = r if terminal)
    7. Backpropagate (s, y) once per transition, immediately

There is no target network and no gradient averaging: every transition
updates the canonical network on its own (online SGD).

References:
    Watkins & Dayan, 1992 - "Q-learning"
"""

import random
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Collection, Dict, Iterable, List, Optional, Any

import numpy as np

from .activation import Activation
from .model_io import load_or_create, save_network
from .network import Network
from .replay_buffer import ReplayBuffer, Transition
from .shared_network import SharedNetwork
from ..utils.logger import get_logger

from config import Config

logger = get_logger(__name__)


def bellman_target(network: Network, transition: Transition, gamma: float) -> np.ndarray:
    """
    Regression target for one transition.

    The network's current prediction for `state`, with the played action's
    slot replaced by r + γ · max Q(next_state), or by r alone when the
    transition ended the episode.
    """
    target = np.array(network.forward(transition.state), dtype=np.float32)
    if transition.terminal:
        value = transition.reward
    else:
        value = transition.reward + gamma * float(np.max(network.forward(transition.next_state)))
    target[transition.action] = value
    return target


class Agent:
    """
    Q-learning agent with a hand-written network.

    Action Selection:
        - With probability epsilon: random cell (all cells, or only legal
          ones when EXPLORE_LEGAL_ONLY is set)
        - Otherwise: the legal cell with the highest Q-value
          (ties go to the lowest index)

    Attributes:
        shared: SharedNetwork guarding the canonical network
        memory: Experience replay buffer
        epsilon: Current exploration rate

    Example:
        >>> agent = Agent(state_size=18, action_size=9)
        >>> action = agent.select_action(state, legal_actions)
        >>> agent.remember(state, action, reward, next_state, terminal)
        >>> loss = agent.learn()
    """

    def __init__(
        self,
        state_size: int,
        action_size: int,
        config: Optional[Config] = None,
        network: Optional[Network] = None
    ):
        """
        Initialize the agent.

        Args:
            state_size: Dimension of state vector
            action_size: Number of possible actions
            config: Configuration object
            network: Existing network to train (a fresh one is built if None)
        """
        self.config = config or Config()
        self.state_size = state_size
        self.action_size = action_size

        seed = self.config.SEED
        self._rng = random.Random(seed)
        self._np_rng = np.random.default_rng(seed)

        self.activations = [Activation.from_name(name) for name in self.config.ACTIVATIONS]
        self.layer_sizes = [state_size] + self._hidden_sizes() + [action_size]

        if network is None:
            network = self._build_network()
        self.shared = SharedNetwork(network)

        self.memory = ReplayBuffer(
            capacity=self.config.MEMORY_SIZE,
            state_size=state_size,
            rng=np.random.default_rng(self._np_rng.integers(2**32))
        )

        # Exploration
        self.epsilon = self.config.EPSILON_START

        # Training step counter (counts single-transition updates)
        self.steps = 0

        # Track whether last action was exploration (for metrics)
        self._last_action_explored = False

        # Training metrics (bounded to prevent memory growth during long training)
        self.losses: deque = deque(maxlen=10000)
        self._losses_lock = threading.Lock()

        self._executor: Optional[ThreadPoolExecutor] = None

    def _hidden_sizes(self) -> List[int]:
        hidden = self.config.HIDDEN_LAYERS
        if hidden is None:
            hidden = [2 * self.action_size]
        return list(hidden)

    def _build_network(self) -> Network:
        return Network(
            self.layer_sizes,
            self.activations,
            l1=self.config.L1_REGULARIZATION,
            l2=self.config.L2_REGULARIZATION,
            clip=self.config.DELTA_CLIP,
            min_delta=self.config.MIN_DELTA,
            rng=np.random.default_rng(self._np_rng.integers(2**32))
        )

    @property
    def network(self) -> Network:
        """The canonical network (do not use while learn() runs)."""
        return self.shared.network

    # ------------------------------------------------------------------
    # Acting
    # ------------------------------------------------------------------

    def select_action(
        self,
        state: np.ndarray,
        legal_actions: Optional[Collection[int]] = None,
        training: bool = True
    ) -> int:
        """
        Select an action using the epsilon-greedy policy.

        Args:
            state: Encoded board
            legal_actions: Playable cells (None = every action is legal)
            training: If True, use exploration; if False, act greedily

        Returns:
            Selected action index
        """
        legal = sorted(legal_actions) if legal_actions is not None else list(range(self.action_size))

        if training and self.epsilon > 0 and self._rng.random() < self.epsilon:
            self._last_action_explored = True
            if self.config.EXPLORE_LEGAL_ONLY and legal:
                return self._rng.choice(legal)
            return self._rng.randrange(self.action_size)

        self._last_action_explored = False
        q_values = self.shared.forward(state)
        return self.greedy_action(q_values, legal)

    @staticmethod
    def greedy_action(q_values: np.ndarray, legal_actions: Iterable[int]) -> int:
        """Legal action with the largest Q-value, lowest index on ties."""
        best_action = -1
        best_value = -np.inf
        for action in sorted(legal_actions):
            if best_action < 0 or q_values[action] > best_value:
                best_action = action
                best_value = q_values[action]
        if best_action < 0:
            # No legal cell left: fall back to the overall argmax
            return int(np.argmax(q_values))
        return best_action

    def get_q_values(self, state: np.ndarray) -> np.ndarray:
        """Get Q-values for all actions."""
        return self.shared.forward(state)

    # ------------------------------------------------------------------
    # Memory
    # ------------------------------------------------------------------

    def remember(
        self,
        state: np.ndarray,
        action: int,
        reward: float,
        next_state: np.ndarray,
        terminal: bool
    ) -> None:
        """Store one transition in the replay buffer."""
        self.memory.push(state, action, reward, next_state, terminal)

    def remember_episode(self, transitions: Iterable[Transition]) -> None:
        """Store the transitions of a finished episode, in order."""
        self.memory.extend(transitions)

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def learn(self) -> Optional[float]:
        """
        Replay one batch from memory.

        Every sampled transition produces one backpropagate() call on the
        canonical network. With NUM_WORKERS > 1 the transitions are spread
        over a thread pool: each task computes its target from a read-only
        snapshot and then queues on the network lock for its update.

        Returns:
            Average loss over the batch, or None if the buffer is too small
        """
        batch_size = self.config.BATCH_SIZE
        if not self.memory.is_ready(batch_size):
            return None

        batch = self.memory.sample(batch_size)

        if self.config.NUM_WORKERS > 1:
            losses = list(self._get_executor().map(self._learn_from_snapshot, batch))
        else:
            losses = [self._learn_from_canonical(t) for t in batch]

        self.steps += len(losses)
        avg_loss = float(np.mean(losses))
        with self._losses_lock:
            self.losses.append(avg_loss)
        return avg_loss

    def _learn_from_canonical(self, transition: Transition) -> float:
        with self.shared.locked() as network:
            target = bellman_target(network, transition, self.config.GAMMA)
        return self.shared.backpropagate(transition.state, target, self.config.LEARNING_RATE)

    def _learn_from_snapshot(self, transition: Transition) -> float:
        snapshot = self.shared.snapshot()
        target = bellman_target(snapshot, transition, self.config.GAMMA)
        return self.shared.backpropagate(transition.state, target, self.config.LEARNING_RATE)

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.NUM_WORKERS,
                thread_name_prefix='gridq-learn'
            )
        return self._executor

    def close(self) -> None:
        """Shut down the worker pool, if one was started."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def reset_training_state(self) -> None:
        """Restart the epsilon schedule and empty replay memory for a new run."""
        self.epsilon = self.config.EPSILON_START
        self.memory.clear()

    def decay_epsilon(self) -> None:
        """Multiplicative decay after an episode, floored at EPSILON_END."""
        self.epsilon = max(
            self.config.EPSILON_END,
            self.epsilon * self.config.EPSILON_DECAY
        )

    def get_average_loss(self, n: int = 100) -> float:
        """Average of the last n batch losses (0.0 before any learning)."""
        with self._losses_lock:
            if not self.losses:
                return 0.0
            recent = list(self.losses)[-n:]
        return float(np.mean(recent))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, filepath: str, **metadata: Any) -> None:
        """
        Save the canonical network.

        Args:
            filepath: Path to save file
            **metadata: Extra values stored with the model
        """
        info: Dict[str, Any] = {'epsilon': round(self.epsilon, 6), 'steps': self.steps}
        info.update(metadata)
        with self.shared.locked() as network:
            save_network(network, filepath, metadata=info)

    def load(self, filepath: str) -> bool:
        """
        Load the network at `filepath`, or start fresh if it is unusable.

        Returns:
            True if a saved model was loaded, False if fresh weights are used
        """
        fresh = self._build_network()
        network = load_or_create(
            filepath,
            self.layer_sizes,
            self.activations,
            l1=self.config.L1_REGULARIZATION,
            l2=self.config.L2_REGULARIZATION,
            clip=self.config.DELTA_CLIP,
            min_delta=self.config.MIN_DELTA,
            fallback=fresh
        )
        self.shared.replace(network)
        loaded = network is not fresh
        if not loaded:
            logger.info(f"Training from scratch: {network}")
        return loaded
