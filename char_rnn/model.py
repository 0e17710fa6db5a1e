# model.py
import operator
import logging
from typing import Dict, List, NamedTuple, Optional, Sequence, Union

import numpy as np

from .activations import softmax, tanh, tanh_backward
from .errors import ConfigurationError, NonFiniteGradientError, TokenIndexError

# Probabilities are clamped to this floor before taking the log
PROB_EPSILON = 1e-15

PARAMETER_NAMES = ("U", "W", "V", "b", "c")


class ForwardTrace(NamedTuple):
    """Per-timestep vectors recorded by one forward pass over a window.

    xs, hs and ps hold one column vector per time step. h_seed is the hidden
    state that entered the window (h[-1] in the recurrence).
    """
    xs: List[np.ndarray]
    hs: List[np.ndarray]
    ps: List[np.ndarray]
    h_seed: np.ndarray


class Gradients(NamedTuple):
    """Gradients of the window loss for every parameter, plus the loss itself."""
    dU: np.ndarray
    dV: np.ndarray
    dW: np.ndarray
    db: np.ndarray
    dc: np.ndarray
    dh_seed: np.ndarray
    loss: float

    def as_dict(self) -> Dict[str, np.ndarray]:
        return {"U": self.dU, "W": self.dW, "V": self.dV, "b": self.db, "c": self.dc}


class RNN:
    """
    A single-layer Vanilla Recurrent Neural Network for character-level modelling.

    Owns the trainable parameters and implements the forward pass, the backward
    pass (Backpropagation Through Time - BPTT) and the plain gradient descent
    update. The hidden state is *not* stored on the model: callers pass it in
    and receive the new one through the forward trace.

    Shapes (all vectors are column vectors):
        U: (hidden_size, input_size)   input -> hidden
        W: (hidden_size, hidden_size)  hidden -> hidden (the recurrence)
        V: (input_size, hidden_size)   hidden -> output logits
        b: (hidden_size, 1)            hidden bias
        c: (input_size, 1)             output bias
    """

    def __init__(
        self,
        hidden_size: int,
        input_size: int,
        seq_length: int = 25,
        learning_rate: float = 1e-1,
        clip_value: Optional[float] = 5.0,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initializes the RNN model parameters and hyperparameters.

        Args:
            hidden_size: Number of units in the hidden layer (memory capacity).
            input_size: Vocabulary size. Determines the input and output layer sizes.
            seq_length: Expected window length. Only used by data sources for windowing.
            learning_rate: Step size for gradient descent updates.
            clip_value: Gradients are clipped element-wise to [-clip_value, clip_value].
                        None disables clipping.
            seed: Seed for the parameter initialization and sampling generator.
            rng: An existing generator. Takes precedence over `seed`.
        """
        if hidden_size <= 0:
            raise ConfigurationError(f"hidden_size must be positive, got {hidden_size}")
        if input_size <= 0:
            raise ConfigurationError(f"input_size must be positive, got {input_size}")
        if seq_length <= 0:
            raise ConfigurationError(f"seq_length must be positive, got {seq_length}")
        if learning_rate <= 0:
            raise ConfigurationError(f"learning_rate must be positive, got {learning_rate}")
        if clip_value is not None and clip_value <= 0:
            raise ConfigurationError(f"clip_value must be positive or None, got {clip_value}")

        self.hidden_size = int(hidden_size)
        self.input_size = int(input_size)
        self.seq_length = int(seq_length)
        self.learning_rate = float(learning_rate)
        self.clip_value = None if clip_value is None else float(clip_value)
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        # --- Model Parameters ---
        # Uniform in [-1/sqrt(fan_in), 1/sqrt(fan_in)]
        input_bound = 1.0 / np.sqrt(self.input_size)
        hidden_bound = 1.0 / np.sqrt(self.hidden_size)
        self.U = self.rng.uniform(-input_bound, input_bound, size=(self.hidden_size, self.input_size))
        self.W = self.rng.uniform(-hidden_bound, hidden_bound, size=(self.hidden_size, self.hidden_size))
        self.V = self.rng.uniform(-hidden_bound, hidden_bound, size=(self.input_size, self.hidden_size))
        self.b = np.zeros((self.hidden_size, 1))
        self.c = np.zeros((self.input_size, 1))

        logging.info(f"Created RNN with hidden_size={self.hidden_size}, input_size={self.input_size}, "
                     f"learning_rate={self.learning_rate}, clip_value={self.clip_value}")

    # --- Parameter Store ---

    def parameters(self) -> Dict[str, np.ndarray]:
        """The live parameter arrays by name. Mutating them mutates the model."""
        return {"U": self.U, "W": self.W, "V": self.V, "b": self.b, "c": self.c}

    def initial_hidden(self) -> np.ndarray:
        """A zero hidden state, used at the start of a run and on restart."""
        return np.zeros((self.hidden_size, 1))

    def apply_gradients(
        self,
        grads: Union[Gradients, Dict[str, np.ndarray]],
        learning_rate: Optional[float] = None,
    ) -> None:
        """
        Plain gradient descent: param -= learning_rate * grad, in place.

        Args:
            grads: A Gradients tuple from `backward`, or a dict keyed by parameter name.
            learning_rate: Overrides the model's learning rate for this update.
        """
        lr = self.learning_rate if learning_rate is None else float(learning_rate)
        if lr <= 0:
            raise ConfigurationError(f"learning_rate must be positive, got {lr}")
        if isinstance(grads, Gradients):
            grads = grads.as_dict()

        params = self.parameters()
        # Validate everything first so a bad entry never leaves a half-applied update
        for name in PARAMETER_NAMES:
            if name not in grads:
                raise ValueError(f"Missing gradient for parameter '{name}'")
            if grads[name].shape != params[name].shape:
                raise ValueError(f"Gradient shape {grads[name].shape} for '{name}' "
                                 f"does not match parameter shape {params[name].shape}")
        for name in PARAMETER_NAMES:
            params[name] -= lr * grads[name]

    # --- Forward Pass ---

    def forward(self, inputs: Sequence[int], h_prev: np.ndarray) -> ForwardTrace:
        """
        Runs the network over one window of token indices.

        Args:
            inputs: Token indices, each in [0, input_size).
            h_prev: Hidden state entering the window. Shape (hidden_size, 1) or (hidden_size,).

        Returns:
            ForwardTrace with one one-hot input, hidden state and probability
            distribution per time step, plus a copy of `h_prev` as `h_seed`.
        """
        h_seed = self._as_hidden(h_prev)
        xs, hs, ps = [], [], []

        h = h_seed
        for t in range(len(inputs)):
            # 1. Encode input token as a one-hot column
            x = self._one_hot(inputs[t])

            # 2. h_t = tanh(U*x_t + W*h_{t-1} + b)
            h = tanh(np.dot(self.U, x) + np.dot(self.W, h) + self.b)

            # 3. Output logits and their distribution
            logits = np.dot(self.V, h) + self.c
            p = softmax(logits)

            xs.append(x)
            hs.append(h)
            ps.append(p)

        logging.debug(f"Forward pass - window length: {len(inputs)}")
        return ForwardTrace(xs=xs, hs=hs, ps=ps, h_seed=h_seed)

    # --- Backward Pass (BPTT) ---

    def backward(self, trace: ForwardTrace, targets: Sequence[int]) -> Gradients:
        """
        Backpropagation Through Time over one forward trace.

        The hidden state entering the window is treated as a constant
        (truncated BPTT); its gradient is returned as `dh_seed` for diagnostics.

        Args:
            trace: The trace produced by `forward` for this window.
            targets: Expected next-token index for every time step.

        Returns:
            Gradients for U, V, W, b, c (clipped), dh_seed and the total
            cross-entropy loss of the window.
        """
        seq_len = len(trace.xs)
        if len(targets) != seq_len:
            raise ConfigurationError(f"Got {len(targets)} targets for a window of {seq_len} inputs")

        target_ix = [self._check_index(ix) for ix in targets]
        loss = self._cross_entropy(trace.ps, target_ix)

        dU, dW, dV = np.zeros_like(self.U), np.zeros_like(self.W), np.zeros_like(self.V)
        db, dc = np.zeros_like(self.b), np.zeros_like(self.c)

        # Gradient flowing into h_t from step t+1
        dh_next = np.zeros_like(trace.h_seed)

        for t in reversed(range(seq_len)):
            # Softmax + cross-entropy: dL/dlogits = p - one_hot(target)
            dy = np.copy(trace.ps[t])
            dy[target_ix[t]] -= 1

            dV += np.dot(dy, trace.hs[t].T)
            dc += dy

            # h_t feeds both the output layer and the next hidden state
            dh = np.dot(self.V.T, dy) + dh_next
            dh_raw = tanh_backward(trace.hs[t]) * dh

            h_before = trace.hs[t - 1] if t > 0 else trace.h_seed
            db += dh_raw
            dU += np.dot(dh_raw, trace.xs[t].T)
            dW += np.dot(dh_raw, h_before.T)

            dh_next = np.dot(self.W.T, dh_raw)

        for name, dparam in (("U", dU), ("W", dW), ("V", dV), ("b", db), ("c", dc)):
            if not np.all(np.isfinite(dparam)):
                raise NonFiniteGradientError(f"Non-finite values in gradient for '{name}'")

        # --- Gradient Clipping ---
        if self.clip_value is not None:
            for dparam in (dU, dW, dV, db, dc):
                np.clip(dparam, -self.clip_value, self.clip_value, out=dparam)

        logging.debug(f"Backward pass - window length: {seq_len}, loss: {loss:.4f}")
        return Gradients(dU=dU, dV=dV, dW=dW, db=db, dc=dc, dh_seed=dh_next, loss=loss)

    def loss(self, inputs: Sequence[int], targets: Sequence[int], h_prev: np.ndarray) -> float:
        """Total cross-entropy of one window, without computing gradients."""
        if len(inputs) != len(targets):
            raise ConfigurationError(f"Got {len(targets)} targets for a window of {len(inputs)} inputs")
        trace = self.forward(inputs, h_prev)
        return self._cross_entropy(trace.ps, [self._check_index(ix) for ix in targets])

    # --- Sampling ---

    def sample(
        self,
        h: np.ndarray,
        seed_ix: int,
        n: int,
        rng: Optional[np.random.Generator] = None,
    ) -> List[int]:
        """
        Generates a sequence of token indices from the model.

        Each sampled index is fed back as the input of the next step.

        Args:
            h: Initial hidden state.
            seed_ix: Index of the token that seeds the generation.
            n: Number of tokens to generate.
            rng: Generator used for drawing; defaults to the model's own.

        Returns:
            The generated indices (the seed is not included).
        """
        rng = self.rng if rng is None else rng
        x = self._one_hot(seed_ix)
        h = self._as_hidden(h)

        ixes = []
        for _ in range(n):
            h = tanh(np.dot(self.U, x) + np.dot(self.W, h) + self.b)
            p = softmax(np.dot(self.V, h) + self.c)
            ix = int(rng.choice(self.input_size, p=p.ravel()))
            x = self._one_hot(ix)
            ixes.append(ix)
        return ixes

    def summary(self) -> str:
        """A short text summary of the parameter shapes."""
        lines = ["=" * 40, "RNN Summary", "=" * 40]
        total = 0
        for name, param in self.parameters().items():
            lines.append(f"{name}: shape={param.shape} params={param.size}")
            total += param.size
        lines.append(f"Total Parameters: {total}")
        lines.append("=" * 40)
        return "\n".join(lines)

    # --- Helpers ---

    def _check_index(self, index) -> int:
        ix = operator.index(index)
        if ix < 0 or ix >= self.input_size:
            raise TokenIndexError(f"Token index {ix} out of range [0, {self.input_size})")
        return ix

    def _one_hot(self, index) -> np.ndarray:
        x = np.zeros((self.input_size, 1))
        x[self._check_index(index)] = 1
        return x

    def _as_hidden(self, h: np.ndarray) -> np.ndarray:
        h = np.array(h, dtype=np.float64)  # copy, the trace must not alias the caller's array
        if h.shape == (self.hidden_size,):
            h = h.reshape(self.hidden_size, 1)
        if h.shape != (self.hidden_size, 1):
            raise ValueError(f"Hidden state must have shape ({self.hidden_size}, 1), got {h.shape}")
        return h

    @staticmethod
    def _cross_entropy(ps: List[np.ndarray], targets: List[int]) -> float:
        loss = 0.0
        for p, target in zip(ps, targets):
            loss += -np.log(max(p[target, 0], PROB_EPSILON))
        return float(loss)
