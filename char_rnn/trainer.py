import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .config import TrainingConfig
from .errors import ConfigurationError
from .model import RNN

# A pull-style data source: returns (inputs, targets, restart, exhausted)
Reader = Callable[[], Tuple[Sequence[int], Sequence[int], bool, bool]]


class TrainingState(Enum):
    RUNNING = "running"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"              # data ran out before convergence
    ITERATION_LIMIT = "iteration_limit"  # caller's iteration cap reached


@dataclass
class TrainingSession:
    """
    Everything a training run carries from one window to the next.

    Attributes:
        h_prev: Hidden state handed into the next window, shape (hidden_size, 1).
        smooth_loss: Exponential moving average of the per-step loss.
        iteration: Number of completed training windows.
        state: Current state of the run.
        loss_history: Smoothed loss after every completed window.
    """
    h_prev: np.ndarray
    smooth_loss: float
    iteration: int = 0
    state: TrainingState = TrainingState.RUNNING
    loss_history: List[float] = field(default_factory=list)

    @classmethod
    def start(cls, model: RNN) -> "TrainingSession":
        """A fresh session: zero hidden state, smoothed loss of a uniform predictor."""
        return cls(h_prev=model.initial_hidden(), smooth_loss=float(-np.log(1.0 / model.input_size)))


class TrainingResult(NamedTuple):
    outcome: TrainingState
    iterations: int
    smooth_loss: float

    @property
    def converged(self) -> bool:
        return self.outcome is TrainingState.CONVERGED


class Trainer:
    """
    Drives repeated forward/backward/update cycles over windows pulled from a reader.

    The hidden state is threaded from one window into the next and reset to
    zero when the reader signals `restart`. The run converges once the smoothed
    per-step loss drops to `config.threshold`, ends as EXHAUSTED when the reader
    runs dry first, and as ITERATION_LIMIT when `config.max_iterations` is hit.

    Parameter updates use `config.learning_rate`. Without a config, the
    learning rate and clipping bound are taken from the model. The model clips
    its own gradients, so a config whose `clip_value` disagrees with the
    model is rejected.
    """

    def __init__(
        self,
        model: RNN,
        reader: Reader,
        config: Optional[TrainingConfig] = None,
        session: Optional[TrainingSession] = None,
    ):
        self.model = model
        self.reader = reader
        if config is None:
            config = TrainingConfig(learning_rate=model.learning_rate, clip_value=model.clip_value)
        self.config = config.validate()
        if self.config.clip_value != model.clip_value:
            raise ConfigurationError(f"Config clip_value={self.config.clip_value} does not match "
                                     f"the model clip_value={model.clip_value}")
        self.session = session if session is not None else TrainingSession.start(model)

    def step(self) -> TrainingState:
        """
        Processes one window. Returns the session state afterwards.

        Errors raised by the model (bad indices, non-finite gradients) propagate
        before any update is applied, leaving the session untouched.
        """
        session = self.session
        if session.state is not TrainingState.RUNNING:
            return session.state

        inputs, targets, restart, exhausted = self.reader()
        if exhausted:
            logging.info(f"Data exhausted after {session.iteration} iterations "
                         f"(smoothed loss {session.smooth_loss:.4f}).")
            session.state = TrainingState.EXHAUSTED
            return session.state

        if len(inputs) != len(targets):
            raise ConfigurationError(f"Window has {len(inputs)} inputs but {len(targets)} targets")
        if len(inputs) == 0:
            raise ConfigurationError("Reader returned an empty window")

        if restart:
            logging.debug(f"Iteration {session.iteration}: resetting hidden state")
            h_prev = self.model.initial_hidden()
        else:
            h_prev = session.h_prev

        trace = self.model.forward(inputs, h_prev)
        grads = self.model.backward(trace, targets)

        # Per-step loss keeps the threshold meaningful across window lengths
        step_loss = grads.loss / len(inputs)
        smoothing = self.config.smoothing
        smooth_loss = smoothing * session.smooth_loss + (1.0 - smoothing) * step_loss

        self.model.apply_gradients(grads, self.config.learning_rate)

        session.h_prev = trace.hs[-1]
        session.smooth_loss = float(smooth_loss)
        session.iteration += 1
        session.loss_history.append(session.smooth_loss)

        if session.smooth_loss <= self.config.threshold:
            logging.info(f"Converged after {session.iteration} iterations "
                         f"(smoothed loss {session.smooth_loss:.4f} <= {self.config.threshold}).")
            session.state = TrainingState.CONVERGED
        elif self.config.max_iterations is not None and session.iteration >= self.config.max_iterations:
            logging.info(f"Stopped at iteration limit {self.config.max_iterations} "
                         f"(smoothed loss {session.smooth_loss:.4f}).")
            session.state = TrainingState.ITERATION_LIMIT
        return session.state

    def train(self, on_step: Optional[Callable[[TrainingSession], None]] = None) -> TrainingResult:
        """
        Runs until the session leaves the RUNNING state.

        Args:
            on_step: Called with the session after every completed window.

        Returns:
            TrainingResult with the outcome, iteration count and final smoothed loss.
        """
        session = self.session
        logging.info(f"Starting training at iteration {session.iteration} "
                     f"(smoothed loss {session.smooth_loss:.4f}).")
        while session.state is TrainingState.RUNNING:
            iteration = session.iteration
            self.step()
            if on_step is not None and session.iteration > iteration:
                on_step(session)
        return TrainingResult(outcome=session.state, iterations=session.iteration,
                              smooth_loss=session.smooth_loss)
