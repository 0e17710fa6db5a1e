from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .errors import ConfigurationError


@dataclass
class TrainingConfig:
    """
    Hyperparameters for a training run.

    Attributes:
        hidden_size: Size of the hidden state vector.
        seq_length: Length of the windows the corpus reader produces.
        learning_rate: Step size for gradient descent.
        threshold: Training stops once the smoothed per-step loss is at or below this.
        smoothing: Decay of the smoothed loss moving average.
        clip_value: Element-wise gradient clipping bound. None disables clipping.
        max_iterations: Optional cap on the number of training iterations.
        sample_every: How often the example script prints progress and a sample.
        sample_length: Length of the generated sample text.
        seed: Seed for parameter initialization and sampling.
    """
    hidden_size: int = 100
    seq_length: int = 25
    learning_rate: float = 1e-1
    threshold: float = 0.01
    smoothing: float = 0.999
    clip_value: Optional[float] = 5.0
    max_iterations: Optional[int] = None
    sample_every: int = 1000
    sample_length: int = 200
    seed: Optional[int] = None

    def validate(self) -> "TrainingConfig":
        """Raises ConfigurationError on the first invalid value. Returns self."""
        if self.hidden_size <= 0:
            raise ConfigurationError(f"hidden_size must be positive, got {self.hidden_size}")
        if self.seq_length <= 0:
            raise ConfigurationError(f"seq_length must be positive, got {self.seq_length}")
        if self.learning_rate <= 0:
            raise ConfigurationError(f"learning_rate must be positive, got {self.learning_rate}")
        if not 0.0 <= self.smoothing < 1.0:
            raise ConfigurationError(f"smoothing must be in [0, 1), got {self.smoothing}")
        if self.clip_value is not None and self.clip_value <= 0:
            raise ConfigurationError(f"clip_value must be positive or None, got {self.clip_value}")
        if self.max_iterations is not None and self.max_iterations <= 0:
            raise ConfigurationError(f"max_iterations must be positive or None, got {self.max_iterations}")
        if self.sample_every <= 0:
            raise ConfigurationError(f"sample_every must be positive, got {self.sample_every}")
        if self.sample_length < 0:
            raise ConfigurationError(f"sample_length must not be negative, got {self.sample_length}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
