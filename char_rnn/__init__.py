"""A minimal character-level RNN trainer written with NumPy."""

from .activations import softmax
from .checkpoint import Checkpoint, load_checkpoint, save_checkpoint
from .config import TrainingConfig
from .data import CharReader, Vocabulary, load_text
from .errors import CheckpointError, ConfigurationError, NonFiniteGradientError, TokenIndexError
from .model import RNN, ForwardTrace, Gradients
from .trainer import Trainer, TrainingResult, TrainingSession, TrainingState

__version__ = "0.1.0"

__all__ = [
    "RNN",
    "ForwardTrace",
    "Gradients",
    "softmax",
    "Trainer",
    "TrainingConfig",
    "TrainingResult",
    "TrainingSession",
    "TrainingState",
    "CharReader",
    "Vocabulary",
    "load_text",
    "Checkpoint",
    "save_checkpoint",
    "load_checkpoint",
    "ConfigurationError",
    "TokenIndexError",
    "NonFiniteGradientError",
    "CheckpointError",
]
