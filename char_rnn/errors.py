"""Exception types raised by the RNN trainer."""


class ConfigurationError(ValueError):
    """Invalid sizes, rates or window shapes. Fatal for the training run."""


class TokenIndexError(IndexError):
    """A token index fell outside [0, input_size)."""


class NonFiniteGradientError(FloatingPointError):
    """NaN or Inf showed up in the gradients; the update for that window is skipped."""


class CheckpointError(ValueError):
    """A checkpoint file is missing entries or does not match the model shapes."""
