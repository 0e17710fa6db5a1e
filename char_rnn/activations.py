import numpy as np
from typing import Union
import logging


def softmax(logits: np.ndarray) -> np.ndarray:
    """Compute softmax safely using the max subtraction trick.

    Every column is treated as the logit vector of one time step and is
    normalized on its own: each column gets its own max-shift and its own
    normalizing sum, so stacking several steps side by side never mixes them.

    Args:
        logits: Column vector (N, 1), flat vector (N,) or a stack of columns (N, T).

    Returns:
        Probabilities with the same shape as `logits`. Every column sums to 1.
    """
    logits = np.asarray(logits, dtype=np.float64)
    logging.debug(f"Softmax forward - input shape: {logits.shape}")

    # Flat vectors are a single column
    axis = 0
    shifted = logits - np.max(logits, axis=axis, keepdims=True)
    exp_logits = np.exp(shifted)
    result = exp_logits / np.sum(exp_logits, axis=axis, keepdims=True)

    # exp() of a very negative shifted logit underflows to exactly 0.
    # Keep every probability strictly positive, then renormalize.
    if np.any(result <= 0.0):
        result = np.maximum(result, np.finfo(np.float64).tiny)
        result = result / np.sum(result, axis=axis, keepdims=True)

    logging.debug(f"Softmax forward - output shape: {result.shape}")
    return result


def tanh(x: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Hyperbolic tangent, the hidden-state nonlinearity."""
    return np.tanh(x)


def tanh_backward(activated: np.ndarray) -> np.ndarray:
    """Derivative of tanh expressed through its output: 1 - tanh(x)^2.

    Args:
        activated: The *output* of tanh (the hidden state), not its input.
    """
    return 1.0 - activated * activated
