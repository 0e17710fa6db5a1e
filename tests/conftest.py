import numpy as np
import pytest

from char_rnn import RNN


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def small_model():
    """hidden_size=3, input_size=4: small enough for finite-difference checks."""
    return RNN(hidden_size=3, input_size=4, seq_length=5, learning_rate=0.1, seed=0)


@pytest.fixture
def cycle_tokens():
    """A period-4 token cycle 0,1,2,3,0,1,... over a vocabulary of 4 symbols."""
    return [0, 1, 2, 3] * 25 + [0]
