"""
Corpus helpers: character vocabulary and a windowing reader that feeds the Trainer.
"""
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import ConfigurationError


def load_text(path: str) -> str:
    """Reads a UTF-8 corpus file."""
    with open(path, "r", encoding="utf-8") as f:
        data = f.read()
    logging.info(f"Loaded {len(data)} characters from {path}")
    return data


class Vocabulary:
    """Character <-> index mapping built from a corpus."""

    def __init__(self, chars: Iterable[str]):
        self.chars: List[str] = list(chars)
        if len(set(self.chars)) != len(self.chars):
            raise ConfigurationError("Vocabulary characters must be unique")
        self.char_to_ix: Dict[str, int] = {ch: i for i, ch in enumerate(self.chars)}
        self.ix_to_char: Dict[int, str] = {i: ch for i, ch in enumerate(self.chars)}

    @classmethod
    def from_text(cls, text: str) -> "Vocabulary":
        if not text:
            raise ConfigurationError("Cannot build a vocabulary from empty text")
        return cls(sorted(set(text)))

    @property
    def size(self) -> int:
        return len(self.chars)

    def __len__(self) -> int:
        return len(self.chars)

    def encode(self, text: str) -> List[int]:
        try:
            return [self.char_to_ix[ch] for ch in text]
        except KeyError as e:
            raise ValueError(f"Character {e.args[0]!r} is not in the vocabulary") from e

    def decode(self, indices: Iterable[int]) -> str:
        return "".join(self.ix_to_char[ix] for ix in indices)


class CharReader:
    """
    Pull-style data source over a token stream.

    Each call returns (inputs, targets, restart, exhausted) where targets are the
    inputs shifted by one token. The pointer advances by `seq_length` per call.
    `restart` is set on the first window and every time the pointer wraps back
    to the start of the corpus, so the trainer zeroes its hidden state there.

    Args:
        tokens: The encoded corpus.
        seq_length: Number of tokens per window.
        max_passes: Stop after this many passes over the corpus. None loops forever.
    """

    def __init__(self, tokens: Sequence[int], seq_length: int, max_passes: Optional[int] = None):
        if seq_length <= 0:
            raise ConfigurationError(f"seq_length must be positive, got {seq_length}")
        if len(tokens) < seq_length + 1:
            raise ConfigurationError(f"Corpus of {len(tokens)} tokens is too short for "
                                     f"seq_length={seq_length}; need at least {seq_length + 1}")
        if max_passes is not None and max_passes <= 0:
            raise ConfigurationError(f"max_passes must be positive or None, got {max_passes}")

        self.tokens = list(tokens)
        self.seq_length = seq_length
        self.max_passes = max_passes
        self.passes = 0  # completed passes over the corpus
        self._pointer = 0
        self._started = False

    def __call__(self) -> Tuple[List[int], List[int], bool, bool]:
        restart = False
        if not self._started or self._pointer + self.seq_length + 1 > len(self.tokens):
            if self._started:
                self.passes += 1
                logging.debug(f"Reader finished pass {self.passes}")
            if self.max_passes is not None and self.passes >= self.max_passes:
                return [], [], False, True
            self._pointer = 0
            self._started = True
            restart = True

        p = self._pointer
        inputs = self.tokens[p:p + self.seq_length]
        targets = self.tokens[p + 1:p + self.seq_length + 1]
        self._pointer += self.seq_length
        return inputs, targets, restart, False
