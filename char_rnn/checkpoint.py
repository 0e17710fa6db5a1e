import logging
from typing import NamedTuple, Optional

import numpy as np

from .data import Vocabulary
from .errors import CheckpointError
from .model import RNN, PARAMETER_NAMES
from .trainer import TrainingSession, TrainingState


class Checkpoint(NamedTuple):
    model: RNN
    session: Optional[TrainingSession]
    vocabulary: Optional[Vocabulary]


def save_checkpoint(
    filename: str,
    model: RNN,
    session: Optional[TrainingSession] = None,
    vocabulary: Optional[Vocabulary] = None,
) -> str:
    """
    Saves the model parameters (and optionally the session and vocabulary) to a .npz file.

    Args:
        filename: Target path. '.npz' is appended when missing.
        model: The model whose parameters are saved.
        session: Training session to resume from (hidden state, smoothed loss, iteration, loss history).
        vocabulary: Vocabulary used to encode the corpus.

    Returns:
        The path actually written.
    """
    save_dict = {name: param for name, param in model.parameters().items()}
    save_dict.update(
        hidden_size=np.array(model.hidden_size),
        input_size=np.array(model.input_size),
        seq_length=np.array(model.seq_length),
        learning_rate=np.array(model.learning_rate),
        # NaN stands for "clipping disabled"
        clip_value=np.array(np.nan if model.clip_value is None else model.clip_value),
    )
    if session is not None:
        save_dict.update(
            h_prev=session.h_prev,
            smooth_loss=np.array(session.smooth_loss),
            iteration=np.array(session.iteration),
            state=np.array(session.state.value),
            loss_history=np.array(session.loss_history, dtype=np.float64),
        )
    if vocabulary is not None:
        # Code points, since numpy unicode arrays drop trailing NUL characters
        save_dict["chars"] = np.array([ord(ch) for ch in vocabulary.chars], dtype=np.int64)

    if not filename.endswith(".npz"):
        filename += ".npz"
    np.savez_compressed(filename, **save_dict)
    logging.info(f"Model parameters saved to {filename}")
    return filename


def load_checkpoint(filename: str) -> Checkpoint:
    """
    Loads a checkpoint written by `save_checkpoint`.

    Raises:
        FileNotFoundError: If the file does not exist.
        CheckpointError: If required entries are missing, shapes do not match or the
            saved training state is unknown.
    """
    with np.load(filename, allow_pickle=False) as data:
        try:
            clip_value = float(data["clip_value"])
            model = RNN(
                hidden_size=int(data["hidden_size"]),
                input_size=int(data["input_size"]),
                seq_length=int(data["seq_length"]),
                learning_rate=float(data["learning_rate"]),
                clip_value=None if np.isnan(clip_value) else clip_value,
            )
            params = model.parameters()
            for name in PARAMETER_NAMES:
                loaded = data[name]
                if loaded.shape != params[name].shape:
                    raise CheckpointError(f"Parameter '{name}' has shape {loaded.shape}, "
                                          f"expected {params[name].shape}")
                params[name][...] = loaded

            session = None
            if "h_prev" in data:
                h_prev = np.array(data["h_prev"], dtype=np.float64)
                if h_prev.shape != (model.hidden_size, 1):
                    raise CheckpointError(f"Hidden state has shape {h_prev.shape}, "
                                          f"expected ({model.hidden_size}, 1)")
                try:
                    state = TrainingState(str(data["state"]))
                except ValueError as e:
                    raise CheckpointError(f"Unknown training state in {filename}: {e}") from e
                loss_history = data["loss_history"].tolist() if "loss_history" in data else []
                session = TrainingSession(
                    h_prev=h_prev,
                    smooth_loss=float(data["smooth_loss"]),
                    iteration=int(data["iteration"]),
                    state=state,
                    loss_history=loss_history,
                )

            vocabulary = Vocabulary([chr(int(code)) for code in data["chars"]]) if "chars" in data else None
        except KeyError as e:
            raise CheckpointError(f"Incompatible or incomplete checkpoint {filename}: {e}") from e

    if vocabulary is not None and vocabulary.size != model.input_size:
        raise CheckpointError(f"Vocabulary of {vocabulary.size} characters does not match "
                              f"input_size={model.input_size}")

    logging.info(f"Model loaded successfully from {filename}")
    return Checkpoint(model=model, session=session, vocabulary=vocabulary)
