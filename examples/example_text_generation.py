# example_text_generation.py
import argparse
import logging
import os
import sys
import time

import matplotlib.pyplot as plt

from char_rnn import (
    RNN,
    CharReader,
    ConfigurationError,
    Trainer,
    TrainingConfig,
    TrainingSession,
    Vocabulary,
    load_checkpoint,
    load_text,
    save_checkpoint,
)


def plot_loss_history(losses, output_path=None):
    """Plots the smoothed loss after every iteration."""
    plt.figure(figsize=(8, 4))
    plt.plot(losses, label="Smoothed loss")
    plt.xlabel("Iteration")
    plt.ylabel("Per-step cross-entropy")
    plt.title("Character RNN Training Loss")
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    if output_path:
        plt.savefig(output_path, dpi=150)
        plt.close()
        print(f"Loss curve written to {output_path}")
    else:
        plt.show()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Train a character-level RNN and sample text from it.")
    parser.add_argument("--data", default="data/linux_man.txt", help="Path to the training text file")
    parser.add_argument("--hidden-size", type=int, default=100, help="Size of the hidden state vector")
    parser.add_argument("--seq-length", type=int, default=25, help="Length of sequence chunks for BPTT")
    parser.add_argument("--learning-rate", type=float, default=1e-1, help="Gradient descent step size")
    parser.add_argument("--threshold", type=float, default=0.01, help="Stop once the smoothed loss reaches this")
    parser.add_argument("--max-iterations", type=int, default=10000, help="Iteration cap (0 for none)")
    parser.add_argument("--max-passes", type=int, default=None, help="Stop after this many passes over the data")
    parser.add_argument("--sample-every", type=int, default=1000, help="How often to sample text and print loss")
    parser.add_argument("--sample-length", type=int, default=200, help="Length of the generated sample text")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--checkpoint", default="rnn_model.npz", help="Where to save the trained model")
    parser.add_argument("--resume", action="store_true", help="Continue from --checkpoint if it exists")
    parser.add_argument("--plot", nargs="?", const="", default=None,
                        help="Plot the loss curve (optionally to the given image file)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(message)s")

    config = TrainingConfig(
        hidden_size=args.hidden_size,
        seq_length=args.seq_length,
        learning_rate=args.learning_rate,
        threshold=args.threshold,
        max_iterations=args.max_iterations or None,
        sample_every=args.sample_every,
        sample_length=args.sample_length,
        seed=args.seed,
    )
    try:
        config.validate()
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 2

    # --- Data Loading and Preprocessing ---
    try:
        data = load_text(args.data)
    except FileNotFoundError:
        print(f"Error: Data file not found at '{args.data}'")
        print("Place a text corpus there or pass --data.")
        return 1

    session = None
    if args.resume and os.path.exists(args.checkpoint):
        checkpoint = load_checkpoint(args.checkpoint)
        model, session, vocab = checkpoint.model, checkpoint.session, checkpoint.vocabulary
        if vocab is None:
            print(f"Error: {args.checkpoint} has no vocabulary, cannot resume")
            return 1
        if session is not None:
            # The data pointer is not saved, so the reader starts a fresh pass
            session = TrainingSession(h_prev=session.h_prev, smooth_loss=session.smooth_loss,
                                      iteration=session.iteration, loss_history=session.loss_history)
        # --learning-rate applies to the resumed run, the clipping bound stays the saved one
        model.learning_rate = config.learning_rate
        config.clip_value = model.clip_value
        print(f"Resumed from {args.checkpoint} with learning rate {config.learning_rate}")
    else:
        vocab = Vocabulary.from_text(data)
        model = RNN(hidden_size=config.hidden_size, input_size=vocab.size, seq_length=config.seq_length,
                    learning_rate=config.learning_rate, clip_value=config.clip_value, seed=config.seed)

    print(f"Dataset has {len(data)} characters, {vocab.size} unique.")
    print(model.summary())

    reader = CharReader(vocab.encode(data), config.seq_length, max_passes=args.max_passes)
    if session is not None and config.max_iterations is not None:
        config.max_iterations += session.iteration
    trainer = Trainer(model, reader, config, session=session)

    def report(session):
        if session.iteration % config.sample_every == 0:
            print(f"\n---- Iteration {session.iteration}, Smoothed Loss: {session.smooth_loss:.4f} ----")
            seed_ix = int(model.rng.integers(vocab.size))
            sample_indices = model.sample(h=session.h_prev, seed_ix=seed_ix, n=config.sample_length)
            print(f"Sample:\n```\n{vocab.decode(sample_indices)}\n```")
            print("-----------------------------------------")

    # --- Training Loop ---
    start_time = time.time()
    try:
        result = trainer.train(on_step=report)
    except KeyboardInterrupt:
        print("\nTraining interrupted by user. Saving final model...")
        save_checkpoint(args.checkpoint, model, trainer.session, vocab)
        return 130

    print("\n=========================================")
    print(f"Training finished: {result.outcome.value}")
    print(f"Total training time: {time.time() - start_time:.2f} seconds")
    print(f"Iterations: {result.iterations}, final smoothed loss: {result.smooth_loss:.4f}")
    print("=========================================")

    save_checkpoint(args.checkpoint, model, trainer.session, vocab)

    if args.plot is not None:
        plot_loss_history(trainer.session.loss_history, args.plot or None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
