import pytest

from char_rnn import CharReader, ConfigurationError, Vocabulary, load_text


def test_vocabulary_is_sorted_and_round_trips():
    vocab = Vocabulary.from_text("hello world")
    assert vocab.chars == [" ", "d", "e", "h", "l", "o", "r", "w"]
    assert vocab.size == len(vocab) == 8
    assert vocab.decode(vocab.encode("low")) == "low"
    assert vocab.char_to_ix["h"] == 3 and vocab.ix_to_char[3] == "h"


def test_vocabulary_rejects_unknown_characters():
    vocab = Vocabulary.from_text("abc")
    with pytest.raises(ValueError, match="'z'"):
        vocab.encode("az")


def test_vocabulary_rejects_bad_input():
    with pytest.raises(ConfigurationError):
        Vocabulary.from_text("")
    with pytest.raises(ConfigurationError):
        Vocabulary(["a", "a"])


def test_reader_windows_are_shifted_by_one():
    reader = CharReader(list(range(10)), seq_length=3)
    inputs, targets, restart, exhausted = reader()
    assert inputs == [0, 1, 2]
    assert targets == [1, 2, 3]
    assert restart and not exhausted

    inputs, targets, restart, exhausted = reader()
    assert inputs == [3, 4, 5]
    assert targets == [4, 5, 6]
    assert not restart and not exhausted


def test_reader_wraps_and_signals_restart():
    reader = CharReader(list(range(10)), seq_length=3)
    windows = [reader() for _ in range(4)]
    # Windows at 0, 3 and 6 fit; the pointer then wraps back to 0
    assert [w[0] for w in windows] == [[0, 1, 2], [3, 4, 5], [6, 7, 8], [0, 1, 2]]
    assert [w[2] for w in windows] == [True, False, False, True]
    assert reader.passes == 1


def test_reader_reports_exhaustion_after_max_passes():
    reader = CharReader(list(range(7)), seq_length=3, max_passes=2)
    results = [reader() for _ in range(5)]
    assert [r[3] for r in results] == [False, False, False, False, True]
    assert results[-1][:2] == ([], [])
    # Stays exhausted
    assert reader()[3]


def test_reader_uses_the_last_window_that_fits():
    reader = CharReader([0, 1, 2, 3, 4], seq_length=2)
    assert reader()[0] == [0, 1]
    assert reader()[:2] == ([2, 3], [3, 4])
    assert reader()[2] is True


@pytest.mark.parametrize("tokens, seq_length, max_passes", [
    ([0, 1, 2], 3, None),
    ([0, 1, 2, 3], 0, None),
    ([0, 1, 2, 3], 2, 0),
])
def test_reader_rejects_bad_configuration(tokens, seq_length, max_passes):
    with pytest.raises(ConfigurationError):
        CharReader(tokens, seq_length, max_passes=max_passes)


def test_load_text_reads_utf8(tmp_path):
    path = tmp_path / "corpus.txt"
    path.write_text("héllo\n", encoding="utf-8")
    assert load_text(str(path)) == "héllo\n"
