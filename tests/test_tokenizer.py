"""Tests for the byte-range tokenizer and boundary alignment."""

import io

from countworker.app.tokenizer import aligned_range, iter_tokens


def tokens(data: bytes, budget=None, **kwargs):
    return list(iter_tokens(io.BytesIO(data), len(data) if budget is None else budget, **kwargs))


def test_splits_on_ascii_whitespace():
    assert tokens(b"a\tb\nc\r\nd\x0be\x0cf  g") == ["a", "b", "c", "d", "e", "f", "g"]


def test_tokens_spanning_read_blocks_are_carried():
    data = b"hello world foo barbaz"
    for block_size in (1, 2, 3, 5, 7, 64):
        assert tokens(data, block_size=block_size) == ["hello", "world", "foo", "barbaz"]


def test_long_tokens_are_truncated():
    data = b"x" * 150 + b" y"
    for block_size in (7, 1 << 20):
        assert tokens(data, max_len=99, block_size=block_size) == ["x" * 99, "y"]


def test_budget_stops_mid_token():
    """Reading stops at the byte budget, even inside a token."""
    assert tokens(b"abc def ghi", budget=5) == ["abc", "d"]


def test_empty_and_whitespace_only_input():
    assert tokens(b"") == []
    assert tokens(b"   \n\t ") == []


def test_utf8_words_decode():
    assert tokens("café naïve 東京".encode("utf-8")) == ["café", "naïve", "東京"]


def test_truncation_keeps_partial_multibyte_byte():
    """The cut byte of a split character survives as a surrogate, so nothing is lost."""
    data = ("é" * 60).encode("utf-8")  # 120 bytes
    assert tokens(data, max_len=99) == ["é" * 49 + "\udcc3"]


def test_invalid_utf8_bytes_are_preserved():
    assert tokens(b"caf\xe9 caf \xff\xfe") == ["caf\udce9", "caf", "\udcff\udcfe"]


def test_invalid_bytes_carried_across_blocks():
    for block_size in (1, 2, 3):
        assert tokens(b"\xff\xfe ok", block_size=block_size) == ["\udcff\udcfe", "ok"]


def test_reads_from_current_position():
    fh = io.BytesIO(b"skip these words")
    fh.seek(5)
    assert list(iter_tokens(fh, 5)) == ["these"]


def test_aligned_range_skips_leading_partial_token():
    fh = io.BytesIO(b"alpha beta gamma")
    # start=2 falls inside "alpha": the token belongs to the previous range
    assert aligned_range(fh, 2, 16, 16) == (5, 16)


def test_aligned_range_extends_end_to_finish_token():
    fh = io.BytesIO(b"alpha beta gamma")
    assert aligned_range(fh, 0, 8, 16) == (0, 10)


def test_aligned_range_keeps_ranges_on_whitespace():
    fh = io.BytesIO(b"alpha beta gamma")
    assert aligned_range(fh, 6, 11, 16) == (6, 11)


def test_aligned_range_token_covering_whole_range_is_empty():
    fh = io.BytesIO(b"aaaaaaaaaa b")
    start, end = aligned_range(fh, 3, 6, 12)
    assert start == end == 10


def test_aligned_ranges_tile_the_corpus():
    data = b"one two  three four five six seven eight nine ten eleven"
    size = len(data)
    for n in range(1, 9):
        base = size // n
        bounds = [(i * base, (i + 1) * base if i < n - 1 else size) for i in range(n)]
        aligned = [aligned_range(io.BytesIO(data), s, e, size) for s, e in bounds]
        assert aligned[0][0] == 0
        assert aligned[-1][1] == size
        for (_, prev_end), (next_start, _) in zip(aligned, aligned[1:]):
            assert prev_end == next_start
