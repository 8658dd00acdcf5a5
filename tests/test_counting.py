"""Tests for the per-partition counting loop."""

import pytest

from countworker.app import counting
from countworker.app.counting import count_partition
from wccommon.errors import OutOfMemory, WorkerFailure
from wccommon.types import BOUNDARY_STITCH, Partition, WorkerContext


def ctx_for(path, start, size, total, **kwargs):
    return WorkerContext(corpus_path=path, corpus_size=total, partition=Partition(0, start, size), **kwargs)


class RecordingProgress:
    def __init__(self):
        self.adds = []

    def add(self, n):
        self.adds.append(n)


def test_counts_single_partition(write_corpus):
    path = write_corpus("the cat the dog the")
    result = count_partition(ctx_for(path, 0, 19, 19))
    assert result.table == {"the": 3, "cat": 1, "dog": 1}
    assert result.total_words == 5
    assert result.unique_words == 3
    assert result.index == 0


def test_split_mode_counts_straddling_token_as_two_words(write_corpus):
    path = write_corpus("hello world")
    left = count_partition(ctx_for(path, 0, 3, 11))
    right = count_partition(ctx_for(path, 3, 8, 11))
    assert left.table == {"hel": 1}
    assert right.table == {"lo": 1, "world": 1}


def test_stitch_mode_keeps_straddling_token_whole(write_corpus):
    path = write_corpus("hello world")
    left = count_partition(ctx_for(path, 0, 3, 11, boundary_mode=BOUNDARY_STITCH))
    right = count_partition(ctx_for(path, 3, 8, 11, boundary_mode=BOUNDARY_STITCH))
    assert left.table == {"hello": 1}
    assert right.table == {"world": 1}


def test_progress_is_reported_in_batches(write_corpus):
    path = write_corpus("a b c d e f g")
    progress = RecordingProgress()
    result = count_partition(ctx_for(path, 0, 13, 13, progress_batch=3), progress)
    assert progress.adds == [3, 3, 1]
    assert sum(progress.adds) == result.total_words == 7


def test_memory_error_becomes_out_of_memory(write_corpus, monkeypatch):
    path = write_corpus("the cat")

    def exhausted(*args, **kwargs):
        yield "the"
        raise MemoryError

    monkeypatch.setattr(counting, "iter_tokens", exhausted)
    with pytest.raises(OutOfMemory):
        count_partition(ctx_for(path, 0, 7, 7))


def test_unreadable_corpus_is_worker_failure(tmp_path):
    with pytest.raises(WorkerFailure):
        count_partition(ctx_for(str(tmp_path / "gone.txt"), 0, 10, 10))
