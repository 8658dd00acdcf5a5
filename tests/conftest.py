"""Shared test fixtures for gridwc tests."""

import pytest

from coordinator.app.settings import Settings


@pytest.fixture
def write_corpus(tmp_path):
    """Return a helper that writes a corpus file (str or bytes) and returns its path."""
    def _write(content, name="corpus.txt"):
        path = tmp_path / name
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
        return str(path)
    return _write


@pytest.fixture
def test_settings(tmp_path):
    """Coordinator settings isolated to tmp_path, without the progress pulse thread."""
    return Settings(
        SHARED_DIR=str(tmp_path / "shared"),
        PROGRESS_INTERVAL_S=0,
        BACKEND="threads",
        BOUNDARY_MODE="split",
    )


SAMPLE_TEXT = (
    "the quick brown fox jumps over the lazy dog\n"
    "the dog barks and the fox runs away\n"
    "a quick brown dog is not a lazy fox\n"
) * 20
