# Tipos compartidos entre coordinator y workers.
#
# FrequencyTable: dict palabra -> conteo, con un único dueño a la vez
# (el worker mientras cuenta, luego el coordinator).
from dataclasses import dataclass, field
from typing import Dict, NamedTuple

FrequencyTable = Dict[str, int]

BOUNDARY_SPLIT = "split"
BOUNDARY_STITCH = "stitch"
BOUNDARY_MODES = (BOUNDARY_SPLIT, BOUNDARY_STITCH)


@dataclass(frozen=True)
class Partition:
    """Rango de bytes semiabierto [start, start+size) del corpus."""
    index: int
    start: int
    size: int

    @property
    def end(self) -> int:
        return self.start + self.size


class RankedEntry(NamedTuple):
    word: str
    count: int


@dataclass(frozen=True)
class WorkerContext:
    corpus_path: str
    corpus_size: int
    partition: Partition
    max_word_len: int = 99
    progress_batch: int = 10_000
    read_block_bytes: int = 1 << 20
    encoding: str = "utf-8"
    boundary_mode: str = BOUNDARY_SPLIT


@dataclass
class WorkerResult:
    index: int
    table: FrequencyTable = field(repr=False)
    total_words: int
    unique_words: int

    @classmethod
    def from_table(cls, index: int, table: FrequencyTable) -> "WorkerResult":
        return cls(index=index, table=table, total_words=sum(table.values()), unique_words=len(table))


def display_word(word: str) -> str:
    """Forma imprimible de una palabra: los bytes no utf-8 se muestran como \\xNN."""
    return word.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")
