# coordinator/app/reduce.py
#
# Fase de reducción: merge de las tablas parciales y selección del top-K.
import heapq
from typing import Dict, Iterable, List

from wccommon.errors import OutOfMemory
from wccommon.types import FrequencyTable, RankedEntry


def merge_tables(tables: Iterable[FrequencyTable]) -> FrequencyTable:
    """Suma los conteos por palabra. No modifica las tablas de entrada."""
    merged: Dict[str, int] = {}
    try:
        for table in tables:
            for word, count in table.items():
                merged[word] = merged.get(word, 0) + count
    except MemoryError as e:
        raise OutOfMemory(f"out of memory merging after {len(merged)} unique words") from e
    return merged


def _rank_key(item):
    # conteo descendente, empates por palabra ascendente
    word, count = item
    return (-count, word)


def top_k(table: FrequencyTable, k: int = 10) -> List[RankedEntry]:
    if k <= 0:
        return []
    return [RankedEntry(w, c) for w, c in heapq.nsmallest(k, table.items(), key=_rank_key)]


def rank_all(table: FrequencyTable) -> List[RankedEntry]:
    return [RankedEntry(w, c) for w, c in sorted(table.items(), key=_rank_key)]
