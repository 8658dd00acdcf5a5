# coordinator/app/pipeline.py

import uuid
import logging
from enum import Enum
from dataclasses import dataclass, field
from time import time as now
from typing import Dict, List, Optional

from countworker.app.settings import settings as worker_settings
from wccommon.errors import InvalidConfig, WordCountError
from wccommon.types import (
    BOUNDARY_MODES, FrequencyTable, Partition, RankedEntry, WorkerContext, WorkerResult, display_word,
)

from .backends import ConcurrencyBackend, get_backend
from .reduce import merge_tables, top_k
from .settings import Settings, settings as default_settings
from .storage import corpus_size, partition_input_by_bytes

log = logging.getLogger("gridwc-coordinator")

# ---------------------------------------------------------------------------
# Estados de una corrida
# ---------------------------------------------------------------------------
class RunState(str, Enum):
    CONFIGURED      = "CONFIGURED"
    PARTITIONED     = "PARTITIONED"
    WORKERS_RUNNING = "WORKERS_RUNNING"
    JOINED          = "JOINED"
    MERGED          = "MERGED"
    RANKED          = "RANKED"
    DONE            = "DONE"
    FAILED          = "FAILED"

_ORDER = [
    RunState.CONFIGURED, RunState.PARTITIONED, RunState.WORKERS_RUNNING,
    RunState.JOINED, RunState.MERGED, RunState.RANKED, RunState.DONE,
]

@dataclass
class RunTimeline:
    run_id: str
    t_configured: float
    t_partitioned: float | None = None
    t_workers_running: float | None = None
    t_joined: float | None = None
    t_merged: float | None = None
    t_ranked: float | None = None
    t_done: float | None = None
    t_failed: float | None = None
    status: str = "CONFIGURED"
    message: str | None = None

@dataclass
class RunResult:
    run_id: str
    global_table: FrequencyTable = field(repr=False)
    top: List[RankedEntry]
    total_words: int
    unique_words: int
    workers: int
    backend: str
    boundary_mode: str
    elapsed_s: float
    worker_results: List[WorkerResult] = field(default_factory=list, repr=False)


class WordCountRun:
    """
    Una corrida: CONFIGURED -> PARTITIONED -> WORKERS_RUNNING -> JOINED
    -> MERGED -> RANKED -> DONE. Cualquier error fatal la deja en FAILED.
    """

    def __init__(self, corpus_path: str, workers: int, settings: Optional[Settings] = None,
                 backend: Optional[str] = None, boundary_mode: Optional[str] = None,
                 run_id: Optional[str] = None):
        self.settings = settings or default_settings
        self.run_id = run_id or uuid.uuid4().hex[:8]
        self.corpus_path = corpus_path
        self.workers = workers
        self.backend_name = backend or self.settings.BACKEND
        self.boundary_mode = boundary_mode or self.settings.BOUNDARY_MODE
        self.state = RunState.CONFIGURED
        self.timeline = RunTimeline(run_id=self.run_id, t_configured=now())
        self.partitions: List[Partition] = []

    def _advance(self, new_state: RunState):
        if self.state == RunState.FAILED:
            raise RuntimeError(f"run {self.run_id} already failed")
        pos = _ORDER.index(self.state)
        if pos + 1 >= len(_ORDER) or _ORDER[pos + 1] != new_state:
            raise RuntimeError(f"invalid transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        setattr(self.timeline, f"t_{new_state.value.lower()}", now())
        self.timeline.status = new_state.value
        log.debug("run %s -> %s", self.run_id, new_state.value)

    def fail(self, err: Exception):
        self.state = RunState.FAILED
        self.timeline.t_failed = now()
        self.timeline.status = "FAILED"
        self.timeline.message = str(err)

    def _contexts(self, size: int) -> List[WorkerContext]:
        return [
            WorkerContext(
                corpus_path=self.corpus_path,
                corpus_size=size,
                partition=p,
                max_word_len=worker_settings.MAX_WORD_LEN,
                progress_batch=worker_settings.PROGRESS_BATCH,
                read_block_bytes=worker_settings.READ_BLOCK_BYTES,
                encoding=worker_settings.ENCODING,
                boundary_mode=self.boundary_mode,
            )
            for p in self.partitions
        ]

    def run(self, backend: Optional[ConcurrencyBackend] = None) -> RunResult:
        t0 = now()
        log.info("run %s start corpus=%s workers=%s backend=%s boundary=%s",
                 self.run_id, self.corpus_path, self.workers, self.backend_name, self.boundary_mode)
        try:
            if self.boundary_mode not in BOUNDARY_MODES:
                raise InvalidConfig(f"unknown boundary mode {self.boundary_mode!r}")
            backend = backend or get_backend(self.backend_name, self.settings)
            size = corpus_size(self.corpus_path)
            self.partitions = partition_input_by_bytes(size, self.workers, self.settings.MAX_WORKERS)
            self._advance(RunState.PARTITIONED)
            log.info("run %s partitioned size=%d parts=%s", self.run_id, size,
                     [(p.start, p.size) for p in self.partitions])

            self._advance(RunState.WORKERS_RUNNING)
            worker_results = backend.run(self._contexts(size))
            self._advance(RunState.JOINED)
            for r in worker_results:
                log.info("run %s worker idx=%s words=%d unique=%d", self.run_id, r.index, r.total_words, r.unique_words)

            global_table = merge_tables(r.table for r in worker_results)
            self._advance(RunState.MERGED)

            top = top_k(global_table, self.settings.TOP_K)
            self._advance(RunState.RANKED)

            result = RunResult(
                run_id=self.run_id,
                global_table=global_table,
                top=top,
                total_words=sum(r.total_words for r in worker_results),
                unique_words=len(global_table),
                workers=self.workers,
                backend=backend.name,
                boundary_mode=self.boundary_mode,
                elapsed_s=now() - t0,
                worker_results=worker_results,
            )
            self._advance(RunState.DONE)
        except WordCountError as e:
            failed_in = self.state.value
            self.fail(e)
            log.error("run %s failed in %s: %s", self.run_id, failed_in, e)
            raise
        except Exception as e:
            self.fail(e)
            log.exception("run %s failed unexpectedly: %s", self.run_id, e)
            raise
        log.info("run %s done words=%d unique=%d elapsed=%.3fs",
                 self.run_id, result.total_words, result.unique_words, result.elapsed_s)
        return result


def run_wordcount(corpus_path: str, workers: int, settings: Optional[Settings] = None,
                  backend: Optional[str] = None, boundary_mode: Optional[str] = None) -> RunResult:
    return WordCountRun(corpus_path, workers, settings=settings, backend=backend,
                        boundary_mode=boundary_mode).run()


def format_report(result: RunResult) -> str:
    lines = [f"Top {len(result.top)} words:"]
    words = [display_word(e.word) for e in result.top]
    width = max((len(w) for w in words), default=0)
    for rank, (word, entry) in enumerate(zip(words, result.top), start=1):
        lines.append(f"{rank:>3}. {word:<{width}}  {entry.count}")
    lines.append("")
    lines.append(f"Total words:  {result.total_words}")
    lines.append(f"Unique words: {result.unique_words}")
    lines.append(f"Workers:      {result.workers} ({result.backend}, {result.boundary_mode})")
    lines.append(f"Elapsed:      {result.elapsed_s:.3f}s")
    return "\n".join(lines)


def timeline_durations(tl: RunTimeline) -> Dict[str, Optional[float]]:
    def d(a, b): return (a - b) if (a is not None and b is not None) else None
    end = tl.t_done if tl.t_done is not None else tl.t_failed
    return {
        "t_total_s": d(end, tl.t_configured),
        "t_prepare_s": d(tl.t_partitioned, tl.t_configured),
        "t_count_s": d(tl.t_joined, tl.t_workers_running),
        "t_merge_s": d(tl.t_merged, tl.t_joined),
        "t_rank_s": d(tl.t_ranked, tl.t_merged),
    }
