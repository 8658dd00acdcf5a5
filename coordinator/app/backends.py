# coordinator/app/backends.py
#
# Backends de concurrencia: fan-out de un worker por partición y fan-in
# bloqueante. Ambos devuelven los WorkerResult en orden de partición.
import os
import time
import shutil
import logging
import tempfile
import multiprocessing
from concurrent.futures import ThreadPoolExecutor, wait
from typing import List, Optional

from countworker.app import counting
from wccommon.errors import EXIT_OUT_OF_MEMORY, InvalidConfig, OutOfMemory, WordCountError, WorkerFailure
from wccommon.progress import ProcessProgress, ProgressMonitor, ThreadProgress
from wccommon.transfer import read_table
from wccommon.types import WorkerContext, WorkerResult

from .storage import ensure_dir, transfer_root

log = logging.getLogger("gridwc-coordinator")


class ConcurrencyBackend:
    name = "base"

    def __init__(self, progress_interval: float = 2.0):
        self.progress_interval = progress_interval
        self.last_progress = 0

    def run(self, contexts: List[WorkerContext]) -> List[WorkerResult]:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Threads: un solo espacio de memoria, cada hilo es dueño de su tabla
# ---------------------------------------------------------------------------
class SharedMemoryBackend(ConcurrencyBackend):
    name = "threads"

    def __init__(self, progress_interval: float = 2.0, timeout: Optional[float] = None):
        super().__init__(progress_interval)
        if timeout:
            log.warning("WORKER_TIMEOUT_S=%s ignored: threads cannot be cancelled", timeout)

    def run(self, contexts: List[WorkerContext]) -> List[WorkerResult]:
        progress = ThreadProgress()
        log.info("spawning %d thread workers", len(contexts))
        with ProgressMonitor(progress, self.progress_interval, label="threads"):
            with ThreadPoolExecutor(max_workers=len(contexts), thread_name_prefix="wc-worker") as executor:
                futures = [executor.submit(counting.count_partition, ctx, progress) for ctx in contexts]
                wait(futures)
        self.last_progress = progress.value

        results = []
        for ctx, fut in zip(contexts, futures):
            idx = ctx.partition.index
            exc = fut.exception()
            if exc is None:
                results.append(fut.result())
                continue
            log.error("thread worker failed idx=%s err=%r", idx, exc)
            if isinstance(exc, WordCountError):
                raise exc
            raise WorkerFailure(f"worker {idx} failed: {exc!r}", worker=idx) from exc
        return results


# ---------------------------------------------------------------------------
# Procesos: sin memoria compartida salvo el contador; resultados vía archivo
# ---------------------------------------------------------------------------
class IsolatedProcessBackend(ConcurrencyBackend):
    name = "processes"

    def __init__(self, shared_dir: str, start_method: str = "fork",
                 timeout: Optional[float] = None, progress_interval: float = 2.0):
        super().__init__(progress_interval)
        self.shared_dir = shared_dir
        self.start_method = start_method
        self.timeout = timeout

    def _exit_error(self, idx: int, exitcode: Optional[int], timed_out: bool) -> Optional[WordCountError]:
        if timed_out:
            return WorkerFailure(f"worker {idx} timed out after {self.timeout}s", worker=idx, exitcode=exitcode)
        if exitcode == 0:
            return None
        if exitcode == EXIT_OUT_OF_MEMORY:
            return OutOfMemory(f"worker {idx} ran out of memory")
        if exitcode is not None and exitcode < 0:
            return WorkerFailure(f"worker {idx} killed by signal {-exitcode}", worker=idx, exitcode=exitcode)
        return WorkerFailure(f"worker {idx} exited with status {exitcode}", worker=idx, exitcode=exitcode)

    def run(self, contexts: List[WorkerContext]) -> List[WorkerResult]:
        try:
            mp = multiprocessing.get_context(self.start_method)
        except ValueError as e:
            raise InvalidConfig(f"unsupported start method {self.start_method!r}") from e
        progress = ProcessProgress(mp)
        ensure_dir(transfer_root(self.shared_dir))
        tmp_dir = tempfile.mkdtemp(prefix="run-", dir=transfer_root(self.shared_dir))
        procs = []
        try:
            for ctx in contexts:
                idx = ctx.partition.index
                path = os.path.join(tmp_dir, f"worker-{idx:04d}.bin")
                p = mp.Process(target=counting.run_isolated_worker, args=(ctx, progress, path),
                               name=f"wc-worker-{idx}")
                p.start()
                log.debug("worker process started idx=%s pid=%s", idx, p.pid)
                procs.append((idx, p, path))
            log.info("spawned %d process workers transfer_dir=%s", len(procs), tmp_dir)

            deadline = (time.monotonic() + self.timeout) if self.timeout else None
            results: List[WorkerResult] = []
            failure: Optional[WordCountError] = None
            with ProgressMonitor(progress, self.progress_interval, label="processes"):
                for idx, p, path in procs:
                    p.join(None if deadline is None else max(0.0, deadline - time.monotonic()))
                    timed_out = p.is_alive()
                    if timed_out:
                        p.terminate()
                        p.join()
                    err = self._exit_error(idx, p.exitcode, timed_out)
                    if err is not None:
                        log.error("process worker failed idx=%s exitcode=%s err=%s", idx, p.exitcode, err)
                        failure = failure or err
                        continue
                    if failure is not None:
                        continue
                    try:
                        table = read_table(path)
                    except WorkerFailure as e:
                        e.worker = idx
                        failure = e
                        continue
                    os.remove(path)
                    results.append(WorkerResult.from_table(idx, table))
            self.last_progress = progress.value
            if failure is not None:
                raise failure
            return results
        finally:
            for _, p, _ in procs:
                if p.is_alive():
                    p.terminate()
                    p.join()
            shutil.rmtree(tmp_dir, ignore_errors=True)


def get_backend(name: str, settings) -> ConcurrencyBackend:
    if name == SharedMemoryBackend.name:
        return SharedMemoryBackend(progress_interval=settings.PROGRESS_INTERVAL_S,
                                   timeout=settings.WORKER_TIMEOUT_S)
    if name == IsolatedProcessBackend.name:
        return IsolatedProcessBackend(settings.SHARED_DIR, start_method=settings.MP_START_METHOD,
                                      timeout=settings.WORKER_TIMEOUT_S,
                                      progress_interval=settings.PROGRESS_INTERVAL_S)
    raise InvalidConfig(f"unknown backend {name!r} (expected 'threads' or 'processes')")
