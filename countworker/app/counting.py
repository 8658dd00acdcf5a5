import logging
import sys
from typing import Dict

from countworker.app.tokenizer import aligned_range, iter_tokens
from wccommon.errors import EXIT_OUT_OF_MEMORY, OutOfMemory, WorkerFailure
from wccommon.transfer import write_table
from wccommon.types import BOUNDARY_STITCH, WorkerContext, WorkerResult

log = logging.getLogger("gridwc-worker")


def count_partition(ctx: WorkerContext, progress=None) -> WorkerResult:
    """
    Cuenta las palabras de una partición en una tabla propia del worker.
    `progress` (opcional) recibe el avance por lotes de `ctx.progress_batch` palabras.
    """
    part = ctx.partition
    log.debug("worker start idx=%s start=%s size=%s mode=%s", part.index, part.start, part.size, ctx.boundary_mode)
    table: Dict[str, int] = {}
    pending = 0
    try:
        with open(ctx.corpus_path, "rb") as fh:
            start, end = part.start, part.end
            if ctx.boundary_mode == BOUNDARY_STITCH:
                start, end = aligned_range(fh, start, end, ctx.corpus_size)
            else:
                fh.seek(start)
            for word in iter_tokens(fh, end - start, ctx.max_word_len, ctx.read_block_bytes, ctx.encoding):
                table[word] = table.get(word, 0) + 1
                pending += 1
                if progress is not None and pending >= ctx.progress_batch:
                    progress.add(pending)
                    pending = 0
    except MemoryError as e:
        log.error("worker out of memory idx=%s unique=%d", part.index, len(table))
        raise OutOfMemory(f"worker {part.index}: out of memory after {len(table)} unique words") from e
    except OSError as e:
        raise WorkerFailure(f"worker {part.index}: cannot read corpus: {e}", worker=part.index) from e

    if progress is not None and pending:
        progress.add(pending)
    result = WorkerResult.from_table(part.index, table)
    log.debug("worker end idx=%s words=%d unique=%d", part.index, result.total_words, result.unique_words)
    return result


def run_isolated_worker(ctx: WorkerContext, progress, transfer_path: str):
    """Punto de entrada en un proceso aislado: cuenta y deja la tabla en `transfer_path`."""
    try:
        result = count_partition(ctx, progress)
        write_table(transfer_path, result.table)
    except OutOfMemory as e:
        log.error("isolated worker fatal idx=%s err=%s", ctx.partition.index, e)
        sys.exit(EXIT_OUT_OF_MEMORY)
    except MemoryError:
        log.error("isolated worker out of memory writing transfer idx=%s", ctx.partition.index)
        sys.exit(EXIT_OUT_OF_MEMORY)
