import os
import pathlib
import shutil
from urllib.parse import urlparse
from typing import Optional, List
import httpx

from wccommon.errors import InvalidConfig
from wccommon.types import Partition

def ensure_dir(p: str):
    pathlib.Path(p).mkdir(parents=True, exist_ok=True)

def run_paths(shared_dir: str, run_id: str):
    base = os.path.join(shared_dir, "runs", run_id)
    return {
        "base": base,
        "input_dir": os.path.join(base, "input"),
        "input_file": os.path.join(base, "input", "corpus.txt"),
    }

def transfer_root(shared_dir: str) -> str:
    return os.path.join(shared_dir, "transfer")

async def fetch_corpus(url: str, dst_path: str, shared_dir: str,
                       transport: Optional[httpx.AsyncBaseTransport] = None) -> str:
    """
    Deja el corpus de una corrida en `dst_path`. Acepta http(s), que se descarga
    en streaming, o una ruta local (absoluta o file://) que debe estar dentro de `shared_dir`.
    """
    parsed = urlparse(url)
    ensure_dir(os.path.dirname(dst_path))
    if parsed.scheme in ("http", "https"):
        async with httpx.AsyncClient(timeout=120, transport=transport) as client:
            async with client.stream("GET", url) as r:
                r.raise_for_status()
                with open(dst_path, "wb") as f:
                    async for chunk in r.aiter_bytes():
                        f.write(chunk)
        return dst_path
    shutil.copyfile(_local_source(url, shared_dir), dst_path)
    return dst_path

def _local_source(url: str, shared_dir: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme == "file":
        src = parsed.path
    elif parsed.scheme == "" and os.path.isabs(url):
        src = url
    else:
        raise ValueError(f"unsupported corpus URL: {url}")
    src = os.path.realpath(src)
    root = os.path.realpath(shared_dir)
    if os.path.commonpath([src, root]) != root:
        raise PermissionError(f"path {src} must live under {root}")
    return src

def corpus_size(path: str) -> int:
    try:
        st = os.stat(path)
    except OSError as e:
        raise InvalidConfig(f"cannot stat corpus {path}: {e}") from e
    if not os.path.isfile(path):
        raise InvalidConfig(f"corpus is not a regular file: {path}")
    return st.st_size

def partition_input_by_bytes(size: Optional[int], workers: int, max_workers: int = 8) -> List[Partition]:
    """Partición por rangos de bytes contiguos; la última absorbe el resto."""
    if workers <= 0 or workers > max_workers:
        raise InvalidConfig(f"worker count must be in [1, {max_workers}], got {workers}")
    if size is None or size < 0:
        raise InvalidConfig(f"corpus size unknown: {size}")
    base = size // workers
    parts = [Partition(index=i, start=i * base, size=base) for i in range(workers - 1)]
    parts.append(Partition(index=workers - 1, start=base * (workers - 1), size=size - base * (workers - 1)))
    return parts
