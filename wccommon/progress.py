# wccommon/progress.py
#
# Contador agregado de palabras procesadas. Es el único estado mutado en
# concurrencia; los workers lo actualizan por lotes, no por palabra.
import logging
import threading
import time
from typing import Optional

log = logging.getLogger("gridwc-coordinator")


class ThreadProgress:
    """Contador protegido por mutex, para workers que comparten espacio de memoria."""

    def __init__(self):
        self._lock = threading.Lock()
        self._value = 0

    def add(self, n: int):
        with self._lock:
            self._value += n

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class ProcessProgress:
    """Contador en un segmento de memoria compartida entre procesos."""

    def __init__(self, ctx):
        self._shared = ctx.Value("q", 0)

    def add(self, n: int):
        with self._shared.get_lock():
            self._shared.value += n

    @property
    def value(self) -> int:
        return self._shared.value


class ProgressMonitor:
    """Pulso de estado: loguea el contador cada `interval` segundos mientras corren los workers."""

    def __init__(self, progress, interval: float, label: str = ""):
        self.progress = progress
        self.interval = interval
        self.label = label
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._t0 = 0.0

    def _loop(self):
        while not self._stop.wait(self.interval):
            elapsed = time.monotonic() - self._t0
            log.info("progress %s words=%d elapsed=%.1fs", self.label, self.progress.value, elapsed)

    def __enter__(self):
        self._t0 = time.monotonic()
        if self.interval and self.interval > 0:
            self._thread = threading.Thread(target=self._loop, name="wc-progress", daemon=True)
            self._thread.start()
        return self

    def __exit__(self, *exc):
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
        return False
