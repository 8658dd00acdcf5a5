# Taxonomía de errores del pipeline. Todos son fatales para la corrida: no hay reintentos.

# Código de salida de un proceso worker que se quedó sin memoria
EXIT_OUT_OF_MEMORY = 3


class WordCountError(Exception):
    """Base de todos los errores de una corrida."""


class InvalidConfig(WordCountError):
    """Configuración inválida (workers, backend, corpus). Se detecta antes de lanzar workers."""


class OutOfMemory(WordCountError):
    pass


class WorkerFailure(WordCountError):
    def __init__(self, message: str, worker: int | None = None, exitcode: int | None = None):
        super().__init__(message)
        self.worker = worker
        self.exitcode = exitcode


class TransferError(WorkerFailure):
    """Stream de transferencia mal formado."""
