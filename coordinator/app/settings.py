from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    REST_HOST: str = "0.0.0.0"
    REST_PORT: int = 8080
    SHARED_DIR: str = "/tmp/gridwc"            # corpus descargados + archivos de transferencia
    CORPUS_PATH: str = "corpus.txt"
    MAX_WORKERS: int = Field(8, ge=1, le=8)
    TOP_K: int = 10
    BACKEND: Literal["threads", "processes"] = "threads"
    BOUNDARY_MODE: Literal["split", "stitch"] = "split"
    MP_START_METHOD: str = "fork"
    API_MP_START_METHOD: str = "forkserver"     # corridas lanzadas desde el servidor HTTP
    WORKER_TIMEOUT_S: Optional[float] = None   # solo backend de procesos
    PROGRESS_INTERVAL_S: float = 2.0

settings = Settings()
