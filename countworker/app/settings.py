from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    MAX_WORD_LEN: int = 99            # bytes; tokens más largos se truncan
    PROGRESS_BATCH: int = 10_000      # palabras entre actualizaciones del contador compartido
    READ_BLOCK_BYTES: int = 1 << 20
    ENCODING: str = "utf-8"

settings = Settings()
