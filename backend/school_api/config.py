"""Application settings and validation."""

import os
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent.parent
STORAGE_BACKENDS = ("sql", "json")


class Settings:
    ENV: str
    STORAGE_BACKEND: str
    DATABASE_URL: str
    DATA_DIR: Path
    LOG_LEVEL: str
    ALLOW_DEV_CORS: bool

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sql").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BACKEND_DIR / 'school.db'}")
        self.DATA_DIR = Path(os.getenv("DATA_DIR", str(BACKEND_DIR / "data")))
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self._validate()

    def _validate(self):
        if self.STORAGE_BACKEND not in STORAGE_BACKENDS:
            raise RuntimeError(
                f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, got {self.STORAGE_BACKEND!r}"
            )


settings = Settings()
