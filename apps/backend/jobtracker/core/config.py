import os
import sys
import logging
from logging.handlers import RotatingFileHandler

import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional, Literal


class Settings(BaseSettings):
    PROJECT_NAME: str = "Job Tracker"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    SYNC_DATABASE_URL: Optional[str] = "sqlite:///./jobtracker.db"
    ASYNC_DATABASE_URL: Optional[str] = "sqlite+aiosqlite:///./jobtracker.db"
    SESSION_SECRET_KEY: Optional[str] = None
    DB_ECHO: bool = False
    OBJECT_STORE_BUCKET: Optional[str] = None
    OBJECT_STORE_REGION: str = "us-east-1"
    OBJECT_STORE_ENDPOINT_URL: Optional[str] = None
    OBJECT_STORE_ACCESS_KEY_ID: Optional[str] = None
    OBJECT_STORE_SECRET_ACCESS_KEY: Optional[str] = None
    OBJECT_STORE_PUBLIC_BASE_URL: Optional[str] = None
    OBJECT_STORE_TIMEOUT_SECONDS: float = 10.0
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    LEGACY_UPLOAD_DIR: str = "uploads"
    PREVIEW_CACHE_MAX_AGE: int = 3600

    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(__file__), os.pardir, os.pardir, ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENV = os.getenv("ENV", "dev").lower()


_LEVEL_BY_ENV: dict[Literal["production", "staging", "local"], int] = {
    "production": logging.INFO,
    "staging": logging.DEBUG,
    "local": logging.DEBUG,
}


def setup_logging() -> None:
    """
    Configure the root logger exactly once,

    * Rotating file (logs/backend.log) and console (stderr)
    * ISO - 8601 timestamps
    * JSON lines in production, coloured console output elsewhere
    * Prevents duplicate handler creation if called twice
    """
    level = getattr(logging, LOG_LEVEL, _LEVEL_BY_ENV.get(ENV, logging.INFO))

    root = logging.getLogger()
    if not root.handlers:
        os.makedirs("logs", exist_ok=True)
        log_file = os.path.join("logs", "backend.log")

        file_handler = RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=3
        )
        console_handler = logging.StreamHandler(sys.stderr)

        logging.basicConfig(
            level=level,
            format="%(message)s",
            handlers=[file_handler, console_handler],
        )

    renderer = (
        structlog.processors.JSONRenderer()
        if ENV in ("prod", "production")
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for noisy in ("sqlalchemy.engine", "uvicorn.access", "botocore", "boto3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
