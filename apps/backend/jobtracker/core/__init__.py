from .config import settings, Settings, setup_logging
from .database import (
    build_async_engine,
    build_session_factory,
    get_db_session,
    init_models,
)

__all__ = [
    "settings",
    "Settings",
    "setup_logging",
    "build_async_engine",
    "build_session_factory",
    "get_db_session",
    "init_models",
]
