import logging

from saini_connect.config import Settings
from saini_connect.storage.base import Storage
from saini_connect.storage.database import DatabaseStorage
from saini_connect.storage.memory import MemStorage

logger = logging.getLogger(__name__)

__all__ = ["Storage", "MemStorage", "DatabaseStorage", "create_storage"]


def create_storage(settings: Settings) -> Storage:
    """Build the backing store selected by ``STORAGE_BACKEND``."""
    backend = settings.STORAGE_BACKEND
    if backend == "memory":
        logger.info("Using in-memory storage")
        return MemStorage()
    if backend == "database":
        from saini_connect.database import create_db_engine

        logger.info("Using database storage")
        return DatabaseStorage(create_db_engine(settings.DATABASE_URL))
    raise ValueError(f"Unknown STORAGE_BACKEND {backend!r}; expected 'memory' or 'database'")
