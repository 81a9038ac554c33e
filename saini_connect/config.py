import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_SECRET_KEY = "saini-community-secret-key"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self):
        self.STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory").strip().lower()
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./saini_connect.db")
        # SQLAlchemy only understands the postgresql:// scheme
        if self.DATABASE_URL.startswith("postgres://"):
            self.DATABASE_URL = self.DATABASE_URL.replace("postgres://", "postgresql://", 1)

        self.SECRET_KEY: str = os.getenv("SECRET_KEY") or DEFAULT_SECRET_KEY
        self.ALGORITHM: str = "HS256"
        self.ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
        self.SEED_DEMO_DATA: bool = _env_bool("SEED_DEMO_DATA", True)
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    def warn_if_insecure(self):
        if self.SECRET_KEY == DEFAULT_SECRET_KEY:
            logger.warning(
                "SECRET_KEY environment variable is not set. "
                "Using the development key; set SECRET_KEY in production."
            )


settings = Settings()
