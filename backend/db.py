import logging
import os
from contextlib import contextmanager

from sqlmodel import Session, SQLModel, create_engine

from repository import JsonFileRepository, SqlRepository

logger = logging.getLogger(__name__)

# Get database URL from environment, default to SQLite for local dev
# Use persistent storage path if running in container with volume mount
db_path = os.getenv("DATABASE_PATH", "./timesheet.db")
env = os.getenv("ENV", os.getenv("RENDER", "").lower() or "dev")

if os.getenv("DATABASE_URL"):
    DATABASE_URL = os.getenv("DATABASE_URL")
else:
    # Guard against SQLite fallback in production
    if env in ("prod", "production") or os.getenv("RENDER"):
        raise RuntimeError(
            "DATABASE_URL missing in production; refusing to start with SQLite. "
            "Please configure DATABASE_URL environment variable."
        )
    DATABASE_URL = f"sqlite:///{db_path}"

# SQLAlchemy needs postgresql:// but some hosts hand out postgres://
if DATABASE_URL and DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# "sql" (default) or "json" for the single-file document store
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sql").lower()
JSON_STORE_PATH = os.getenv("JSON_STORE_PATH", "./timesheet.json")

db_driver = DATABASE_URL.split(":", 1)[0] if ":" in DATABASE_URL else "unknown"
logger.info(f"DB_URL_DRIVER={db_driver} STORAGE_BACKEND={STORAGE_BACKEND}")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def create_db_and_tables():
    """Create database and tables if they don't exist.
    This is safe to call multiple times - it won't wipe existing data.
    """
    SQLModel.metadata.create_all(engine)


@contextmanager
def open_repository():
    """Open the configured repository; SQL sessions are closed on exit."""
    if STORAGE_BACKEND == "json":
        yield JsonFileRepository(JSON_STORE_PATH)
        return
    with Session(engine, expire_on_commit=False) as session:
        yield SqlRepository(session)


def get_repository():
    """Get the configured repository for one request."""
    with open_repository() as repo:
        yield repo
