"""Database and runtime configuration for the collaborative board backend."""
from sqlmodel import create_engine
import os
from dotenv import load_dotenv
from sqlalchemy import event
import logging

# Load environment variables but prioritize local development
load_dotenv()

logger = logging.getLogger(__name__)

# Use the DATABASE_URL from environment variable, with fallback to SQLite for local dev
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./collabboard.db")

# "sql" persists documents through SQLModel, "memory" keeps them in-process
STORE_BACKEND = os.environ.get("STORE_BACKEND", "sql")

# Shared secret of the external identity provider (HS256 bearer tokens)
AUTH_SECRET = os.environ.get("AUTH_SECRET", "dev-secret-change-me")

# Calendar bucketing happens in this zone, never in UTC unless configured so
LOCAL_TIMEZONE = os.environ.get("LOCAL_TIMEZONE", "UTC")

if DATABASE_URL.startswith("postgresql"):
    logger.info("[DB CONFIG] Using PostgreSQL database")
else:
    logger.info(f"[DB CONFIG] Using SQLite database: {DATABASE_URL}")


def build_engine(database_url: str = DATABASE_URL):
    """Create a SQLModel engine, enabling WAL and foreign keys on SQLite."""
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    new_engine = create_engine(database_url, echo=False, connect_args=connect_args)

    if is_sqlite:
        @event.listens_for(new_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if ":memory:" not in database_url:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return new_engine


engine = build_engine()

