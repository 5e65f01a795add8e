"""
Document store package.

``create_store`` picks the backend named by ``STORE_BACKEND``.
"""

from .base import (
    SERVER_TIMESTAMP,
    Document,
    DocumentStore,
    FieldFilter,
    ServerClock,
    Subscription,
)
from .memory import MemoryDocumentStore


def create_store(backend: str = None) -> DocumentStore:
    from collabboard.db import config

    backend = backend or config.STORE_BACKEND
    if backend == "memory":
        return MemoryDocumentStore()
    if backend == "sql":
        from collabboard.db.init import init_db
        from .sql import SQLDocumentStore

        init_db(config.engine)
        return SQLDocumentStore(config.engine)
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")


__all__ = [
    "SERVER_TIMESTAMP",
    "Document",
    "DocumentStore",
    "FieldFilter",
    "MemoryDocumentStore",
    "ServerClock",
    "Subscription",
    "create_store",
]
