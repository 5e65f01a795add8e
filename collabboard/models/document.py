"""Stored document model for SQLModel."""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from datetime import datetime, timezone
from typing import Any, Dict


class StoredDocument(SQLModel, table=True):
    """
    One document of the collaborative store.

    ``path`` is the collection path the document lives in ("boards",
    "chats/<chatId>/messages", ...); ``doc_id`` is unique inside that path.
    The document body is kept as JSON so every collection shares one table.
    """
    __tablename__ = "documents"

    path: str = Field(primary_key=True, max_length=255)
    doc_id: str = Field(primary_key=True, max_length=255)
    data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
