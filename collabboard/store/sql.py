"""SQLModel-backed document store."""
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from collabboard.models.document import StoredDocument
from collabboard.services.errors import CollabError, TransportError
from collabboard.store.base import Document, DocumentStore, ServerClock

logger = logging.getLogger(__name__)


class SQLDocumentStore(DocumentStore):
    """
    Persists documents in the ``documents`` table.

    Each primitive runs in its own session. ``_mutate`` reads the row with
    ``SELECT ... FOR UPDATE`` (a no-op on SQLite, which serializes writers
    anyway) so a transform sees the latest committed body.
    """

    def __init__(self, engine, clock: Optional[ServerClock] = None):
        super().__init__(clock)
        self.engine = engine

    def _fetch(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            with Session(self.engine) as session:
                row = session.get(StoredDocument, (path, doc_id))
                return copy.deepcopy(row.data) if row else None
        except SQLAlchemyError as e:
            raise TransportError("Failed to read document", {"path": path, "reason": str(e)}) from e

    def _fetch_all(self, path: str) -> List[Document]:
        try:
            with Session(self.engine) as session:
                statement = (
                    select(StoredDocument)
                    .where(StoredDocument.path == path)
                    .order_by(StoredDocument.doc_id)
                )
                rows = session.exec(statement).all()
                return [
                    Document(id=row.doc_id, path=path, data=copy.deepcopy(row.data))
                    for row in rows
                ]
        except SQLAlchemyError as e:
            raise TransportError("Failed to read collection", {"path": path, "reason": str(e)}) from e

    def _mutate(
        self,
        path: str,
        doc_id: str,
        transform: Callable[[Optional[Dict[str, Any]]], Dict[str, Any]],
    ) -> Dict[str, Any]:
        try:
            with Session(self.engine) as session:
                statement = (
                    select(StoredDocument)
                    .where(StoredDocument.path == path)
                    .where(StoredDocument.doc_id == doc_id)
                    .with_for_update()
                )
                row = session.exec(statement).first()
                updated = transform(copy.deepcopy(row.data) if row else None)
                if row is None:
                    row = StoredDocument(path=path, doc_id=doc_id, data=updated)
                else:
                    # assign a fresh object so the JSON column is flagged dirty
                    row.data = copy.deepcopy(updated)
                    row.updated_at = datetime.now(timezone.utc)
                session.add(row)
                session.commit()
                return updated
        except CollabError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Write to {path}/{doc_id} failed: {str(e)}")
            raise TransportError("Failed to write document", {"path": path, "reason": str(e)}) from e

    def _delete(self, path: str, doc_id: str) -> bool:
        try:
            with Session(self.engine) as session:
                row = session.get(StoredDocument, (path, doc_id))
                if row is None:
                    return False
                session.delete(row)
                session.commit()
                return True
        except SQLAlchemyError as e:
            raise TransportError("Failed to delete document", {"path": path, "reason": str(e)}) from e
