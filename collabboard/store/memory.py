"""In-process document store used for tests and local development."""
import copy
from typing import Any, Callable, Dict, List, Optional

from collabboard.store.base import Document, DocumentStore, ServerClock


class MemoryDocumentStore(DocumentStore):
    """Keeps every collection in a dict. Single event loop, so every mutate is atomic."""

    def __init__(self, clock: Optional[ServerClock] = None):
        super().__init__(clock)
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def _fetch(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        data = self._collections.get(path, {}).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    def _fetch_all(self, path: str) -> List[Document]:
        collection = self._collections.get(path, {})
        return [
            Document(id=doc_id, path=path, data=copy.deepcopy(collection[doc_id]))
            for doc_id in sorted(collection)
        ]

    def _mutate(
        self,
        path: str,
        doc_id: str,
        transform: Callable[[Optional[Dict[str, Any]]], Dict[str, Any]],
    ) -> Dict[str, Any]:
        updated = transform(self._fetch(path, doc_id))
        self._collections.setdefault(path, {})[doc_id] = copy.deepcopy(updated)
        return updated

    def _delete(self, path: str, doc_id: str) -> bool:
        collection = self._collections.get(path)
        if not collection or doc_id not in collection:
            return False
        del collection[doc_id]
        if not collection:
            del self._collections[path]
        return True
