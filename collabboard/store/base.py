"""
Document Store Interface

The collaborative core talks to its database only through this interface:
live subscriptions over a collection, document create/set/update/delete,
atomic add/remove on array fields and one-shot reads. Backends implement a
handful of synchronous primitives; this base class turns them into the
async public API and fans every write out to the matching subscriptions.
"""

import copy
import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from collabboard.services.errors import CollabError, NotFoundError, TransportError
from collabboard.utils.logger import get_logger

logger = logging.getLogger(__name__)
change_feed_logger = get_logger("collabboard.change-feed")


class _ServerTimestamp:
    """Sentinel replaced by the store clock when a document is written."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

FILTER_OPERATORS = ("==", "array-contains", "in")


@dataclass(frozen=True)
class FieldFilter:
    """Equality-style predicate on one top-level document field."""
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")

    def matches(self, data: Dict[str, Any]) -> bool:
        current = data.get(self.field)
        if self.op == "==":
            return current == self.value
        if self.op == "array-contains":
            return isinstance(current, list) and self.value in current
        return current in self.value


@dataclass
class Document:
    """A document read from the store."""
    id: str
    path: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.data}


SnapshotCallback = Callable[[List[Document]], None]
ErrorCallback = Callable[[TransportError], None]


def matches_all(data: Dict[str, Any], filters: Sequence[FieldFilter]) -> bool:
    return all(f.matches(data) for f in filters)


class ServerClock:
    """Epoch-millisecond clock that never repeats or goes backwards."""

    def __init__(self, time_source: Callable[[], float] = time.time):
        self._time_source = time_source
        self._last = 0

    def now_ms(self) -> int:
        candidate = int(self._time_source() * 1000)
        self._last = max(candidate, self._last + 1)
        return self._last


class Subscription:
    """Handle of one live query. ``unsubscribe`` may be called any number of times."""

    def __init__(
        self,
        store: "DocumentStore",
        path: str,
        filters: Sequence[FieldFilter],
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ):
        self.store = store
        self.path = path
        self.filters = tuple(filters)
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self.store._remove_subscription(self)

    def deliver(self, documents: List[Document]) -> None:
        if not self.active:
            return
        visible = [doc for doc in documents if matches_all(doc.data, self.filters)]
        try:
            self.on_snapshot(visible)
        except Exception:
            # a broken listener must not break the writer or other listeners
            logger.exception(f"Snapshot listener on {self.path} raised")

    def fail(self, error: TransportError) -> None:
        if not self.active:
            return
        if self.on_error is None:
            logger.error(f"Subscription on {self.path} failed: {error.message}")
            return
        try:
            self.on_error(error)
        except Exception:
            logger.exception(f"Error listener on {self.path} raised")


class DocumentStore(ABC):
    """
    Base class for document store backends.

    Subclasses implement the synchronous primitives ``_fetch``, ``_fetch_all``,
    ``_mutate`` and ``_delete``. ``_mutate`` must apply its transform
    atomically with respect to other writers of the same document; that is
    what makes ``array_union`` and ``array_remove`` safe under concurrency.
    """

    def __init__(self, clock: Optional[ServerClock] = None):
        self.clock = clock or ServerClock()
        self._subscriptions: Dict[str, List[Subscription]] = {}

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------
    @abstractmethod
    def _fetch(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return a copy of the document body, or None."""

    @abstractmethod
    def _fetch_all(self, path: str) -> List[Document]:
        """Return every document of a collection ordered by id."""

    @abstractmethod
    def _mutate(
        self,
        path: str,
        doc_id: str,
        transform: Callable[[Optional[Dict[str, Any]]], Dict[str, Any]],
    ) -> Dict[str, Any]:
        """Atomically replace a document body with ``transform(current)``."""

    @abstractmethod
    def _delete(self, path: str, doc_id: str) -> bool:
        """Remove a document. Returns False when it did not exist."""

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscribe(
        self,
        path: str,
        filters: Optional[Iterable[FieldFilter]] = None,
        on_snapshot: Optional[SnapshotCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Start a live query over ``path``.

        The current snapshot is delivered before this method returns, and a
        new full snapshot follows every write to the collection.
        """
        if on_snapshot is None:
            raise ValueError("on_snapshot callback is required")
        subscription = Subscription(self, path, list(filters or []), on_snapshot, on_error)
        self._subscriptions.setdefault(path, []).append(subscription)
        change_feed_logger.subscription_opened(path, subscription.filters)
        try:
            subscription.deliver(self._guard("subscribe", lambda: self._fetch_all(path)))
        except TransportError as e:
            subscription.fail(e)
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions.get(subscription.path, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            self._subscriptions.pop(subscription.path, None)
        change_feed_logger.subscription_closed(subscription.path, len(subscribers))

    def subscription_count(self, path: Optional[str] = None) -> int:
        if path is not None:
            return len(self._subscriptions.get(path, []))
        return sum(len(subs) for subs in self._subscriptions.values())

    def _notify(self, path: str, action: str, doc_id: str) -> None:
        subscribers = list(self._subscriptions.get(path, []))
        change_feed_logger.document_changed(path, doc_id, action, len(subscribers))
        if not subscribers:
            return
        try:
            documents = self._guard("snapshot", lambda: self._fetch_all(path))
        except TransportError as e:
            for subscription in subscribers:
                subscription.fail(e)
            return
        for subscription in subscribers:
            subscription.deliver(documents)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def new_id(self) -> str:
        return uuid.uuid4().hex

    def _resolve(self, value: Any) -> Any:
        """Deep-copy a value, stamping every SERVER_TIMESTAMP with the clock."""
        if value is SERVER_TIMESTAMP:
            return self.clock.now_ms()
        if isinstance(value, dict):
            return {k: self._resolve(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._resolve(v) for v in value]
        return copy.deepcopy(value)

    def _guard(self, operation: str, func: Callable[[], Any]) -> Any:
        try:
            return func()
        except CollabError:
            raise
        except Exception as e:
            logger.error(f"Document store {operation} failed: {str(e)}")
            raise TransportError(f"Document store {operation} failed", {"reason": str(e)}) from e

    async def create_document(self, path: str, fields: Dict[str, Any]) -> str:
        doc_id = self.new_id()
        body = self._resolve(fields)

        def insert(current):
            if current is not None:
                raise TransportError("Document id collision", {"path": path, "id": doc_id})
            return body

        self._guard("create", lambda: self._mutate(path, doc_id, insert))
        self._notify(path, "created", doc_id)
        return doc_id

    async def set_document(
        self, path: str, doc_id: str, fields: Dict[str, Any], merge: bool = False
    ) -> None:
        """Write a document with a known id. ``merge`` keeps unspecified fields."""
        body = self._resolve(fields)

        def write(current):
            if merge and current is not None:
                return _deep_merge(current, body)
            return body

        self._guard("set", lambda: self._mutate(path, doc_id, write))
        self._notify(path, "set", doc_id)

    async def update_document(self, path: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Set the given top-level fields. Fails with NotFoundError on a missing document."""
        body = self._resolve(fields)

        def update(current):
            if current is None:
                raise NotFoundError("Document not found", {"path": path, "id": doc_id})
            current.update(body)
            return current

        self._guard("update", lambda: self._mutate(path, doc_id, update))
        self._notify(path, "updated", doc_id)

    async def array_union(self, path: str, doc_id: str, field_name: str, element: Any) -> None:
        """Append ``element`` to an array field unless an equal element is present."""
        resolved = self._resolve(element)

        def union(current):
            if current is None:
                raise NotFoundError("Document not found", {"path": path, "id": doc_id})
            items = list(current.get(field_name) or [])
            if resolved not in items:
                items.append(resolved)
            current[field_name] = items
            return current

        self._guard("array_union", lambda: self._mutate(path, doc_id, union))
        self._notify(path, "updated", doc_id)

    async def array_remove(self, path: str, doc_id: str, field_name: str, element: Any) -> None:
        """Remove every element equal to ``element`` from an array field."""
        resolved = self._resolve(element)

        def remove(current):
            if current is None:
                raise NotFoundError("Document not found", {"path": path, "id": doc_id})
            current[field_name] = [v for v in (current.get(field_name) or []) if v != resolved]
            return current

        self._guard("array_remove", lambda: self._mutate(path, doc_id, remove))
        self._notify(path, "updated", doc_id)

    async def delete_document(self, path: str, doc_id: str) -> None:
        """Delete a document; deleting a missing document is not an error."""
        existed = self._guard("delete", lambda: self._delete(path, doc_id))
        if existed:
            self._notify(path, "deleted", doc_id)

    async def get_document(self, path: str, doc_id: str) -> Optional[Document]:
        data = self._guard("get", lambda: self._fetch(path, doc_id))
        if data is None:
            return None
        return Document(id=doc_id, path=path, data=data)

    async def query(self, path: str, filters: Optional[Iterable[FieldFilter]] = None) -> List[Document]:
        criteria = list(filters or [])
        documents = self._guard("query", lambda: self._fetch_all(path))
        return [doc for doc in documents if matches_all(doc.data, criteria)]


def _deep_merge(current: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """Merge nested maps key by key, the way a merge-set treats map fields."""
    merged = dict(current)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
