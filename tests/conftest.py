"""Shared fixtures: an in-memory store, the services on top of it and an API client."""
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from collabboard.db import config
from collabboard.main import app
from collabboard.middleware.auth import ALGORITHM
from collabboard.services.board_service import BoardService
from collabboard.services.calendar_service import CalendarService
from collabboard.services.chat_service import ChatService
from collabboard.services.errors import TransportError
from collabboard.services.identity_service import IdentityDirectory
from collabboard.services.task_service import TaskService
from collabboard.store.memory import MemoryDocumentStore


class FlakyStore(MemoryDocumentStore):
    """Memory store whose deletes, writes or reads can be made to fail."""

    def __init__(self):
        super().__init__()
        self.failing_deletes = set()
        self.fail_writes = False
        self.fail_reads = False

    def _delete(self, path, doc_id):
        if path in self.failing_deletes or f"{path}/{doc_id}" in self.failing_deletes:
            raise RuntimeError("connection reset by peer")
        return super()._delete(path, doc_id)

    def _mutate(self, path, doc_id, transform):
        if self.fail_writes:
            raise RuntimeError("connection reset by peer")
        return super()._mutate(path, doc_id, transform)

    def _fetch_all(self, path):
        if self.fail_reads:
            raise TransportError("Store unreachable", {"path": path})
        return super()._fetch_all(path)


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def flaky_store():
    return FlakyStore()


@pytest.fixture
def directory(store):
    return IdentityDirectory(store)


@pytest.fixture
def boards(store, directory):
    return BoardService(store, directory)


@pytest.fixture
def tasks(store, boards):
    return TaskService(store, boards)


@pytest.fixture
def calendar(store):
    return CalendarService(store)


@pytest.fixture
def chat(store, directory):
    return ChatService(store, directory)


@pytest.fixture
async def users(directory):
    """Three signed-up identities: alice, bob and carol."""
    for uid in ("alice", "bob", "carol"):
        await directory.record_login(uid, f"{uid}@example.com")
    return {"alice": "alice@example.com", "bob": "bob@example.com", "carol": "carol@example.com"}


def make_token(user_id, email=None):
    claims = {"sub": user_id}
    if email:
        claims["email"] = email
    return jwt.encode(claims, config.AUTH_SECRET, algorithm=ALGORITHM)


@pytest.fixture
def token_for():
    return make_token


@pytest.fixture
def auth_headers():
    def _headers(user_id, email=None):
        return {"Authorization": f"Bearer {make_token(user_id, email)}"}
    return _headers


@pytest.fixture
def client(store):
    app.state.store = store
    with TestClient(app) as test_client:
        yield test_client
    app.state.store = None
