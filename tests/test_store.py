"""Document store behaviour shared by the memory and SQL backends."""
import pytest
from sqlmodel import Session

from collabboard.db.config import build_engine
from collabboard.db.init import init_db
from collabboard.models.document import StoredDocument
from collabboard.services.errors import NotFoundError, TransportError
from collabboard.store import SERVER_TIMESTAMP, FieldFilter, MemoryDocumentStore, ServerClock, create_store
from collabboard.store.sql import SQLDocumentStore


@pytest.fixture(params=["memory", "sql"])
def any_store(request):
    if request.param == "memory":
        return MemoryDocumentStore()
    engine = build_engine("sqlite:///:memory:")
    init_db(engine)
    return SQLDocumentStore(engine)


async def test_create_and_get(any_store):
    doc_id = await any_store.create_document("boards", {"name": "Launch", "members": ["u1"]})

    document = await any_store.get_document("boards", doc_id)
    assert document.id == doc_id
    assert document.data == {"name": "Launch", "members": ["u1"]}
    assert await any_store.get_document("boards", "missing") is None


async def test_server_timestamp_is_resolved(any_store):
    doc_id = await any_store.create_document("tasks", {"createdAt": SERVER_TIMESTAMP})
    document = await any_store.get_document("tasks", doc_id)
    assert isinstance(document.data["createdAt"], int)
    assert document.data["createdAt"] > 0


def test_server_clock_never_repeats():
    clock = ServerClock(time_source=lambda: 1.0)
    assert [clock.now_ms(), clock.now_ms(), clock.now_ms()] == [1000, 1001, 1002]


async def test_query_filters(any_store):
    await any_store.set_document("boards", "b1", {"members": ["u1", "u2"], "ownerId": "u1"})
    await any_store.set_document("boards", "b2", {"members": ["u2"], "ownerId": "u2"})
    await any_store.set_document("boards", "b3", {"members": ["u3"], "ownerId": "u3"})

    contains = await any_store.query("boards", [FieldFilter("members", "array-contains", "u2")])
    assert [doc.id for doc in contains] == ["b1", "b2"]

    equal = await any_store.query("boards", [FieldFilter("ownerId", "==", "u3")])
    assert [doc.id for doc in equal] == ["b3"]

    within = await any_store.query("boards", [FieldFilter("ownerId", "in", ["u1", "u3"])])
    assert [doc.id for doc in within] == ["b1", "b3"]


def test_unknown_filter_operator():
    with pytest.raises(ValueError):
        FieldFilter("status", ">", 1)


async def test_merge_set_keeps_other_fields(any_store):
    await any_store.set_document("chats", "a_b", {
        "participants": ["a", "b"],
        "participantNames": {"a": "Ann"},
    })
    await any_store.set_document("chats", "a_b", {"participantNames": {"b": "Ben"}}, merge=True)

    document = await any_store.get_document("chats", "a_b")
    assert document.data["participants"] == ["a", "b"]
    assert document.data["participantNames"] == {"a": "Ann", "b": "Ben"}


async def test_set_without_merge_replaces(any_store):
    await any_store.set_document("users", "u1", {"uid": "u1", "email": "a@example.com"})
    await any_store.set_document("users", "u1", {"uid": "u1"})
    document = await any_store.get_document("users", "u1")
    assert document.data == {"uid": "u1"}


async def test_array_union_and_remove(any_store):
    await any_store.set_document("boards", "b1", {"members": ["u1"]})

    await any_store.array_union("boards", "b1", "members", "u2")
    await any_store.array_union("boards", "b1", "members", "u2")
    document = await any_store.get_document("boards", "b1")
    assert document.data["members"] == ["u1", "u2"]

    await any_store.array_remove("boards", "b1", "members", "u1")
    document = await any_store.get_document("boards", "b1")
    assert document.data["members"] == ["u2"]


async def test_update_of_missing_document(any_store):
    with pytest.raises(NotFoundError):
        await any_store.update_document("tasks", "missing", {"status": "done"})
    with pytest.raises(NotFoundError):
        await any_store.array_union("tasks", "missing", "comments", {"text": "hi"})


async def test_delete_missing_document_is_a_noop(any_store):
    await any_store.delete_document("tasks", "missing")


async def test_subscription_receives_snapshots_in_write_order(any_store):
    snapshots = []
    subscription = any_store.subscribe(
        "tasks",
        [FieldFilter("boardId", "==", "b1")],
        lambda docs: snapshots.append(sorted(doc.data["text"] for doc in docs)),
    )
    assert snapshots == [[]]

    await any_store.set_document("tasks", "t1", {"boardId": "b1", "text": "first"})
    await any_store.set_document("tasks", "t2", {"boardId": "b2", "text": "elsewhere"})
    await any_store.set_document("tasks", "t3", {"boardId": "b1", "text": "second"})
    await any_store.delete_document("tasks", "t1")

    assert snapshots == [[], ["first"], ["first"], ["first", "second"], ["second"]]
    subscription.unsubscribe()


async def test_unsubscribe_stops_delivery(any_store):
    snapshots = []
    subscription = any_store.subscribe("tasks", None, snapshots.append)
    subscription.unsubscribe()
    subscription.unsubscribe()

    await any_store.set_document("tasks", "t1", {"text": "late"})
    assert len(snapshots) == 1
    assert any_store.subscription_count() == 0


async def test_broken_listener_does_not_break_writer(store):
    delivered = []

    def broken(docs):
        raise RuntimeError("render failed")

    store.subscribe("tasks", None, broken)
    store.subscribe("tasks", None, delivered.append)

    await store.set_document("tasks", "t1", {"text": "still saved"})
    assert (await store.get_document("tasks", "t1")).data["text"] == "still saved"
    assert len(delivered) == 2


async def test_backend_failure_becomes_transport_error(flaky_store):
    flaky_store.fail_writes = True
    with pytest.raises(TransportError):
        await flaky_store.create_document("tasks", {"text": "lost"})


def test_read_failure_goes_to_error_callback(flaky_store):
    errors = []
    flaky_store.fail_reads = True
    flaky_store.subscribe("tasks", None, lambda docs: None, errors.append)
    assert len(errors) == 1
    assert isinstance(errors[0], TransportError)


def test_create_store_memory_backend():
    assert isinstance(create_store("memory"), MemoryDocumentStore)
    with pytest.raises(ValueError):
        create_store("redis")


def test_row_timestamps_carry_a_timezone():
    row = StoredDocument(path="boards", doc_id="b1", data={})
    assert row.created_at.tzinfo is not None
    assert row.updated_at.tzinfo is not None


async def test_sql_rows_are_rewritten_in_place():
    engine = build_engine("sqlite:///:memory:")
    init_db(engine)
    sql_store = SQLDocumentStore(engine)

    await sql_store.set_document("tasks", "t1", {"status": "todo"})
    await sql_store.update_document("tasks", "t1", {"status": "done"})
    await sql_store.array_union("tasks", "t1", "comments", {"id": "c1"})

    with Session(engine) as session:
        row = session.get(StoredDocument, ("tasks", "t1"))
        assert row.data == {"status": "done", "comments": [{"id": "c1"}]}
        assert row.updated_at >= row.created_at
