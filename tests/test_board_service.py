"""Board membership: visibility, invitations, removal and owner-confirmed deletion."""
import pytest

from collabboard.services.board_service import BoardService
from collabboard.services.errors import (
    AuthorizationError,
    NotFoundError,
    PartialDeletionError,
    ValidationError,
)
from collabboard.services.identity_service import IdentityDirectory
from collabboard.services.task_service import TaskService


async def test_create_board_makes_owner_the_only_member(boards):
    board = await boards.create_board("  Launch plan ", "alice")
    assert board.name == "Launch plan"
    assert board.owner_id == "alice"
    assert board.members == ["alice"]
    assert board.created_at > 0


async def test_create_board_requires_name(boards):
    with pytest.raises(ValidationError):
        await boards.create_board("   ", "alice")


async def test_boards_are_visible_only_to_members(boards, users):
    launch = await boards.create_board("Launch", "alice")
    await boards.create_board("Private", "carol")

    assert [b.id for b in await boards.list_boards("alice")] == [launch.id]
    assert await boards.list_boards("bob") == []

    await boards.add_member(launch.id, "bob@example.com")
    assert [b.id for b in await boards.list_boards("bob")] == [launch.id]

    await boards.remove_member(launch.id, "bob", "alice")
    assert await boards.list_boards("bob") == []


async def test_add_member_is_idempotent(boards, users):
    board = await boards.create_board("Launch", "alice")
    await boards.add_member(board.id, "bob@example.com")
    board = await boards.add_member(board.id, "BOB@example.com")
    assert board.members == ["alice", "bob"]


async def test_add_member_unknown_email(boards, users):
    board = await boards.create_board("Launch", "alice")
    with pytest.raises(NotFoundError):
        await boards.add_member(board.id, "stranger@example.com")


async def test_only_owner_removes_members(boards, users):
    board = await boards.create_board("Launch", "alice")
    await boards.add_member(board.id, "bob@example.com")
    await boards.add_member(board.id, "carol@example.com")

    with pytest.raises(AuthorizationError):
        await boards.remove_member(board.id, "carol", "bob")
    with pytest.raises(ValidationError):
        await boards.remove_member(board.id, "alice", "alice")


async def test_member_check(boards):
    board = await boards.create_board("Launch", "alice")
    assert (await boards.get_board_for_member(board.id, "alice")).id == board.id
    with pytest.raises(AuthorizationError):
        await boards.get_board_for_member(board.id, "bob")
    with pytest.raises(NotFoundError):
        await boards.get_board_for_member("missing", "alice")


async def test_rename_board(boards):
    board = await boards.create_board("Launch", "alice")
    renamed = await boards.rename_board(board.id, " Relaunch ")
    assert renamed.name == "Relaunch"
    with pytest.raises(ValidationError):
        await boards.rename_board(board.id, "")


async def test_list_members_resolves_emails(boards, users, store):
    board = await boards.create_board("Launch", "alice")
    await store.array_union("boards", board.id, "members", "ghost")

    members = await boards.list_members(board.id)
    assert [(m.uid, m.email) for m in members] == [
        ("alice", "alice@example.com"),
        ("ghost", "(unknown)"),
    ]


async def test_delete_requires_owner_before_confirmation(boards, users):
    board = await boards.create_board("Launch", "alice")
    await boards.add_member(board.id, "bob@example.com")

    with pytest.raises(AuthorizationError):
        await boards.delete_board(board.id, "bob", "delete")
    with pytest.raises(ValidationError):
        await boards.delete_board(board.id, "alice", "remove")
    assert (await boards.get_board(board.id)).id == board.id


async def test_delete_confirmation_ignores_case_and_spaces(boards, tasks):
    board = await boards.create_board("Launch", "alice")
    task = await tasks.create_task(board.id, "Orphan me", "alice")

    await boards.delete_board(board.id, "alice", "  DELETE ")

    with pytest.raises(NotFoundError):
        await boards.get_board(board.id)
    # tasks are left behind unless the deletion cascades
    assert (await tasks.get_task(task.id)).board_id == board.id


async def test_cascading_delete_removes_tasks(boards, tasks):
    board = await boards.create_board("Launch", "alice")
    await tasks.create_task(board.id, "One", "alice")
    await tasks.create_task(board.id, "Two", "alice")

    await boards.delete_board(board.id, "alice", "delete", cascade=True)
    assert await tasks.list_board_tasks(board.id) == []


async def test_cascading_delete_reports_what_remains(flaky_store):
    boards = BoardService(flaky_store, IdentityDirectory(flaky_store))
    tasks = TaskService(flaky_store, boards)
    board = await boards.create_board("Launch", "alice")
    await tasks.create_task(board.id, "One", "alice")
    flaky_store.failing_deletes.add("boards")

    with pytest.raises(PartialDeletionError) as exc_info:
        await boards.delete_board(board.id, "alice", "delete", cascade=True)

    assert exc_info.value.remaining == [f"boards/{board.id}"]
    assert await tasks.list_board_tasks(board.id) == []
    assert (await boards.get_board(board.id)).id == board.id


async def test_cascading_delete_stops_on_task_failure(flaky_store):
    boards = BoardService(flaky_store, IdentityDirectory(flaky_store))
    tasks = TaskService(flaky_store, boards)
    board = await boards.create_board("Launch", "alice")
    task = await tasks.create_task(board.id, "Stuck", "alice")
    flaky_store.failing_deletes.add("tasks")

    with pytest.raises(PartialDeletionError) as exc_info:
        await boards.delete_board(board.id, "alice", "delete", cascade=True)

    assert exc_info.value.completed == []
    assert exc_info.value.remaining == [f"tasks/{task.id}", f"boards/{board.id}"]


async def test_subscribe_boards_follows_membership(boards, users):
    snapshots = []
    subscription = boards.subscribe_boards("bob", lambda bs: snapshots.append([b.name for b in bs]))
    board = await boards.create_board("Launch", "alice")
    await boards.add_member(board.id, "bob@example.com")

    assert snapshots[0] == []
    assert snapshots[-1] == ["Launch"]
    subscription.unsubscribe()
