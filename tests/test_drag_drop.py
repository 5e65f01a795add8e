import pytest

from collabboard.schemas.task import TaskStatus
from collabboard.services.drag_drop import DragDropReconciler, DragState
from collabboard.services.errors import ValidationError
from collabboard.services.task_service import TaskService


class RecordingTaskService(TaskService):
    """TaskService that remembers every status write it was asked for."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.status_calls = []

    async def write_status(self, task_id, status):
        self.status_calls.append((task_id, status))
        await super().write_status(task_id, status)


@pytest.fixture
def recording_tasks(store, boards):
    return RecordingTaskService(store, boards)


@pytest.fixture
async def task(recording_tasks, boards):
    board = await boards.create_board("Launch", "alice")
    return await recording_tasks.create_task(board.id, "Drag me", "alice")


async def test_drop_on_another_column_writes_once(recording_tasks, task):
    reconciler = DragDropReconciler(recording_tasks)
    reconciler.start_drag(task)
    reconciler.hover("progress")
    reconciler.hover("done")

    assert await reconciler.drop() is True
    assert recording_tasks.status_calls == [(task.id, TaskStatus.DONE)]
    assert (await recording_tasks.get_task(task.id)).status == TaskStatus.DONE
    assert reconciler.state == DragState.IDLE


async def test_drop_on_own_column_writes_nothing(recording_tasks, task):
    reconciler = DragDropReconciler(recording_tasks)
    reconciler.start_drag(task)

    assert await reconciler.drop("todo") is False
    assert recording_tasks.status_calls == []


async def test_cancelled_drag_writes_nothing(recording_tasks, task):
    reconciler = DragDropReconciler(recording_tasks)
    reconciler.start_drag(task)
    reconciler.hover("done")
    reconciler.cancel()

    assert await reconciler.drop() is False
    assert recording_tasks.status_calls == []


async def test_leaving_a_column_forgets_it(recording_tasks, task):
    reconciler = DragDropReconciler(recording_tasks)
    reconciler.start_drag(task)
    reconciler.hover("done")
    assert reconciler.state == DragState.HOVERING
    reconciler.leave()
    assert reconciler.state == DragState.DRAGGING

    assert await reconciler.drop() is False
    assert recording_tasks.status_calls == []


async def test_hover_without_drag_is_ignored(recording_tasks):
    reconciler = DragDropReconciler(recording_tasks)
    reconciler.hover("done")
    assert reconciler.state == DragState.IDLE
    assert await reconciler.drop("done") is False


async def test_unknown_column(recording_tasks, task):
    reconciler = DragDropReconciler(recording_tasks)
    reconciler.start_drag(task)
    with pytest.raises(ValidationError):
        reconciler.hover("archive")


async def test_drop_writes_without_reading_first(recording_tasks, task, store, monkeypatch):
    reads = []
    get_document = store.get_document

    async def counting_get_document(path, doc_id):
        reads.append((path, doc_id))
        return await get_document(path, doc_id)

    monkeypatch.setattr(store, "get_document", counting_get_document)
    reconciler = DragDropReconciler(recording_tasks)
    reconciler.start_drag(task)

    assert await reconciler.drop("done") is True
    assert reads == []
    assert (await get_document("tasks", task.id)).data["status"] == "done"


async def test_drop_overwrites_a_concurrent_move(recording_tasks, task):
    reconciler = DragDropReconciler(recording_tasks)
    reconciler.start_drag(task)
    await recording_tasks.set_status(task.id, "progress")

    assert await reconciler.drop("done") is True
    assert (await recording_tasks.get_task(task.id)).status == TaskStatus.DONE
