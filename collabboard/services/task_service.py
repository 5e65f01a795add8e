"""Task store: board-scoped tasks, status moves and comments."""
import logging
import time
from typing import Callable, Iterable, List, Union

from collabboard.schemas.task import Task, TaskStatus
from collabboard.services.board_service import BoardService, TASKS
from collabboard.services.errors import NotFoundError, ValidationError
from collabboard.store.base import SERVER_TIMESTAMP, DocumentStore, FieldFilter, Subscription

logger = logging.getLogger(__name__)


def parse_status(value: Union[str, TaskStatus]) -> TaskStatus:
    """Coerce a column name to a TaskStatus."""
    try:
        return TaskStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in TaskStatus)
        raise ValidationError(f"Status must be one of: {allowed}", {"field": "status", "value": value})


class TaskService:
    """Service class for task CRUD, status transitions and comments."""

    def __init__(self, store: DocumentStore, boards: BoardService = None):
        self.store = store
        self.boards = boards or BoardService(store)

    async def create_task(self, board_id: str, text: str, creator_id: str) -> Task:
        """Add a task to a board the creator belongs to. New tasks start in todo."""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Task text is required", {"field": "text"})
        await self.boards.get_board_for_member(board_id, creator_id)

        task_id = await self.store.create_document(TASKS, {
            "text": text,
            "status": TaskStatus.TODO.value,
            "boardId": board_id,
            "creatorId": creator_id,
            "createdAt": SERVER_TIMESTAMP,
            "comments": [],
        })
        logger.info(f"Task {task_id} created on board {board_id} by {creator_id}")
        return await self.get_task(task_id)

    async def get_task(self, task_id: str) -> Task:
        document = await self.store.get_document(TASKS, task_id)
        if document is None:
            raise NotFoundError("Task not found", {"task_id": task_id})
        return Task.from_document(document)

    async def set_status(self, task_id: str, new_status: Union[str, TaskStatus]) -> Task:
        """
        Move a task to another column.

        Every transition is allowed. Setting the status a task already has
        writes nothing, so other clients see no change notification.
        """
        status = parse_status(new_status)
        task = await self.get_task(task_id)
        if task.status == status:
            return task
        await self.write_status(task_id, status)
        logger.info(f"Task {task_id} moved {task.status.value} -> {status.value}")
        task.status = status
        return task

    async def write_status(self, task_id: str, status: TaskStatus) -> None:
        """Blind status write: no read first, the last writer wins."""
        await self.store.update_document(TASKS, task_id, {"status": status.value})

    async def append_comment(self, task_id: str, text: str, author_id: str, author_email: str) -> Task:
        """Append a comment with an atomic array union, never a whole-list rewrite."""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment text is required", {"field": "text"})
        comment = {
            "id": self.store.new_id(),
            "text": text,
            "authorId": author_id,
            "authorEmail": author_email or "",
            "createdAt": int(time.time() * 1000),
        }
        await self.store.array_union(TASKS, task_id, "comments", comment)
        return await self.get_task(task_id)

    async def delete_task(self, task_id: str) -> None:
        """Delete a task regardless of its status."""
        await self.store.delete_document(TASKS, task_id)
        logger.info(f"Task {task_id} deleted")

    async def list_board_tasks(self, board_id: str) -> List[Task]:
        documents = await self.store.query(TASKS, [FieldFilter("boardId", "==", board_id)])
        return [Task.from_document(doc) for doc in documents]

    async def list_tasks_in_boards(self, board_ids: Iterable[str]) -> List[Task]:
        documents = await self.store.query(TASKS, [FieldFilter("boardId", "in", sorted(set(board_ids)))])
        return [Task.from_document(doc) for doc in documents]

    def subscribe_board_tasks(
        self,
        board_id: str,
        on_change: Callable[[List[Task]], None],
        on_error=None,
    ) -> Subscription:
        """Live task list of one board."""
        return self.store.subscribe(
            TASKS,
            [FieldFilter("boardId", "==", board_id)],
            lambda docs: on_change([Task.from_document(doc) for doc in docs]),
            on_error,
        )

    def subscribe_tasks_in_boards(
        self,
        board_ids: Iterable[str],
        on_change: Callable[[List[Task]], None],
        on_error=None,
    ) -> Subscription:
        """Live task list across several boards (e.g. every board of a user)."""
        return self.store.subscribe(
            TASKS,
            [FieldFilter("boardId", "in", sorted(set(board_ids)))],
            lambda docs: on_change([Task.from_document(doc) for doc in docs]),
            on_error,
        )
