"""Drag-and-drop reconciler: one pointer gesture, at most one status write."""
import logging
from enum import Enum
from typing import Optional, Union

from collabboard.schemas.task import Task, TaskStatus
from collabboard.services.task_service import TaskService, parse_status

logger = logging.getLogger(__name__)


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    HOVERING = "hovering"


class DragDropReconciler:
    """
    Local interaction state for dragging a task card between columns.

    Nothing is persisted until ``drop``. The write on drop is unconditional
    (last write wins); another user may have moved the same task meanwhile
    and that is not re-checked.
    """

    def __init__(self, tasks: TaskService):
        self.tasks = tasks
        self.state = DragState.IDLE
        self.task: Optional[Task] = None
        self.target_status: Optional[TaskStatus] = None

    def start_drag(self, task: Task) -> None:
        self.state = DragState.DRAGGING
        self.task = task
        self.target_status = None

    def hover(self, status: Union[str, TaskStatus]) -> None:
        """Pointer entered a column."""
        if self.state == DragState.IDLE:
            return
        self.target_status = parse_status(status)
        self.state = DragState.HOVERING

    def leave(self) -> None:
        """Pointer left the hovered column without dropping."""
        if self.state == DragState.HOVERING:
            self.state = DragState.DRAGGING
            self.target_status = None

    async def drop(self, status: Union[str, TaskStatus, None] = None) -> bool:
        """
        Finish the gesture on a column.

        Returns True when a status write was issued. Dropping outside any
        column, or on the column the task already sits in, writes nothing.
        """
        if self.state == DragState.IDLE or self.task is None:
            return False
        if status is not None:
            self.hover(status)

        task, target = self.task, self.target_status
        self._reset()
        if target is None or target == task.status:
            return False

        await self.tasks.write_status(task.id, target)
        logger.info(f"Task {task.id} dropped {task.status.value} -> {target.value}")
        return True

    def cancel(self) -> None:
        """Drag ended outside a valid drop target."""
        self._reset()

    def _reset(self) -> None:
        self.state = DragState.IDLE
        self.task = None
        self.target_status = None
