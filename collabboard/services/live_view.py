"""
Live Workspace

Keeps one user's boards, the tasks of those boards and the user's calendar
targets in sync with the store, and rebuilds the summary from the full
snapshot after every change. Derived state is never patched incrementally.
"""

import logging
from typing import Callable, List, Optional

from collabboard.schemas.board import Board
from collabboard.schemas.calendar import CalendarTarget
from collabboard.schemas.summary import WorkspaceSummary
from collabboard.schemas.task import Task
from collabboard.services import aggregation
from collabboard.services.board_service import BoardService
from collabboard.services.calendar_service import CalendarService
from collabboard.services.errors import TransportError
from collabboard.services.task_service import TaskService
from collabboard.store.base import Subscription

logger = logging.getLogger(__name__)


class LiveWorkspace:
    """Subscriptions plus recomputed summary for one signed-in user."""

    def __init__(
        self,
        user_id: str,
        boards: BoardService,
        tasks: TaskService,
        calendar: CalendarService,
        on_summary: Optional[Callable[[WorkspaceSummary], None]] = None,
        tz=None,
    ):
        self.user_id = user_id
        self.board_service = boards
        self.task_service = tasks
        self.calendar_service = calendar
        self.on_summary = on_summary
        self.tz = aggregation.resolve_timezone(tz)

        self.boards: List[Board] = []
        self.tasks: List[Task] = []
        self.targets: List[CalendarTarget] = []
        self.summary = WorkspaceSummary()
        self.errors: List[TransportError] = []
        self.closed = False

        self._task_board_ids: Optional[tuple] = None
        self._tasks_subscription: Optional[Subscription] = None
        self._boards_subscription = boards.subscribe_boards(user_id, self._on_boards, self._on_error)
        self._targets_subscription = calendar.subscribe_targets(user_id, self._on_targets, self._on_error)

    def _on_boards(self, boards: List[Board]) -> None:
        self.boards = boards
        board_ids = tuple(sorted(b.id for b in boards))
        if board_ids != self._task_board_ids:
            self._resubscribe_tasks(board_ids)
        self._recompute()

    def _resubscribe_tasks(self, board_ids: tuple) -> None:
        if self._tasks_subscription is not None:
            self._tasks_subscription.unsubscribe()
        self._task_board_ids = board_ids
        self.tasks = []
        self._tasks_subscription = self.task_service.subscribe_tasks_in_boards(
            board_ids, self._on_tasks, self._on_error
        )

    def _on_tasks(self, tasks: List[Task]) -> None:
        self.tasks = tasks
        self._recompute()

    def _on_targets(self, targets: List[CalendarTarget]) -> None:
        self.targets = targets
        self._recompute()

    def _on_error(self, error: TransportError) -> None:
        logger.error(f"Live workspace of {self.user_id} lost a snapshot: {error.message}")
        self.errors.append(error)

    def _recompute(self) -> None:
        if self.closed:
            return
        self.summary = WorkspaceSummary(
            board_count=len(self.boards),
            overall=aggregation.counts_by_status(self.tasks),
            by_board=aggregation.counts_by_board(self.boards, self.tasks),
            tasks_by_day=aggregation.tasks_by_day(self.tasks, self.tz),
            targets_by_day=aggregation.targets_by_day(self.targets),
        )
        if self.on_summary:
            self.on_summary(self.summary)

    def tasks_on(self, day) -> List[Task]:
        return aggregation.tasks_on_date(self.tasks, day, self.tz)

    def targets_on(self, day) -> List[CalendarTarget]:
        return aggregation.targets_on_date(self.targets, day)

    def close(self) -> None:
        """Cancel every subscription this workspace opened."""
        self.closed = True
        for subscription in (self._boards_subscription, self._targets_subscription, self._tasks_subscription):
            if subscription is not None:
                subscription.unsubscribe()
