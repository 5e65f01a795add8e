"""
Aggregation Engine

Pure functions that derive the summary, board and calendar views from a
full snapshot of boards, tasks and calendar targets. Nothing here keeps
state; callers recompute from the latest snapshot on every change.
"""

import calendar
import math
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Union

import pytz

from collabboard.schemas.board import Board
from collabboard.schemas.calendar import CalendarTarget
from collabboard.schemas.summary import (
    BoardCounts,
    DonutSegment,
    StatusCounts,
    StatusPercentages,
)
from collabboard.schemas.task import Task, TaskStatus

# Drawing order of the donut arcs, first arc starts at the top
DONUT_ORDER = (TaskStatus.DONE, TaskStatus.PROGRESS, TaskStatus.TODO)

DateLike = Union[str, date, datetime]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def counts_by_status(tasks: Iterable[Task]) -> StatusCounts:
    """
    Count tasks per column.

    Percentages are rounded half up and only present when there is at least
    one task; rounding can make them sum to 99..101.
    """
    counts = {status: 0 for status in TaskStatus}
    for task in tasks:
        counts[task.status] += 1
    total = sum(counts.values())

    percentages = None
    if total > 0:
        percentages = StatusPercentages(
            todo=_round_half_up(counts[TaskStatus.TODO] / total * 100),
            progress=_round_half_up(counts[TaskStatus.PROGRESS] / total * 100),
            done=_round_half_up(counts[TaskStatus.DONE] / total * 100),
        )

    return StatusCounts(
        todo=counts[TaskStatus.TODO],
        progress=counts[TaskStatus.PROGRESS],
        done=counts[TaskStatus.DONE],
        total=total,
        percentages=percentages,
    )


def counts_by_board(boards: Iterable[Board], tasks: Iterable[Task]) -> List[BoardCounts]:
    """Per-board counts; tasks of boards not in ``boards`` are ignored."""
    task_list = list(tasks)
    result = []
    for board in boards:
        board_counts = counts_by_status(t for t in task_list if t.board_id == board.id)
        result.append(BoardCounts(board=board, **board_counts.model_dump()))
    return result


def group_by_status(tasks: Iterable[Task]) -> Dict[TaskStatus, List[Task]]:
    """Split tasks into the three board columns, oldest first."""
    columns: Dict[TaskStatus, List[Task]] = {status: [] for status in TaskStatus}
    for task in sorted(tasks, key=lambda t: (t.created_at, t.id)):
        columns[task.status].append(task)
    return columns


def resolve_timezone(tz: Union[str, None, pytz.BaseTzInfo]) -> pytz.BaseTzInfo:
    if tz is None:
        from collabboard.db.config import LOCAL_TIMEZONE
        tz = LOCAL_TIMEZONE
    if isinstance(tz, str):
        return pytz.timezone(tz)
    return tz


def date_key(value: DateLike) -> str:
    """Normalize a calendar date (or "YYYY-MM-DD" string) to "YYYY-MM-DD"."""
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10]).isoformat()
    if isinstance(value, datetime):
        value = value.date()
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def local_date_key(epoch_ms: int, tz=None) -> str:
    """
    Calendar day of an instant in the local zone.

    Built from the local year, month and day fields so that 23:59:59 and
    00:00:01 of the next day land in different buckets whatever the UTC date.
    """
    local = datetime.fromtimestamp(epoch_ms / 1000, tz=pytz.utc).astimezone(resolve_timezone(tz))
    return f"{local.year:04d}-{local.month:02d}-{local.day:02d}"


def tasks_on_date(tasks: Iterable[Task], day: DateLike, tz=None) -> List[Task]:
    """Tasks created on the given local calendar day."""
    zone = resolve_timezone(tz)
    target = date_key(day)
    return [t for t in tasks if local_date_key(t.created_at, zone) == target]


def targets_on_date(targets: Iterable[CalendarTarget], day: DateLike) -> List[CalendarTarget]:
    """Targets pinned to the given day; their dates are already local Y-M-D strings."""
    target = date_key(day)
    return [t for t in targets if date_key(t.date) == target]


def tasks_by_day(tasks: Iterable[Task], tz=None) -> Dict[str, int]:
    """Number of tasks created per local calendar day."""
    zone = resolve_timezone(tz)
    buckets: Dict[str, int] = {}
    for task in tasks:
        key = local_date_key(task.created_at, zone)
        buckets[key] = buckets.get(key, 0) + 1
    return buckets


def targets_by_day(targets: Iterable[CalendarTarget]) -> Dict[str, int]:
    buckets: Dict[str, int] = {}
    for target in targets:
        key = date_key(target.date)
        buckets[key] = buckets.get(key, 0) + 1
    return buckets


def month_grid(year: int, month: int) -> List[Optional[date]]:
    """Days of a month for a Sunday-first grid, padded with None before day 1."""
    first_weekday, days_in_month = calendar.monthrange(year, month)
    # monthrange counts Monday as 0
    leading = (first_weekday + 1) % 7
    return [None] * leading + [date(year, month, d) for d in range(1, days_in_month + 1)]


def donut_segments(counts: StatusCounts, circumference: float) -> List[DonutSegment]:
    """
    Arc layout of the status donut.

    Arcs are stacked done, progress, todo; each one is a dash of ``length``
    shifted by ``offset = circumference - (sum of lengths so far)``. Empty
    statuses get no arc, and a zero total yields no arcs at all (the caller
    draws only the neutral background circle).
    """
    if counts.total <= 0:
        return []
    values = {
        TaskStatus.DONE: counts.done,
        TaskStatus.PROGRESS: counts.progress,
        TaskStatus.TODO: counts.todo,
    }
    segments = []
    drawn = 0.0
    for status in DONUT_ORDER:
        length = circumference * values[status] / counts.total
        drawn += length
        if values[status] > 0:
            segments.append(DonutSegment(status=status.value, length=length, offset=circumference - drawn))
    return segments
