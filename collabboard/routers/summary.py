"""Summary and calendar router: derived views over the user's boards."""
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from typing import Dict, List, Optional

from collabboard.middleware.auth import CurrentUser, get_current_user
from collabboard.routers.deps import get_board_service, get_calendar_service, get_task_service
from collabboard.schemas.calendar import CalendarTarget, TargetCreate, TargetUpdate
from collabboard.schemas.summary import BoardCounts, DonutSegment, StatusCounts
from collabboard.schemas.task import Task
from collabboard.services import aggregation
from collabboard.services.board_service import BoardService
from collabboard.services.calendar_service import CalendarService
from collabboard.services.task_service import TaskService

router = APIRouter(tags=["Summary"])  # No prefix since main.py adds /api prefix

# circumference of the rendered donut ring (radius 90)
DEFAULT_CIRCUMFERENCE = 565.4866776461628


class SummaryResponse(BaseModel):
    board_count: int
    overall: StatusCounts
    by_board: List[BoardCounts]
    donut: List[DonutSegment]


class CalendarDay(BaseModel):
    date: Optional[str] = None
    task_count: int = 0
    target_count: int = 0


class DayDetail(BaseModel):
    date: str
    tasks: List[Task]
    targets: List[CalendarTarget]


async def _user_tasks(user_id: str, boards: BoardService, tasks: TaskService):
    user_boards = await boards.list_boards(user_id)
    return user_boards, await tasks.list_tasks_in_boards(b.id for b in user_boards)


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    circumference: float = Query(DEFAULT_CIRCUMFERENCE, gt=0),
    current_user: CurrentUser = Depends(get_current_user),
    boards: BoardService = Depends(get_board_service),
    tasks: TaskService = Depends(get_task_service),
):
    """Status totals overall and per board, plus the donut arc layout."""
    user_boards, user_tasks = await _user_tasks(current_user.user_id, boards, tasks)
    overall = aggregation.counts_by_status(user_tasks)
    return SummaryResponse(
        board_count=len(user_boards),
        overall=overall,
        by_board=aggregation.counts_by_board(user_boards, user_tasks),
        donut=aggregation.donut_segments(overall, circumference),
    )


@router.get("/calendar", response_model=List[CalendarDay])
async def get_month(
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
    current_user: CurrentUser = Depends(get_current_user),
    boards: BoardService = Depends(get_board_service),
    tasks: TaskService = Depends(get_task_service),
    calendar: CalendarService = Depends(get_calendar_service),
):
    """Sunday-first month grid with task and target counts per day."""
    _, user_tasks = await _user_tasks(current_user.user_id, boards, tasks)
    task_counts: Dict[str, int] = aggregation.tasks_by_day(user_tasks)
    target_counts = aggregation.targets_by_day(await calendar.list_targets(current_user.user_id))

    grid = []
    for day in aggregation.month_grid(year, month):
        if day is None:
            grid.append(CalendarDay())
            continue
        key = aggregation.date_key(day)
        grid.append(CalendarDay(
            date=key,
            task_count=task_counts.get(key, 0),
            target_count=target_counts.get(key, 0),
        ))
    return grid


@router.get("/calendar/{day}", response_model=DayDetail)
async def get_day(
    day: date,
    current_user: CurrentUser = Depends(get_current_user),
    boards: BoardService = Depends(get_board_service),
    tasks: TaskService = Depends(get_task_service),
    calendar: CalendarService = Depends(get_calendar_service),
):
    """Tasks created and targets pinned on one local day."""
    _, user_tasks = await _user_tasks(current_user.user_id, boards, tasks)
    targets = await calendar.list_targets(current_user.user_id)
    return DayDetail(
        date=aggregation.date_key(day),
        tasks=aggregation.tasks_on_date(user_tasks, day),
        targets=aggregation.targets_on_date(targets, day),
    )


@router.post("/calendar/targets", response_model=CalendarTarget, status_code=status.HTTP_201_CREATED)
async def create_target(
    target: TargetCreate,
    current_user: CurrentUser = Depends(get_current_user),
    calendar: CalendarService = Depends(get_calendar_service),
):
    return await calendar.create_target(current_user.user_id, target.text, target.date)


@router.patch("/calendar/targets/{target_id}", response_model=CalendarTarget)
async def edit_target(
    target_id: str,
    target: TargetUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    calendar: CalendarService = Depends(get_calendar_service),
):
    return await calendar.edit_target(target_id, current_user.user_id, target.text)


@router.delete("/calendar/targets/{target_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_target(
    target_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    calendar: CalendarService = Depends(get_calendar_service),
):
    await calendar.delete_target(target_id, current_user.user_id)
