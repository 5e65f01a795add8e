"""Task router: board columns, status moves and comments."""
from fastapi import APIRouter, Depends, status
from typing import Dict, List

from collabboard.middleware.auth import CurrentUser, get_current_user
from collabboard.routers.deps import get_task_service
from collabboard.schemas.task import CommentCreate, StatusUpdate, Task, TaskCreate
from collabboard.services.aggregation import group_by_status
from collabboard.services.task_service import TaskService

router = APIRouter(tags=["Tasks"])  # No prefix since main.py adds /api prefix


async def _task_for_member(service: TaskService, task_id: str, user_id: str) -> Task:
    """Load a task, failing unless the user belongs to its board."""
    task = await service.get_task(task_id)
    await service.boards.get_board_for_member(task.board_id, user_id)
    return task


@router.get("/boards/{board_id}/tasks", response_model=Dict[str, List[Task]])
async def list_board_tasks(
    board_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Tasks of a board split into the todo / progress / done columns."""
    await service.boards.get_board_for_member(board_id, current_user.user_id)
    columns = group_by_status(await service.list_board_tasks(board_id))
    return {status_.value: tasks for status_, tasks in columns.items()}


@router.post("/boards/{board_id}/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(
    board_id: str,
    task_data: TaskCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Add a task to the todo column."""
    return await service.create_task(board_id, task_data.text, current_user.user_id)


@router.get("/tasks/{task_id}", response_model=Task)
async def get_task(
    task_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    return await _task_for_member(service, task_id, current_user.user_id)


@router.patch("/tasks/{task_id}/status", response_model=Task)
async def update_status(
    task_id: str,
    update: StatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Move a task to another column."""
    await _task_for_member(service, task_id, current_user.user_id)
    return await service.set_status(task_id, update.status)


@router.post("/tasks/{task_id}/comments", response_model=Task, status_code=status.HTTP_201_CREATED)
async def add_comment(
    task_id: str,
    comment: CommentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    await _task_for_member(service, task_id, current_user.user_id)
    return await service.append_comment(
        task_id, comment.text, current_user.user_id, current_user.email or ""
    )


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    await _task_for_member(service, task_id, current_user.user_id)
    await service.delete_task(task_id)
