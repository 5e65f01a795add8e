"""Board router: boards and their members."""
from fastapi import APIRouter, Depends, Query, status
from typing import List

from collabboard.middleware.auth import CurrentUser, get_current_user
from collabboard.routers.deps import get_board_service
from collabboard.schemas.board import Board, BoardCreate, BoardRename, MemberInvite, Teammate
from collabboard.services.board_service import BoardService

router = APIRouter(tags=["Boards"])  # No prefix since main.py adds /api prefix


@router.get("/boards", response_model=List[Board])
async def list_boards(
    current_user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
):
    """List every board the authenticated user is a member of."""
    return await service.list_boards(current_user.user_id)


@router.post("/boards", response_model=Board, status_code=status.HTTP_201_CREATED)
async def create_board(
    board_data: BoardCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
):
    """Create a board owned by the authenticated user."""
    return await service.create_board(board_data.name, current_user.user_id)


@router.get("/boards/{board_id}", response_model=Board)
async def get_board(
    board_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
):
    return await service.get_board_for_member(board_id, current_user.user_id)


@router.patch("/boards/{board_id}", response_model=Board)
async def rename_board(
    board_id: str,
    board_data: BoardRename,
    current_user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
):
    """Rename a board; any member may do this."""
    await service.get_board_for_member(board_id, current_user.user_id)
    return await service.rename_board(board_id, board_data.name)


@router.delete("/boards/{board_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_board(
    board_id: str,
    confirmation: str = Query(..., description='Must read "delete"'),
    cascade: bool = Query(False, description="Also delete the board's tasks"),
    current_user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
):
    """Delete a board (owner only, confirmed by typing "delete")."""
    await service.delete_board(board_id, current_user.user_id, confirmation, cascade=cascade)


@router.get("/boards/{board_id}/members", response_model=List[Teammate])
async def list_members(
    board_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
):
    await service.get_board_for_member(board_id, current_user.user_id)
    return await service.list_members(board_id)


@router.post("/boards/{board_id}/members", response_model=Board)
async def invite_member(
    board_id: str,
    invite: MemberInvite,
    current_user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
):
    """Add a teammate by email. Any member may invite."""
    await service.get_board_for_member(board_id, current_user.user_id)
    return await service.add_member(board_id, invite.email)


@router.delete("/boards/{board_id}/members/{member_id}", response_model=Board)
async def remove_member(
    board_id: str,
    member_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
):
    """Remove a teammate (board owner only)."""
    return await service.remove_member(board_id, member_id, current_user.user_id)
