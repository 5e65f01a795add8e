"""Dependencies shared by the routers."""
from fastapi import Depends, Request

from collabboard.services.board_service import BoardService
from collabboard.services.calendar_service import CalendarService
from collabboard.services.chat_service import ChatService
from collabboard.services.identity_service import IdentityDirectory
from collabboard.services.task_service import TaskService
from collabboard.store.base import DocumentStore


def get_store(request: Request) -> DocumentStore:
    """The process-wide document store created at startup."""
    return request.app.state.store


def get_directory(store: DocumentStore = Depends(get_store)) -> IdentityDirectory:
    return IdentityDirectory(store)


def get_board_service(
    store: DocumentStore = Depends(get_store),
    directory: IdentityDirectory = Depends(get_directory),
) -> BoardService:
    return BoardService(store, directory)


def get_task_service(
    store: DocumentStore = Depends(get_store),
    boards: BoardService = Depends(get_board_service),
) -> TaskService:
    return TaskService(store, boards)


def get_calendar_service(store: DocumentStore = Depends(get_store)) -> CalendarService:
    return CalendarService(store)


def get_chat_service(
    store: DocumentStore = Depends(get_store),
    directory: IdentityDirectory = Depends(get_directory),
) -> ChatService:
    return ChatService(store, directory)
