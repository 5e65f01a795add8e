"""Realtime router: WebSocket streams of board tasks and chat messages."""
from fastapi import APIRouter, WebSocket, status

from collabboard.middleware.auth import websocket_identity
from collabboard.services.board_service import BoardService
from collabboard.services.chat_service import ChatService
from collabboard.services.errors import CollabError
from collabboard.services.task_service import TaskService
from collabboard.ws.websocket_handler import websocket_handler

router = APIRouter(tags=["Realtime"])


def board_membership_watch(boards: BoardService, board_id: str, user_id: str):
    """Revoke the stream once ``user_id`` is removed from the board or the board is deleted."""
    def watch(on_revoked):
        def check(member_boards):
            if all(board.id != board_id for board in member_boards):
                on_revoked()
        return boards.subscribe_boards(user_id, check)
    return watch


def conversation_watch(chat: ChatService, conversation_id: str, user_id: str):
    """Revoke the stream once the conversation is deleted."""
    def watch(on_revoked):
        def check(conversations):
            if all(conversation.id != conversation_id for conversation in conversations):
                on_revoked()
        return chat.subscribe_conversations(user_id, check)
    return watch


@router.websocket("/ws/boards/{board_id}/tasks")
async def board_tasks_stream(websocket: WebSocket, board_id: str):
    """Live task list of a board, for its members. Authenticate with ``?token=``."""
    user = websocket_identity(websocket)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    store = websocket.app.state.store
    tasks = TaskService(store, BoardService(store))
    try:
        await tasks.boards.get_board_for_member(board_id, user.user_id)
    except CollabError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await websocket_handler.stream(
        websocket,
        f"board:{board_id}",
        lambda on_change, on_error: tasks.subscribe_board_tasks(board_id, on_change, on_error),
        board_membership_watch(tasks.boards, board_id, user.user_id),
    )


@router.websocket("/ws/chats/{conversation_id}/messages")
async def chat_messages_stream(websocket: WebSocket, conversation_id: str):
    """Live, ordered message list of a conversation, for its two participants."""
    user = websocket_identity(websocket)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    chat = ChatService(websocket.app.state.store)
    conversation = await chat.get_conversation(conversation_id)
    if conversation is None or user.user_id not in conversation.participants:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await websocket_handler.stream(
        websocket,
        f"chat:{conversation_id}",
        lambda on_change, on_error: chat.subscribe_messages(conversation_id, on_change, on_error),
        conversation_watch(chat, conversation_id, user.user_id),
    )
