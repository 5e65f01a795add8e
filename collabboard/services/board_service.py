"""Board membership store: board records and who may see them."""
import logging
from typing import Callable, List, Optional

from collabboard.schemas.board import Board, Teammate
from collabboard.services.errors import (
    AuthorizationError,
    NotFoundError,
    PartialDeletionError,
    TransportError,
    ValidationError,
)
from collabboard.services.identity_service import IdentityDirectory
from collabboard.store.base import SERVER_TIMESTAMP, DocumentStore, FieldFilter, Subscription

logger = logging.getLogger(__name__)

BOARDS = "boards"
TASKS = "tasks"
DELETE_CONFIRMATION = "delete"


class BoardService:
    """Service class for board CRUD and membership changes."""

    def __init__(self, store: DocumentStore, directory: Optional[IdentityDirectory] = None):
        self.store = store
        self.directory = directory or IdentityDirectory(store)

    async def create_board(self, name: str, owner_id: str) -> Board:
        """Create a board owned by ``owner_id``, who becomes its only member."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Board name is required", {"field": "name"})
        if not owner_id:
            raise ValidationError("Board owner is required", {"field": "owner_id"})

        board_id = await self.store.create_document(BOARDS, {
            "name": name,
            "ownerId": owner_id,
            "members": [owner_id],
            "createdAt": SERVER_TIMESTAMP,
        })
        logger.info(f"Board {board_id} created by {owner_id}")
        return await self.get_board(board_id)

    async def get_board(self, board_id: str) -> Board:
        document = await self.store.get_document(BOARDS, board_id)
        if document is None:
            raise NotFoundError("Board not found", {"board_id": board_id})
        return Board.from_document(document)

    async def get_board_for_member(self, board_id: str, user_id: str) -> Board:
        """Fetch a board, failing unless ``user_id`` is one of its members."""
        board = await self.get_board(board_id)
        if not board.is_member(user_id):
            raise AuthorizationError("Not a board member", {"board_id": board_id})
        return board

    async def rename_board(self, board_id: str, new_name: str) -> Board:
        """Rename a board. Any member may rename; there is no owner check."""
        new_name = (new_name or "").strip()
        if not new_name:
            raise ValidationError("Board name is required", {"field": "name"})
        await self.store.update_document(BOARDS, board_id, {"name": new_name})
        return await self.get_board(board_id)

    async def delete_board(
        self,
        board_id: str,
        requester_id: str,
        confirmation_text: str,
        cascade: bool = False,
    ) -> None:
        """
        Delete a board after the owner re-typed "delete".

        By default only the board record goes away and its tasks are left
        orphaned. With ``cascade`` every task referencing the board is removed
        first; if that stops part way a PartialDeletionError says what is left.
        """
        board = await self.get_board(board_id)
        if requester_id != board.owner_id:
            raise AuthorizationError("Only the board owner can delete it", {"board_id": board_id})
        if (confirmation_text or "").strip().lower() != DELETE_CONFIRMATION:
            raise ValidationError(
                f'Type "{DELETE_CONFIRMATION}" to confirm',
                {"field": "confirmation_text"},
            )

        if cascade:
            await self._delete_board_tasks(board_id)

        await self._delete_record(board_id, cascade)
        logger.info(f"Board {board_id} deleted by {requester_id} (cascade={cascade})")

    async def _delete_board_tasks(self, board_id: str) -> None:
        tasks = await self.store.query(TASKS, [FieldFilter("boardId", "==", board_id)])
        remaining = [f"{TASKS}/{doc.id}" for doc in tasks]
        completed: List[str] = []
        for document in tasks:
            path = f"{TASKS}/{document.id}"
            try:
                await self.store.delete_document(TASKS, document.id)
            except TransportError as e:
                raise PartialDeletionError(
                    "Board deletion stopped while removing its tasks",
                    completed=completed,
                    remaining=remaining + [f"{BOARDS}/{board_id}"],
                    details={"reason": e.message},
                ) from e
            completed.append(path)
            remaining.remove(path)

    async def _delete_record(self, board_id: str, cascade: bool) -> None:
        try:
            await self.store.delete_document(BOARDS, board_id)
        except TransportError as e:
            if not cascade:
                raise
            raise PartialDeletionError(
                "Board tasks were removed but the board record remains",
                remaining=[f"{BOARDS}/{board_id}"],
                details={"reason": e.message},
            ) from e

    async def add_member(self, board_id: str, email: str) -> Board:
        """Invite the profile registered under ``email``. Re-inviting is a no-op."""
        await self.get_board(board_id)
        profile = await self.directory.find_by_email(email)
        await self.store.array_union(BOARDS, board_id, "members", profile.id)
        logger.info(f"User {profile.id} added to board {board_id}")
        return await self.get_board(board_id)

    async def remove_member(self, board_id: str, member_id: str, requester_id: str) -> Board:
        """Owner-only removal of another member."""
        board = await self.get_board(board_id)
        if requester_id != board.owner_id:
            raise AuthorizationError("Only the board owner can remove members", {"board_id": board_id})
        if member_id == requester_id:
            raise ValidationError("You cannot remove yourself from the board", {"field": "member_id"})
        await self.store.array_remove(BOARDS, board_id, "members", member_id)
        logger.info(f"User {member_id} removed from board {board_id}")
        return await self.get_board(board_id)

    async def list_members(self, board_id: str) -> List[Teammate]:
        board = await self.get_board(board_id)
        emails = await self.directory.resolve_emails(board.members)
        return [Teammate(uid=uid, email=emails[uid]) for uid in board.members]

    async def list_boards(self, user_id: str) -> List[Board]:
        documents = await self.store.query(BOARDS, [FieldFilter("members", "array-contains", user_id)])
        return [Board.from_document(doc) for doc in documents]

    def subscribe_boards(
        self,
        user_id: str,
        on_change: Callable[[List[Board]], None],
        on_error=None,
    ) -> Subscription:
        """Live list of the boards ``user_id`` is a member of."""
        return self.store.subscribe(
            BOARDS,
            [FieldFilter("members", "array-contains", user_id)],
            lambda docs: on_change([Board.from_document(doc) for doc in docs]),
            on_error,
        )
