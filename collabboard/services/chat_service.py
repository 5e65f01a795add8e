"""
Chat Service

Direct messages between two teammates. Conversation ids are derived from
the participant pair, so connecting twice (from either side) lands in the
same conversation. Messages live in the ``chats/<id>/messages``
sub-collection and are ordered by the server clock.
"""

import logging
from enum import Enum
from typing import Callable, Iterable, List, Optional

from collabboard.schemas.chat import Conversation, Message
from collabboard.schemas.profile import normalize_email
from collabboard.services.errors import (
    NotFoundError,
    PartialDeletionError,
    TransportError,
    ValidationError,
)
from collabboard.services.identity_service import IdentityDirectory
from collabboard.store.base import SERVER_TIMESTAMP, DocumentStore, FieldFilter, Subscription

logger = logging.getLogger(__name__)

CHATS = "chats"
ID_SEPARATOR = "_"


def conversation_id_for(user_a: str, user_b: str) -> str:
    """Sorted-pair join: the same id whoever starts the conversation."""
    first, second = sorted([user_a, user_b])
    return f"{first}{ID_SEPARATOR}{second}"


def messages_path(conversation_id: str) -> str:
    return f"{CHATS}/{conversation_id}/messages"


def sort_messages(messages: Iterable[Message]) -> List[Message]:
    """Server time ascending; equal timestamps fall back to the document id."""
    return sorted(messages, key=lambda m: (m.created_at, m.id))


def mate_label(conversation: Optional[Conversation], self_id: str) -> Optional[str]:
    """What to call the other participant: name, then email, then a placeholder."""
    if conversation is None:
        return None
    mate = conversation.mate_of(self_id)
    if not mate:
        return None
    return (
        conversation.participant_names.get(mate)
        or conversation.participant_emails.get(mate)
        or "Conversation"
    )


class ChatService:
    """Service for conversations and their messages."""

    def __init__(self, store: DocumentStore, directory: Optional[IdentityDirectory] = None):
        self.store = store
        self.directory = directory or IdentityDirectory(store)

    async def connect(
        self,
        self_id: str,
        self_email: str,
        friend_email: str,
        friend_display_name: str,
    ) -> str:
        """
        Open (or reopen) the conversation with the profile behind ``friend_email``.

        Metadata is merge-written: each connect only touches the keys of the
        two participants, and never drops what the other side stored earlier.
        """
        friend_name = (friend_display_name or "").strip()
        if not normalize_email(friend_email) or not friend_name:
            raise ValidationError("Please enter an email and a name.", {"field": "friend_email"})

        friend = await self.directory.find_by_email(friend_email)
        if friend.id == self_id:
            raise ValidationError("You cannot start a chat with yourself.", {"field": "friend_email"})

        conversation_id = conversation_id_for(self_id, friend.id)
        own_email = normalize_email(self_email)

        # participantNames[x] is the name x's mate gave them; keep it if set
        names = {friend.id: friend_name}
        existing = await self.get_conversation(conversation_id)
        if existing is None or not existing.participant_names.get(self_id):
            names[self_id] = own_email or "Me"
        emails = {friend.id: friend.email}
        if own_email:
            emails[self_id] = own_email

        await self.store.set_document(
            CHATS,
            conversation_id,
            {
                "participants": sorted([self_id, friend.id]),
                "participantEmails": emails,
                "participantNames": names,
                "updatedAt": SERVER_TIMESTAMP,
            },
            merge=True,
        )
        logger.info(f"Conversation {conversation_id} connected by {self_id}")
        return conversation_id

    async def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        document = await self.store.get_document(CHATS, conversation_id)
        return Conversation.from_document(document) if document else None

    async def list_conversations(self, user_id: str) -> List[Conversation]:
        """Conversations of a user, most recently active first."""
        documents = await self.store.query(CHATS, [FieldFilter("participants", "array-contains", user_id)])
        conversations = [Conversation.from_document(doc) for doc in documents]
        return sorted(conversations, key=lambda c: c.updated_at or 0, reverse=True)

    async def send_message(self, conversation_id: str, sender_id: str, text: str) -> str:
        """
        Append a message stamped by the server clock; returns its id.

        The conversation must still exist: a deleted chat is not brought back
        by a late send from the other participant.
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message text is required", {"field": "text"})
        if await self.get_conversation(conversation_id) is None:
            raise NotFoundError("Conversation not found", {"conversation_id": conversation_id})
        message_id = await self.store.create_document(messages_path(conversation_id), {
            "senderId": sender_id,
            "text": text,
            "createdAt": SERVER_TIMESTAMP,
        })
        await self.store.update_document(CHATS, conversation_id, {"updatedAt": SERVER_TIMESTAMP})
        return message_id

    async def list_messages(self, conversation_id: str) -> List[Message]:
        documents = await self.store.query(messages_path(conversation_id))
        return sort_messages(Message.from_document(doc) for doc in documents)

    async def delete_conversation(self, conversation_id: str) -> None:
        """
        Delete every message, then the conversation record.

        The store has no cascading delete, so this is a batch of single
        deletions. Nothing deleted yet: the TransportError propagates as is.
        Anything deleted already: a PartialDeletionError lists what remains.
        """
        path = messages_path(conversation_id)
        documents = await self.store.query(path)
        remaining = [f"{path}/{doc.id}" for doc in documents] + [f"{CHATS}/{conversation_id}"]
        completed: List[str] = []

        for document in documents:
            await self._delete_step(path, document.id, completed, remaining)
        await self._delete_step(CHATS, conversation_id, completed, remaining)
        logger.info(f"Conversation {conversation_id} deleted with {len(documents)} messages")

    async def _delete_step(self, path: str, doc_id: str, completed: List[str], remaining: List[str]) -> None:
        target = f"{path}/{doc_id}"
        try:
            await self.store.delete_document(path, doc_id)
        except TransportError as e:
            if not completed:
                raise
            logger.error(f"Conversation deletion stopped at {target}: {e.message}")
            raise PartialDeletionError(
                "Conversation was only partly deleted",
                completed=completed,
                remaining=remaining,
                details={"reason": e.message},
            ) from e
        completed.append(target)
        remaining.remove(target)

    def subscribe_conversations(
        self,
        user_id: str,
        on_change: Callable[[List[Conversation]], None],
        on_error=None,
    ) -> Subscription:
        return self.store.subscribe(
            CHATS,
            [FieldFilter("participants", "array-contains", user_id)],
            lambda docs: on_change([Conversation.from_document(doc) for doc in docs]),
            on_error,
        )

    def subscribe_messages(
        self,
        conversation_id: str,
        on_change: Callable[[List[Message]], None],
        on_error=None,
    ) -> Subscription:
        return self.store.subscribe(
            messages_path(conversation_id),
            None,
            lambda docs: on_change(sort_messages(Message.from_document(doc) for doc in docs)),
            on_error,
        )


class ChatState(str, Enum):
    IDLE = "idle"
    CONVERSATION_SELECTED = "conversation_selected"


class ChatSession:
    """
    Chat state of one signed-in user.

    Holds the live conversation list and, while a conversation is selected,
    its live message list. Every subscription it opens is cancelled on
    deselect, deletion or ``close``.
    """

    def __init__(
        self,
        service: ChatService,
        user_id: str,
        user_email: str = "",
        on_update: Optional[Callable[["ChatSession"], None]] = None,
    ):
        self.service = service
        self.user_id = user_id
        self.user_email = user_email
        self.on_update = on_update
        self.state = ChatState.IDLE
        self.conversation_id: Optional[str] = None
        self.conversations: List[Conversation] = []
        self.messages: List[Message] = []
        self.draft = ""
        self.last_error: Optional[Exception] = None
        self._messages_subscription: Optional[Subscription] = None
        self._conversations_subscription = service.subscribe_conversations(
            user_id, self._on_conversations, self._on_error
        )

    def _changed(self) -> None:
        if self.on_update:
            self.on_update(self)

    def _on_conversations(self, conversations: List[Conversation]) -> None:
        self.conversations = conversations
        self._changed()

    def _on_messages(self, messages: List[Message]) -> None:
        self.messages = messages
        self._changed()

    def _on_error(self, error: TransportError) -> None:
        self.last_error = error
        self._changed()

    @property
    def current_conversation(self) -> Optional[Conversation]:
        if not self.conversation_id:
            return None
        return next((c for c in self.conversations if c.id == self.conversation_id), None)

    @property
    def current_mate_label(self) -> Optional[str]:
        return mate_label(self.current_conversation, self.user_id)

    async def connect(self, friend_email: str, friend_name: str) -> str:
        """Create the conversation; it shows up in the list, it is not auto-opened."""
        return await self.service.connect(self.user_id, self.user_email, friend_email, friend_name)

    def select(self, conversation_id: str) -> None:
        if self.conversation_id == conversation_id and self._messages_subscription:
            return
        self._cancel_messages()
        self.conversation_id = conversation_id
        self.state = ChatState.CONVERSATION_SELECTED
        self._messages_subscription = self.service.subscribe_messages(
            conversation_id, self._on_messages, self._on_error
        )

    def deselect(self) -> None:
        self._cancel_messages()
        self.conversation_id = None
        self.messages = []
        self.state = ChatState.IDLE
        self._changed()

    def _cancel_messages(self) -> None:
        if self._messages_subscription is not None:
            self._messages_subscription.unsubscribe()
            self._messages_subscription = None

    async def send(self, text: Optional[str] = None) -> Optional[str]:
        """
        Send ``text`` (or the current draft) to the selected conversation.

        The draft is cleared only after the store accepted the message, so a
        transport failure leaves it in place for a manual retry.
        """
        if self.state != ChatState.CONVERSATION_SELECTED:
            raise ValidationError("No conversation selected", {"field": "conversation_id"})
        if text is not None:
            self.draft = text
        try:
            message_id = await self.service.send_message(self.conversation_id, self.user_id, self.draft)
        except (TransportError, NotFoundError) as e:
            self.last_error = e
            raise
        self.draft = ""
        self.last_error = None
        return message_id

    async def delete_current(self) -> None:
        """Delete the selected conversation for both participants and go back to idle."""
        if self.state != ChatState.CONVERSATION_SELECTED:
            raise ValidationError("No conversation selected", {"field": "conversation_id"})
        conversation_id = self.conversation_id
        # stop listening first so the batch of deletions does not re-render each step
        self._cancel_messages()
        try:
            await self.service.delete_conversation(conversation_id)
        except TransportError:
            self._messages_subscription = self.service.subscribe_messages(
                conversation_id, self._on_messages, self._on_error
            )
            raise
        self.deselect()

    def close(self) -> None:
        self._cancel_messages()
        self._conversations_subscription.unsubscribe()
        self.state = ChatState.IDLE
