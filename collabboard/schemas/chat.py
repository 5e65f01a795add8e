"""Direct-message schemas."""
from pydantic import BaseModel, EmailStr, Field
from typing import Dict, List, Optional

from collabboard.schemas.record import Record


class Conversation(Record):
    """Pairwise conversation; ``id`` is derived from the two participants."""
    participants: List[str] = Field(default_factory=list)
    participant_emails: Dict[str, str] = Field(default_factory=dict)
    participant_names: Dict[str, str] = Field(default_factory=dict)
    updated_at: Optional[int] = None

    def mate_of(self, user_id: str) -> Optional[str]:
        others = [uid for uid in self.participants if uid != user_id]
        return others[0] if others else None


class Message(Record):
    """Immutable chat message; ``created_at`` comes from the server clock."""
    sender_id: str
    text: str
    created_at: int = 0


class ConnectRequest(BaseModel):
    """Start (or reopen) a conversation with a teammate."""
    friend_email: EmailStr
    friend_name: str = Field(..., max_length=100)


class ConnectResponse(BaseModel):
    conversation_id: str


class MessageCreate(BaseModel):
    """Schema for sending a message."""
    text: str = Field(..., max_length=5000)
