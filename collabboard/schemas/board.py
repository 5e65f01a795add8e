"""Board schemas."""
from pydantic import BaseModel, EmailStr, Field
from typing import List

from collabboard.schemas.record import Record


class Board(Record):
    """A shared board. The owner is always one of ``members``."""
    name: str
    owner_id: str
    members: List[str] = Field(default_factory=list)
    created_at: int = 0

    def is_member(self, user_id: str) -> bool:
        return user_id in self.members


class BoardCreate(BaseModel):
    """Schema for creating a board."""
    name: str = Field(..., max_length=200)


class BoardRename(BaseModel):
    """Schema for renaming a board."""
    name: str = Field(..., max_length=200)


class BoardDelete(BaseModel):
    """Owner-confirmed deletion; ``confirmation`` must read "delete"."""
    confirmation: str
    cascade: bool = False


class MemberInvite(BaseModel):
    """Invite a teammate by the email of their profile."""
    email: EmailStr


class Teammate(BaseModel):
    """Resolved board member."""
    uid: str
    email: str
