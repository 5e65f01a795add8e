"""Calendar target schemas."""
from datetime import date as date_type
from pydantic import BaseModel, Field

from collabboard.schemas.record import Record


class CalendarTarget(Record):
    """Personal goal pinned to a local calendar date ("YYYY-MM-DD")."""
    text: str
    date: str
    owner_id: str
    created_at: int = 0


class TargetCreate(BaseModel):
    """Schema for pinning a target to a date."""
    text: str = Field(..., max_length=500)
    date: date_type


class TargetUpdate(BaseModel):
    """Schema for editing a target's text."""
    text: str = Field(..., max_length=500)
