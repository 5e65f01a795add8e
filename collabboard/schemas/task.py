"""Task schemas for board columns and comments."""
from enum import Enum
from pydantic import BaseModel, Field
from typing import List

from collabboard.schemas.record import Record


class TaskStatus(str, Enum):
    """Board column a task sits in. Any status may follow any other."""
    TODO = "todo"
    PROGRESS = "progress"
    DONE = "done"


class Comment(Record):
    """Append-only comment embedded in a task."""
    text: str
    author_id: str
    author_email: str = ""
    created_at: int = 0


class Task(Record):
    """Task entity scoped to a board."""
    text: str
    status: TaskStatus = TaskStatus.TODO
    board_id: str
    creator_id: str
    created_at: int = 0
    comments: List[Comment] = Field(default_factory=list)


class TaskCreate(BaseModel):
    """Schema for adding a task to a board."""
    text: str = Field(..., max_length=1000)


class StatusUpdate(BaseModel):
    """Schema for moving a task to another column."""
    status: TaskStatus


class CommentCreate(BaseModel):
    """Schema for commenting on a task."""
    text: str = Field(..., max_length=2000)
