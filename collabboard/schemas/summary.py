"""Derived view schemas produced by the aggregation engine."""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from collabboard.schemas.board import Board


class StatusPercentages(BaseModel):
    todo: int
    progress: int
    done: int


class StatusCounts(BaseModel):
    """Per-status totals. ``percentages`` is None when there are no tasks."""
    todo: int = 0
    progress: int = 0
    done: int = 0
    total: int = 0
    percentages: Optional[StatusPercentages] = None


class BoardCounts(StatusCounts):
    board: Board


class DonutSegment(BaseModel):
    """One arc of the status donut, drawn as a dash of ``length`` at ``offset``."""
    status: str
    length: float
    offset: float


class WorkspaceSummary(BaseModel):
    """Everything the summary and calendar views render for one user."""
    board_count: int = 0
    overall: StatusCounts = Field(default_factory=StatusCounts)
    by_board: List[BoardCounts] = Field(default_factory=list)
    tasks_by_day: Dict[str, int] = Field(default_factory=dict)
    targets_by_day: Dict[str, int] = Field(default_factory=dict)
