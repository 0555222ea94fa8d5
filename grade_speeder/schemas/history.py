from datetime import datetime
from typing import Optional

from pydantic import Field

from grade_speeder.schemas.base import CamelModel


class HistoryChange(CamelModel):
    user_id: int
    student_name: str
    old_grade: Optional[float] = None
    new_grade: Optional[float] = None
    old_comment: str = ""
    new_comment: str = ""


class HistoryEntry(CamelModel):
    id: str
    timestamp: datetime
    summary: str
    changes: list[HistoryChange] = Field(default_factory=list)
