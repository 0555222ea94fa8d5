from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import Field

from grade_speeder.schemas.base import CamelModel
from grade_speeder.schemas.submission import SubmissionRecord, SubmissionStatus
from grade_speeder.schemas.sync import SyncResult

ActiveField = Literal["grade", "comment"]


class DraftState(CamelModel):
    grade: Optional[float] = None
    base_grade: Optional[float] = None
    comment: str = ""
    base_comment: str = ""
    status: SubmissionStatus = "none"
    base_status: SubmissionStatus = "none"
    rubric_comments: dict[str, str] = Field(default_factory=dict)
    base_rubric_comments: dict[str, str] = Field(default_factory=dict)

    grade_dirty: bool = False
    comment_dirty: bool = False
    status_dirty: bool = False
    rubric_comments_dirty: bool = False
    synced: bool = True

    @property
    def dirty(self) -> bool:
        return self.grade_dirty or self.comment_dirty or self.status_dirty or self.rubric_comments_dirty


class DraftStats(CamelModel):
    total: int
    with_submission: int
    graded: int
    dirty: int


class DraftEdit(CamelModel):
    """PATCH body; only the keys that are present are applied."""

    grade: Union[float, str, None] = None
    comment: Optional[str] = None
    status: Optional[SubmissionStatus] = None
    criterion_id: Optional[str] = None
    rubric_comment: Optional[str] = None


class CopyToGroupRequest(CamelModel):
    field: Literal["grade", "comment"]
    value: Union[float, str, None] = None


class ActivePointer(CamelModel):
    user_id: Optional[int] = None
    field: ActiveField = "grade"


class LoadSummary(CamelModel):
    total: int
    restored: int
    message: Optional[str] = None
    active: ActivePointer
    loaded_at: datetime


class FlushSummary(CamelModel):
    results: list[SyncResult] = Field(default_factory=list)
    synced: int = 0
    failed: int = 0
    message: str


class SessionView(CamelModel):
    loaded: bool
    busy: bool = False
    assignment_name: Optional[str] = None
    course_name: Optional[str] = None
    course_id: Optional[int] = None
    assignment_id: Optional[int] = None
    points_possible: Optional[float] = None
    has_groups: bool = False
    submissions: list[SubmissionRecord] = Field(default_factory=list)
    drafts: dict[int, DraftState] = Field(default_factory=dict)
    stats: DraftStats
    rubric_stats: dict[str, dict[str, int]] = Field(default_factory=dict)
    active: ActivePointer
    loaded_at: Optional[datetime] = None
