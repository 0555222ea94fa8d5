from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from grade_speeder.schemas.assignment import RubricCriterion
from grade_speeder.schemas.base import CamelModel

SubmissionStatus = Literal["none", "late", "missing", "excused"]


class Attachment(CamelModel):
    id: int
    display_name: str
    content_type: str = ""
    size: int = 0
    is_pdf: bool = False
    local_view_url: Optional[str] = None


class SubmissionComment(CamelModel):
    id: int
    author_id: int = 0
    author_name: str = "Unknown"
    comment: str = ""
    created_at: Optional[datetime] = None


class RubricAssessment(CamelModel):
    rating_id: Optional[str] = None
    comments: Optional[str] = ""
    points: Optional[float] = None


class SubmissionRecord(CamelModel):
    user_id: int
    user_name: str
    sortable_name: Optional[str] = None
    group_id: Optional[int] = None
    group_name: Optional[str] = None

    has_submission: bool = False
    submitted_at: Optional[datetime] = None
    late: bool = False
    missing: bool = False
    excused: bool = False
    seconds_late: int = 0

    score: Optional[float] = None
    grade: Optional[str] = None

    attachments: list[Attachment] = Field(default_factory=list)
    existing_comments: list[SubmissionComment] = Field(default_factory=list)
    rubric_assessments: dict[str, RubricAssessment] = Field(default_factory=dict)


class LatePolicy(CamelModel):
    late_submission_deduction_enabled: bool
    late_submission_deduction: float = 0
    late_submission_interval: Literal["day", "hour"] = "day"
    late_submission_minimum_percent: float = 0


class SubmissionsResponse(CamelModel):
    submissions: list[SubmissionRecord]
    assignment_name: Optional[str] = None
    course_name: Optional[str] = None
    course_code: Optional[str] = None
    course_id: Optional[int] = None
    assignment_id: Optional[int] = None
    due_at: Optional[datetime] = None
    points_possible: Optional[float] = None
    late_policy: Optional[LatePolicy] = None
    has_groups: bool = False
    rubric: Optional[list[RubricCriterion]] = None
