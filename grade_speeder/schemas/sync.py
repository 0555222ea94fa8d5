from typing import Optional

from pydantic import Field

from grade_speeder.schemas.base import CamelModel
from grade_speeder.schemas.submission import SubmissionStatus


class SubmissionUpdate(CamelModel):
    user_id: int

    grade_changed: bool = False
    new_grade: Optional[float] = None

    comment_changed: bool = False
    new_comment: Optional[str] = None

    status_changed: bool = False
    new_status: Optional[SubmissionStatus] = None

    rubric_comments_changed: bool = False
    new_rubric_comments: Optional[dict[str, str]] = None

    @property
    def has_changes(self) -> bool:
        return (
            self.grade_changed
            or self.comment_changed
            or self.status_changed
            or self.rubric_comments_changed
        )


class SyncRequest(CamelModel):
    updates: list[SubmissionUpdate]


class SyncResult(CamelModel):
    user_id: int
    success: bool
    errors: list[str] = Field(default_factory=list)


class SyncResponse(CamelModel):
    results: list[SyncResult]
    synced: int
    failed: int
