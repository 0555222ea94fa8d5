from datetime import datetime
from typing import Optional

from pydantic import Field

from grade_speeder.schemas.base import CamelModel


class RubricRating(CamelModel):
    id: str
    description: str = ""
    long_description: Optional[str] = None
    points: float = 0


class RubricCriterion(CamelModel):
    id: str
    description: str = ""
    short_description: Optional[str] = None
    long_description: Optional[str] = None
    points: float = 0
    ratings: list[RubricRating] = Field(default_factory=list)


class AssignmentInfo(CamelModel):
    id: int
    name: str
    due_at: Optional[datetime] = None
    points_possible: Optional[float] = None
    module_name: Optional[str] = None
    submission_count: int = 0
    graded_count: int = 0


class AssignmentsResponse(CamelModel):
    assignments: list[AssignmentInfo]
    course_id: Optional[int] = None


class AssignmentDetails(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    due_at: Optional[datetime] = None
    points_possible: Optional[float] = None
    rubric: Optional[list[RubricCriterion]] = None
    submission_types: list[str] = Field(default_factory=list)
