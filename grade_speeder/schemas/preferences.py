from typing import Literal, Optional

from pydantic import Field

from grade_speeder.schemas.base import CamelModel


class CommentSnippet(CamelModel):
    id: str
    label: str
    text: str


class UiSettings(CamelModel):
    # Workflow
    remember_session: bool = True
    default_pdf_zoom: Literal["fit-width", "75", "100", "125", "150"] = "100"
    auto_focus_field: Literal["grade", "comment", "none"] = "grade"

    # Display
    student_name_format: Literal["first-last", "last-first"] = "first-last"
    show_score_percentage: bool = True
    comment_box_height: Literal["small", "medium", "large"] = "medium"

    # Notifications (ms, 0 = off)
    toast_duration: int = 5000

    # Grading stats panel
    show_grading_timer: bool = True
    show_progress_bar: bool = True
    show_avg_time_per_student: bool = True
    show_grading_speed: bool = True

    # Data
    max_history_entries: int = Field(default=50, ge=1)

    comment_snippets: list[CommentSnippet] = Field(default_factory=list)

    demo_mode: bool = False


class Preferences(CamelModel):
    ui_settings: UiSettings
    dark_mode: bool = False


class PreferencesUpdate(CamelModel):
    ui_settings: Optional[dict] = None
    dark_mode: Optional[bool] = None
