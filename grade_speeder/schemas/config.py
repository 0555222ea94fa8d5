from typing import Literal, Optional

from pydantic import BaseModel, Field

from grade_speeder.core.config import DEFAULT_KEYBINDINGS, LOG_LEVEL
from grade_speeder.schemas.base import CamelModel

LogLevel = Literal["debug", "info", "warn", "error"]


def _default_log_level() -> str:
    return LOG_LEVEL if LOG_LEVEL in ("debug", "info", "warn", "error") else "info"


class StoredConfig(BaseModel):
    # on-disk shape, never returned to the browser
    base_url: str = ""
    course_id: Optional[int] = None
    assignment_id: Optional[int] = None
    access_token: Optional[str] = None
    keybindings: dict[str, list[str]] = Field(default_factory=lambda: dict(DEFAULT_KEYBINDINGS))
    log_level: LogLevel = Field(default_factory=_default_log_level)


class PublicConfig(CamelModel):
    base_url: str
    course_id: Optional[int] = None
    assignment_id: Optional[int] = None
    keybindings: dict[str, list[str]]
    log_level: LogLevel
    token_present: bool


class ConfigUpdate(CamelModel):
    base_url: Optional[str] = None
    course_id: Optional[int] = None
    assignment_id: Optional[int] = None
    access_token: Optional[str] = None
    keybindings: Optional[dict[str, list[str]]] = None
    log_level: Optional[LogLevel] = None
