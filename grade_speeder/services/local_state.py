import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from grade_speeder.core.config import (
    AUTOSAVE_KEY,
    DARK_MODE_KEY,
    HISTORY_KEY,
    SESSION_KEY,
    UI_SETTINGS_KEY,
)
from grade_speeder.models.local_state import LocalStateEntry
from grade_speeder.schemas.history import HistoryChange, HistoryEntry
from grade_speeder.schemas.preferences import UiSettings

logger = logging.getLogger(__name__)


class LocalStateStore:
    """
    JSON blobs under fixed keys. Reads never fail: a missing or corrupt
    value gives back the caller's default.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_json(self, key: str, default: Any = None) -> Any:
        entry = self.db.get(LocalStateEntry, key)
        if entry is None:
            return default
        try:
            return json.loads(entry.value)
        except ValueError:
            logger.debug("Ignoring corrupt local state %s", key)
            return default

    def set_json(self, key: str, value: Any) -> None:
        encoded = json.dumps(value)
        entry = self.db.get(LocalStateEntry, key)
        if entry is None:
            self.db.add(LocalStateEntry(key=key, value=encoded))
        else:
            entry.value = encoded

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def delete(self, key: str) -> None:
        entry = self.db.get(LocalStateEntry, key)
        if entry is None:
            return
        self.db.delete(entry)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # autosave

    def load_autosave(self) -> dict[str, Any]:
        saved = self.get_json(AUTOSAVE_KEY, {})
        return saved if isinstance(saved, dict) else {}

    def save_autosave(self, snapshot: dict[str, Any]) -> None:
        if snapshot:
            self.set_json(AUTOSAVE_KEY, snapshot)
        else:
            self.delete(AUTOSAVE_KEY)

    # preferences

    def ui_settings(self) -> UiSettings:
        raw = self.get_json(UI_SETTINGS_KEY, {})
        try:
            return UiSettings.model_validate(raw if isinstance(raw, dict) else {})
        except ValidationError:
            return UiSettings()

    def update_ui_settings(self, changes: dict[str, Any]) -> UiSettings:
        # accept camelCase or snake_case keys
        names = {}
        for name, field in UiSettings.model_fields.items():
            names[name] = name
            if field.alias:
                names[field.alias] = name

        current = self.ui_settings().model_dump()
        for key, value in changes.items():
            if key in names:
                current[names[key]] = value

        settings = UiSettings.model_validate(current)
        self.set_json(UI_SETTINGS_KEY, settings.model_dump(by_alias=True))
        return settings

    def dark_mode(self) -> bool:
        return self.get_json(DARK_MODE_KEY, False) is True

    def set_dark_mode(self, enabled: bool) -> None:
        self.set_json(DARK_MODE_KEY, bool(enabled))

    # session pointer

    def session_pointer(self) -> Optional[dict[str, Any]]:
        pointer = self.get_json(SESSION_KEY)
        return pointer if isinstance(pointer, dict) else None

    def save_session_pointer(self, pointer: dict[str, Any]) -> None:
        self.set_json(SESSION_KEY, pointer)

    # history

    def history(self, max_entries: Optional[int] = None) -> list[HistoryEntry]:
        raw = self.get_json(HISTORY_KEY, [])
        if not isinstance(raw, list):
            return []

        entries = []
        for item in raw:
            try:
                entries.append(HistoryEntry.model_validate(item))
            except ValidationError:
                continue
        return entries[:max_entries] if max_entries else entries

    def add_history(self, summary: str, changes: list[HistoryChange], max_entries: int) -> HistoryEntry:
        entry = HistoryEntry(
            id=uuid.uuid4().hex,
            timestamp=datetime.now(timezone.utc),
            summary=summary,
            changes=changes,
        )
        # newest first
        entries = [entry] + self.history()
        self.set_json(
            HISTORY_KEY,
            [e.model_dump(mode="json", by_alias=True) for e in entries[:max_entries]],
        )
        return entry

    def clear_history(self) -> None:
        self.delete(HISTORY_KEY)
