import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from grade_speeder.core.config import DEFAULT_KEYBINDINGS
from grade_speeder.core.errors import MissingConfigurationError
from grade_speeder.schemas.config import PublicConfig, StoredConfig

logger = logging.getLogger(__name__)


class ConfigStore:
    """
    Connection settings persisted to one JSON file.

    Single local process, single user: no locking. The parsed record is
    cached after the first read and replaced on every update.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._cached: Optional[StoredConfig] = None

    def load(self) -> StoredConfig:
        if self._cached is not None:
            return self._cached

        if not self.path.exists():
            self._cached = StoredConfig()
            return self._cached

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            self._cached = self._normalize(raw)
        except (OSError, ValueError, ValidationError):
            logger.warning("Config file %s is unreadable, using defaults", self.path)
            self._cached = StoredConfig()

        return self._cached

    def _normalize(self, raw: dict[str, Any]) -> StoredConfig:
        cfg = StoredConfig.model_validate(raw)
        cfg.keybindings = {**DEFAULT_KEYBINDINGS, **cfg.keybindings}
        return cfg

    def public_view(self) -> PublicConfig:
        cfg = self.load()
        return PublicConfig(
            base_url=cfg.base_url,
            course_id=cfg.course_id,
            assignment_id=cfg.assignment_id,
            keybindings=cfg.keybindings,
            log_level=cfg.log_level,
            token_present=bool(cfg.access_token),
        )

    def update(self, changes: dict[str, Any]) -> PublicConfig:
        """
        Merge-on-write. Keys missing from `changes` are kept, an explicit
        None clears the field, any other value overwrites it.
        """
        current = self.load()
        data = current.model_dump()

        if "base_url" in changes:
            base_url = changes["base_url"] or ""
            data["base_url"] = base_url.strip().rstrip("/")

        for key in ("course_id", "assignment_id"):
            if key in changes:
                data[key] = changes[key]

        if "access_token" in changes:
            # empty string clears the token as well
            data["access_token"] = changes["access_token"] or None

        if changes.get("keybindings") is not None:
            data["keybindings"] = {
                **DEFAULT_KEYBINDINGS,
                **current.keybindings,
                **changes["keybindings"],
            }

        if changes.get("log_level"):
            data["log_level"] = changes["log_level"]

        updated = StoredConfig.model_validate(data)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(updated.model_dump(), indent=2), encoding="utf-8")
        self._cached = updated

        return self.public_view()

    def require(self) -> StoredConfig:
        cfg = self.load()
        if not cfg.base_url or not cfg.course_id or not cfg.assignment_id or not cfg.access_token:
            raise MissingConfigurationError(
                "Missing Canvas configuration. Please set baseUrl, courseId, assignmentId, and access token."
            )
        return cfg

    def require_course(self) -> StoredConfig:
        """Course-level routes (assignment listing) do not need an assignment id."""
        cfg = self.load()
        if not cfg.base_url or not cfg.course_id or not cfg.access_token:
            raise MissingConfigurationError(
                "Missing Canvas configuration. Please set baseUrl, courseId, and access token."
            )
        return cfg
