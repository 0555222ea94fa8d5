import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, Protocol

from grade_speeder.core.config import RECONCILE_ADVANCES_ALL_BASES
from grade_speeder.core.errors import SessionBusyError
from grade_speeder.schemas.draft import ActivePointer, FlushSummary, LoadSummary
from grade_speeder.schemas.history import HistoryChange
from grade_speeder.schemas.preferences import UiSettings
from grade_speeder.schemas.submission import SubmissionsResponse
from grade_speeder.services.drafts import DraftStore
from grade_speeder.services.local_state import LocalStateStore
from grade_speeder.services.sync_gateway import SyncGateway, count_results, summarize

logger = logging.getLogger(__name__)


class SubmissionSource(Protocol):
    def fetch_submissions(self) -> SubmissionsResponse: ...


class GradingSession:
    """
    One grader, one assignment at a time. Holds the last fetched submissions
    and the draft store built from them.

    Fetch and flush are guarded by a busy flag: a second trigger while one
    is in flight is refused, not queued.
    """

    def __init__(self, advance_all_bases: bool = RECONCILE_ADVANCES_ALL_BASES):
        self.advance_all_bases = advance_all_bases
        self.response: Optional[SubmissionsResponse] = None
        self.store = DraftStore(advance_all_bases=advance_all_bases)
        self.active = ActivePointer()
        self.loaded_at: Optional[datetime] = None
        self._busy = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self.response is not None

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    @contextmanager
    def _guard(self, action: str):
        if not self._busy.acquire(blocking=False):
            raise SessionBusyError(f"Cannot {action} while another fetch or sync is running")
        try:
            yield
        finally:
            self._busy.release()

    def load(self, source: SubmissionSource, local_state: LocalStateStore, ui_settings: UiSettings) -> LoadSummary:
        with self._guard("load submissions"):
            # a failed fetch raises here and leaves the previous state alone
            response = source.fetch_submissions()

            store = DraftStore(response.submissions, advance_all_bases=self.advance_all_bases)
            restored = store.restore(local_state.load_autosave())

            self.response = response
            self.store = store
            self.loaded_at = datetime.now(timezone.utc)
            self.active = self._initial_pointer(local_state, ui_settings)

        message = None
        if restored:
            message = f"Restored unsaved drafts for {restored} students"
        logger.info("Loaded %s submissions (%s drafts restored)", len(response.submissions), restored)

        return LoadSummary(
            total=len(response.submissions),
            restored=restored,
            message=message,
            active=self.active,
            loaded_at=self.loaded_at,
        )

    def _initial_pointer(self, local_state: LocalStateStore, ui_settings: UiSettings) -> ActivePointer:
        submissions = self.store.submissions
        if ui_settings.remember_session:
            saved = local_state.session_pointer()
            if (
                saved
                and saved.get("assignmentId") == self.response.assignment_id
                and self.store.submission(saved.get("activeUserId")) is not None
            ):
                field = saved.get("activeField")
                return ActivePointer(
                    user_id=saved["activeUserId"],
                    field=field if field in ("grade", "comment") else "grade",
                )

        return ActivePointer(user_id=submissions[0].user_id if submissions else None, field="grade")

    def set_active(
        self,
        pointer: ActivePointer,
        local_state: LocalStateStore,
        ui_settings: UiSettings,
    ) -> ActivePointer:
        self.active = pointer
        if ui_settings.remember_session and self.response and pointer.user_id is not None:
            local_state.save_session_pointer(
                {
                    "assignmentId": self.response.assignment_id,
                    "courseId": self.response.course_id,
                    "activeUserId": pointer.user_id,
                    "activeField": pointer.field,
                }
            )
        return self.active

    def flush(self, gateway: SyncGateway, local_state: LocalStateStore, max_history: int) -> FlushSummary:
        with self._guard("sync"):
            to_send = self.store.pending()
            if not to_send:
                return FlushSummary(message="No staged changes to sync")

            before = dict(self.store.drafts)
            sent = {u.user_id: u for u in to_send}
            results = gateway.push(to_send)
            self.store.reconcile(results, to_send)

        synced, failed = count_results(results)
        succeeded = [r.user_id for r in results if r.success]
        if succeeded:
            changes = []
            for user_id in succeeded:
                draft = before[user_id]
                update = sent[user_id]
                record = self.store.submission(user_id)
                changes.append(
                    HistoryChange(
                        user_id=user_id,
                        student_name=record.user_name if record else "Unknown",
                        old_grade=draft.base_grade,
                        new_grade=update.new_grade if update.grade_changed else draft.base_grade,
                        old_comment=draft.base_comment,
                        new_comment=(update.new_comment or "") if update.comment_changed else draft.base_comment,
                    )
                )
            plural = "s" if len(succeeded) != 1 else ""
            local_state.add_history(
                f"Pushed grades for {len(succeeded)} student{plural}", changes, max_history
            )

        self.autosave(local_state)
        return FlushSummary(results=results, synced=synced, failed=failed, message=summarize(results))

    def autosave(self, local_state: LocalStateStore) -> bool:
        """Snapshot dirty drafts; read-only with respect to the drafts themselves."""
        if not self.loaded:
            # keep the previous run's snapshot until a load has restored it
            return False
        snapshot = self.store.dirty_snapshot()
        local_state.save_autosave(snapshot)
        return bool(snapshot)
