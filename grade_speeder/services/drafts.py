"""
Draft/sync reconciliation.

Every student in the loaded submission set gets one DraftState: the value
last received from (or pushed to) Canvas sits in the ``base_*`` fields, the
grader's edits in the plain fields. Dirty flags are derived from those pairs
by ``recompute_dirty`` after every mutation; the rubric flag is the one
exception, it is sticky from the first edit until reconciliation or clear.
"""
import logging
import math
from typing import Any, Iterable, Literal, Optional

from pydantic import ValidationError

from grade_speeder.core.config import RECONCILE_ADVANCES_ALL_BASES
from grade_speeder.schemas.draft import DraftState, DraftStats
from grade_speeder.schemas.submission import SubmissionRecord, SubmissionStatus
from grade_speeder.schemas.sync import SubmissionUpdate, SyncResult

logger = logging.getLogger(__name__)

# highest priority first
STATUS_PRECEDENCE: tuple[SubmissionStatus, ...] = ("excused", "missing", "late")

INVALID_GRADE = object()

Drafts = dict[int, DraftState]


def derive_status(record: SubmissionRecord) -> SubmissionStatus:
    for status in STATUS_PRECEDENCE:
        if getattr(record, status):
            return status
    return "none"


def parse_grade(raw: Any) -> Any:
    """
    Returns a float, None for an empty input, or INVALID_GRADE.
    Invalid keystrokes are dropped quietly rather than raised.
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        return INVALID_GRADE
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        if raw.strip() == "":
            return None
        try:
            value = float(raw)
        except ValueError:
            return INVALID_GRADE
    else:
        return INVALID_GRADE

    if not math.isfinite(value):
        return INVALID_GRADE
    return value


def recompute_dirty(draft: DraftState) -> DraftState:
    grade_dirty = draft.grade != draft.base_grade
    comment_dirty = draft.comment != draft.base_comment
    status_dirty = draft.status != draft.base_status
    return draft.model_copy(
        update={
            "grade_dirty": grade_dirty,
            "comment_dirty": comment_dirty,
            "status_dirty": status_dirty,
            "synced": not (grade_dirty or comment_dirty or status_dirty or draft.rubric_comments_dirty),
        }
    )


def create_initial_drafts(submissions: Iterable[SubmissionRecord]) -> Drafts:
    drafts: Drafts = {}
    for sub in submissions:
        status = derive_status(sub)
        rubric_comments = {
            criterion_id: assessment.comments or ""
            for criterion_id, assessment in sub.rubric_assessments.items()
        }
        # existing remote comments are displayed separately, the editable comment starts empty
        drafts[sub.user_id] = DraftState(
            grade=sub.score,
            base_grade=sub.score,
            comment="",
            base_comment="",
            status=status,
            base_status=status,
            rubric_comments=dict(rubric_comments),
            base_rubric_comments=dict(rubric_comments),
        )
    return drafts


def _reset_to_base(draft: DraftState) -> DraftState:
    return draft.model_copy(
        update={
            "grade": draft.base_grade,
            "comment": draft.base_comment,
            "status": draft.base_status,
            "rubric_comments": dict(draft.base_rubric_comments),
            "grade_dirty": False,
            "comment_dirty": False,
            "status_dirty": False,
            "rubric_comments_dirty": False,
            "synced": True,
        }
    )


def build_updates(drafts: Drafts, submissions: Iterable[SubmissionRecord]) -> list[SubmissionUpdate]:
    """
    One update per loaded submission that has a draft, dirty or not.
    Callers narrow it with ``pending_updates`` so that "nothing to sync"
    and "no drafts at all" stay distinguishable.
    """
    updates = []
    for sub in submissions:
        draft = drafts.get(sub.user_id)
        if draft is None:
            continue
        updates.append(
            SubmissionUpdate(
                user_id=sub.user_id,
                grade_changed=draft.grade_dirty,
                new_grade=draft.grade,
                comment_changed=draft.comment_dirty,
                new_comment=draft.comment,
                status_changed=draft.status_dirty,
                new_status=draft.status,
                rubric_comments_changed=draft.rubric_comments_dirty,
                new_rubric_comments=dict(draft.rubric_comments),
            )
        )
    return updates


def pending_updates(updates: Iterable[SubmissionUpdate]) -> list[SubmissionUpdate]:
    return [u for u in updates if u.has_changes]


def _as_sent(user_id: int, draft: DraftState) -> SubmissionUpdate:
    return SubmissionUpdate(
        user_id=user_id,
        grade_changed=True,
        new_grade=draft.grade,
        comment_changed=True,
        new_comment=draft.comment,
        status_changed=True,
        new_status=draft.status,
        rubric_comments_changed=True,
        new_rubric_comments=dict(draft.rubric_comments),
    )


def _advance(draft: DraftState, sent: SubmissionUpdate, advance_all_bases: bool) -> DraftState:
    changes: dict[str, Any] = {}
    if sent.grade_changed:
        changes["base_grade"] = sent.new_grade
    if sent.comment_changed:
        changes["base_comment"] = sent.new_comment or ""

    rubric_dirty = draft.rubric_comments_dirty
    if advance_all_bases:
        if sent.status_changed and sent.new_status:
            changes["base_status"] = sent.new_status
        if sent.rubric_comments_changed:
            pushed = dict(sent.new_rubric_comments or {})
            changes["base_rubric_comments"] = pushed
            rubric_dirty = draft.rubric_comments != pushed
    changes["rubric_comments_dirty"] = rubric_dirty

    return recompute_dirty(draft.model_copy(update=changes))


def reconcile(
    drafts: Drafts,
    results: Iterable[SyncResult],
    advance_all_bases: bool = RECONCILE_ADVANCES_ALL_BASES,
    updates: Optional[Iterable[SubmissionUpdate]] = None,
) -> Drafts:
    """
    Advance bases for every successful result to the values that were
    actually pushed, taken from ``updates``. An edit made while the push was
    in flight therefore stays dirty. Without ``updates`` the values held now
    are taken as the pushed ones. Failed results are left exactly as they
    were so the next flush retries them.

    With ``advance_all_bases`` off only grade and comment bases move. Status
    dirtiness is then still derived from (status, base_status), and the
    rubric flag keeps its value, so both are sent again on the next flush.
    """
    sent = {u.user_id: u for u in updates or []}
    next_drafts = dict(drafts)
    for result in results:
        if not result.success:
            continue
        current = next_drafts.get(result.user_id)
        if current is None:
            continue

        pushed = sent.get(result.user_id)
        if pushed is None:
            pushed = _as_sent(result.user_id, current)
        next_drafts[result.user_id] = _advance(current, pushed, advance_all_bases)
    return next_drafts


def compute_stats(drafts: Drafts, submissions: list[SubmissionRecord]) -> DraftStats:
    graded = 0
    dirty = 0
    for sub in submissions:
        draft = drafts.get(sub.user_id)
        if draft is None:
            continue
        if draft.grade is not None:
            graded += 1
        if draft.dirty:
            dirty += 1

    return DraftStats(
        total=len(submissions),
        with_submission=sum(1 for s in submissions if s.has_submission),
        graded=graded,
        dirty=dirty,
    )


def rubric_rating_stats(submissions: Iterable[SubmissionRecord]) -> dict[str, dict[str, int]]:
    """criterion id -> rating id -> number of students who got that rating"""
    stats: dict[str, dict[str, int]] = {}
    for sub in submissions:
        for criterion_id, assessment in sub.rubric_assessments.items():
            if not assessment.rating_id:
                continue
            per_rating = stats.setdefault(criterion_id, {})
            per_rating[assessment.rating_id] = per_rating.get(assessment.rating_id, 0) + 1
    return stats


class DraftStore:
    """
    The keyed draft map plus the submission set it was built from.

    Edits for a user id that is not loaded are no-ops and return False.
    """

    def __init__(
        self,
        submissions: Optional[list[SubmissionRecord]] = None,
        advance_all_bases: bool = RECONCILE_ADVANCES_ALL_BASES,
    ):
        self.submissions: list[SubmissionRecord] = list(submissions or [])
        self.drafts: Drafts = create_initial_drafts(self.submissions)
        self.advance_all_bases = advance_all_bases

    def get(self, user_id: int) -> Optional[DraftState]:
        return self.drafts.get(user_id)

    def submission(self, user_id: int) -> Optional[SubmissionRecord]:
        return next((s for s in self.submissions if s.user_id == user_id), None)

    def _apply(self, user_id: int, changes: dict[str, Any]) -> bool:
        current = self.drafts.get(user_id)
        if current is None:
            return False
        self.drafts[user_id] = recompute_dirty(current.model_copy(update=changes))
        return True

    # edits

    def set_grade(self, user_id: int, raw: Any) -> bool:
        if user_id not in self.drafts:
            return False
        grade = parse_grade(raw)
        if grade is INVALID_GRADE:
            return False
        return self._apply(user_id, {"grade": grade})

    def set_comment(self, user_id: int, text: str) -> bool:
        return self._apply(user_id, {"comment": text})

    def set_status(self, user_id: int, status: SubmissionStatus) -> bool:
        return self._apply(user_id, {"status": status})

    def set_rubric_comment(self, user_id: int, criterion_id: str, text: str) -> bool:
        current = self.drafts.get(user_id)
        if current is None:
            return False
        rubric_comments = {**current.rubric_comments, criterion_id: text}
        # any touch counts, no comparison against the base snapshot
        return self._apply(
            user_id,
            {"rubric_comments": rubric_comments, "rubric_comments_dirty": True},
        )

    def copy_to_group(self, source_user_id: int, field: Literal["grade", "comment"], value: Any) -> list[int]:
        """
        Push a grade or comment into every other member of the source
        student's group. Returns the user ids that were written.
        """
        source = self.submission(source_user_id)
        if source is None or source.group_id is None:
            return []

        if field == "grade":
            value = parse_grade(value)
            if value is None or value is INVALID_GRADE:
                return []
        else:
            value = "" if value is None else str(value)

        targets = [
            s.user_id
            for s in self.submissions
            if s.group_id == source.group_id and s.user_id != source_user_id
        ]
        return [user_id for user_id in targets if self._apply(user_id, {field: value})]

    # rollback

    def clear_all(self) -> None:
        self.drafts = {user_id: _reset_to_base(d) for user_id, d in self.drafts.items()}

    def clear_one(self, user_id: int) -> bool:
        current = self.drafts.get(user_id)
        if current is None:
            return False
        self.drafts[user_id] = _reset_to_base(current)
        return True

    # sync

    def updates(self) -> list[SubmissionUpdate]:
        return build_updates(self.drafts, self.submissions)

    def pending(self) -> list[SubmissionUpdate]:
        return pending_updates(self.updates())

    def reconcile(
        self,
        results: Iterable[SyncResult],
        updates: Optional[Iterable[SubmissionUpdate]] = None,
    ) -> None:
        self.drafts = reconcile(self.drafts, results, self.advance_all_bases, updates)

    # persistence

    def dirty_snapshot(self) -> dict[str, Any]:
        return {
            str(user_id): draft.model_dump(by_alias=True)
            for user_id, draft in self.drafts.items()
            if draft.dirty
        }

    def restore(self, saved: Any) -> int:
        """
        Overlay an autosave snapshot. Only entries that were dirty and whose
        student is still loaded are taken; bases stay the freshly fetched ones.
        """
        if not isinstance(saved, dict):
            return 0

        restored = 0
        for key, raw in saved.items():
            try:
                user_id = int(key)
                entry = DraftState.model_validate(raw)
            except (TypeError, ValueError, ValidationError):
                logger.debug("Discarding unreadable autosave entry %r", key)
                continue

            if user_id not in self.drafts or not entry.dirty:
                continue

            self._apply(
                user_id,
                {
                    "grade": entry.grade,
                    "comment": entry.comment,
                    "status": entry.status,
                    "rubric_comments": dict(entry.rubric_comments),
                    "rubric_comments_dirty": entry.rubric_comments_dirty,
                },
            )
            restored += 1
        return restored

    def stats(self) -> DraftStats:
        return compute_stats(self.drafts, self.submissions)
