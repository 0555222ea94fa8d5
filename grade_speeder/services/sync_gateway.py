import logging
from typing import Iterable, Optional, Protocol

from grade_speeder.core.config import SYNC_FAILED_MESSAGE
from grade_speeder.core.errors import RemoteAPIError
from grade_speeder.schemas.sync import SubmissionUpdate, SyncResult

logger = logging.getLogger(__name__)


class SubmissionWriter(Protocol):
    def update_submission(self, user_id: int, form: dict[str, str]) -> None: ...


def format_grade(grade: Optional[float]) -> str:
    # empty posted_grade clears the grade on Canvas
    if grade is None:
        return ""
    if float(grade).is_integer():
        return str(int(grade))
    return str(grade)


def build_payload(update: SubmissionUpdate) -> dict[str, str]:
    """Form fields for the keys whose changed-flag is set, nothing else."""
    payload: dict[str, str] = {}

    if update.grade_changed:
        payload["submission[posted_grade]"] = format_grade(update.new_grade)

    if update.comment_changed:
        payload["comment[text_comment]"] = update.new_comment or ""

    if update.status_changed and update.new_status:
        if update.new_status == "excused":
            payload["submission[excuse]"] = "true"
        else:
            payload["submission[excuse]"] = "false"
            payload["submission[late_policy_status]"] = update.new_status

    if update.rubric_comments_changed and update.new_rubric_comments:
        for criterion_id, comment in update.new_rubric_comments.items():
            payload[f"rubric_assessment[{criterion_id}][comments]"] = comment

    return payload


class SyncGateway:
    """
    Pushes staged updates one student at a time. A failing student is
    reported and skipped, never retried here; it stays dirty for the next flush.
    """

    def __init__(self, client: SubmissionWriter):
        self.client = client

    def push(self, updates: Iterable[SubmissionUpdate]) -> list[SyncResult]:
        results: list[SyncResult] = []

        for update in updates:
            if not update.has_changes:
                results.append(SyncResult(user_id=update.user_id, success=True))
                continue

            try:
                self.client.update_submission(update.user_id, build_payload(update))
            except RemoteAPIError as exc:
                logger.warning("Failed to sync submission (user=%s, status=%s)", update.user_id, exc.status_code)
                results.append(
                    SyncResult(user_id=update.user_id, success=False, errors=[SYNC_FAILED_MESSAGE])
                )
                continue

            results.append(SyncResult(user_id=update.user_id, success=True))

        synced, failed = count_results(results)
        logger.info("Sync finished: %s synced, %s failed", synced, failed)
        return results


def count_results(results: Iterable[SyncResult]) -> tuple[int, int]:
    synced = 0
    failed = 0
    for result in results:
        if result.success:
            synced += 1
        else:
            failed += 1
    return synced, failed


def summarize(results: Iterable[SyncResult]) -> str:
    synced, failed = count_results(results)
    if failed:
        return f"Synced {synced} students. {failed} failed."
    return f"Synced {synced} students."
