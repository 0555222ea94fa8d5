from typing import Any, Optional

from grade_speeder.schemas.submission import (
    Attachment,
    RubricAssessment,
    SubmissionComment,
    SubmissionRecord,
)

# group id -> {"id", "name"}
GroupMap = dict[int, dict[str, Any]]
# user id -> {"group_id", "group_name"}
UserGroupMap = dict[int, dict[str, Any]]


def is_pdf_attachment(content_type: Optional[str], display_name: Optional[str]) -> bool:
    if content_type and "pdf" in content_type.lower():
        return True
    if display_name and display_name.lower().endswith(".pdf"):
        return True
    return False


def _normalize_attachment(user_id: int, att: dict[str, Any]) -> Attachment:
    name = att.get("display_name") or att.get("filename") or "Attachment"
    return Attachment(
        id=att["id"],
        display_name=name,
        content_type=att.get("content_type") or "",
        size=att.get("size") or 0,
        is_pdf=is_pdf_attachment(att.get("content_type"), name),
        local_view_url=f"/api/submissions/{user_id}/file/{att['id']}",
    )


def _normalize_comment(raw: dict[str, Any]) -> SubmissionComment:
    return SubmissionComment(
        id=raw["id"],
        author_id=raw.get("author_id") or 0,
        author_name=raw.get("author_name") or "Unknown",
        comment=raw.get("comment") or "",
        created_at=raw.get("created_at"),
    )


def _normalize_rubric(raw: Any) -> dict[str, RubricAssessment]:
    if not isinstance(raw, dict):
        return {}
    out = {}
    for criterion_id, assessment in raw.items():
        assessment = assessment or {}
        out[str(criterion_id)] = RubricAssessment(
            rating_id=assessment.get("rating_id"),
            comments=assessment.get("comments") or "",
            points=assessment.get("points"),
        )
    return out


def _resolve_group(
    submission: dict[str, Any],
    group_map: Optional[GroupMap],
    user_group_map: Optional[UserGroupMap],
) -> tuple[Optional[int], Optional[str]]:
    # group assignments carry submission.group, course-level groups come from the user map
    own_group = submission.get("group") or {}
    group_info = (group_map or {}).get(own_group.get("id")) if own_group.get("id") else None
    user_info = (user_group_map or {}).get(submission.get("user_id"))

    group_id = None
    if group_info:
        group_id = group_info["id"]
    elif user_info:
        group_id = user_info["group_id"]

    group_name = None
    if group_info:
        group_name = group_info["name"]
    elif own_group.get("name"):
        group_name = own_group["name"]
    elif user_info:
        group_name = user_info["group_name"]

    return group_id, group_name


def normalize_submission(
    submission: dict[str, Any],
    group_map: Optional[GroupMap] = None,
    user_group_map: Optional[UserGroupMap] = None,
) -> SubmissionRecord:
    user_id = submission["user_id"]
    raw_attachments = submission.get("attachments")
    attachments = [
        _normalize_attachment(user_id, att)
        for att in (raw_attachments if isinstance(raw_attachments, list) else [])
    ]

    has_submission = (
        submission.get("workflow_state") != "unsubmitted"
        or bool(submission.get("submitted_at"))
        or len(attachments) > 0
    )

    raw_comments = submission.get("submission_comments")
    comments = [
        _normalize_comment(c) for c in (raw_comments if isinstance(raw_comments, list) else [])
    ]

    group_id, group_name = _resolve_group(submission, group_map, user_group_map)
    user = submission.get("user") or {}

    return SubmissionRecord(
        user_id=user_id,
        user_name=user.get("name") or "Unknown Student",
        sortable_name=user.get("sortable_name"),
        group_id=group_id,
        group_name=group_name,
        has_submission=has_submission,
        submitted_at=submission.get("submitted_at"),
        late=bool(submission.get("late")),
        missing=bool(submission.get("missing")),
        excused=bool(submission.get("excused")),
        seconds_late=int(submission.get("seconds_late") or 0),
        score=submission.get("score"),
        grade=None if submission.get("grade") is None else str(submission["grade"]),
        attachments=attachments,
        existing_comments=comments,
        rubric_assessments=_normalize_rubric(submission.get("rubric_assessment")),
    )
