import re
from typing import Literal

from grade_speeder.schemas.draft import DraftState
from grade_speeder.schemas.submission import SubmissionRecord

ListTab = Literal["all", "graded", "ungraded", "group", "staged"]
SortBy = Literal["name", "submission-date", "score"]


def last_name(name: str) -> str:
    parts = name.strip().split()
    return parts[-1].lower() if parts else ""


def _natural_key(text: str) -> list:
    # "Group 2" sorts before "Group 10"
    return [int(chunk) if chunk.isdigit() else chunk.lower() for chunk in re.split(r"(\d+)", text)]


def _group_sort_key(sub: SubmissionRecord):
    # students without a group go last
    group = sub.group_name
    return (group is None, _natural_key(group or ""), last_name(sub.user_name))


def filter_students(
    submissions: list[SubmissionRecord],
    drafts: dict[int, DraftState],
    tab: ListTab = "all",
    query: str = "",
    sort_by: SortBy = "name",
    has_groups: bool = False,
) -> list[SubmissionRecord]:
    rows = list(submissions)

    query = query.strip().lower()
    if query:
        rows = [
            s for s in rows
            if query in s.user_name.lower() or (s.group_name and query in s.group_name.lower())
        ]

    def grade_of(sub: SubmissionRecord):
        draft = drafts.get(sub.user_id)
        return draft.grade if draft else None

    if tab == "graded":
        rows = [s for s in rows if grade_of(s) is not None]
    elif tab == "ungraded":
        rows = [s for s in rows if s.has_submission and grade_of(s) is None]
    elif tab == "staged":
        rows = [s for s in rows if s.user_id in drafts and drafts[s.user_id].dirty]

    if sort_by == "submission-date":
        dated = [s for s in rows if s.submitted_at]
        undated = [s for s in rows if not s.submitted_at]
        dated.sort(key=lambda s: s.submitted_at, reverse=True)
        return dated + undated

    if sort_by == "score":
        graded = [s for s in rows if grade_of(s) is not None]
        ungraded = [s for s in rows if grade_of(s) is None]
        graded.sort(key=grade_of, reverse=True)
        return graded + ungraded

    if tab == "group" and has_groups:
        return sorted(rows, key=_group_sort_key)

    return sorted(rows, key=lambda s: last_name(s.user_name))
