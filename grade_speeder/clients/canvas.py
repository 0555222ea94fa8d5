import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional

import requests

from grade_speeder.clients.normalize import GroupMap, UserGroupMap, normalize_submission
from grade_speeder.core.config import PER_PAGE, REQUEST_TIMEOUT_SECONDS
from grade_speeder.core.errors import RemoteAPIError
from grade_speeder.schemas.assignment import AssignmentDetails, AssignmentInfo, RubricCriterion
from grade_speeder.schemas.config import StoredConfig
from grade_speeder.schemas.submission import LatePolicy, SubmissionsResponse

logger = logging.getLogger(__name__)

SUBMISSION_INCLUDES = ["user", "submission_comments", "group", "rubric_assessment"]


@dataclass
class RemoteFile:
    chunks: Iterator[bytes]
    content_type: Optional[str] = None
    content_length: Optional[str] = None
    file_name: Optional[str] = None


def _status_of(exc: requests.RequestException) -> Optional[int]:
    response = getattr(exc, "response", None)
    return response.status_code if response is not None else None


class CanvasClient:
    """Thin wrapper over the Canvas REST API for one course/assignment."""

    def __init__(
        self,
        base_url: str,
        access_token: str,
        course_id: int,
        assignment_id: Optional[int] = None,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.course_id = course_id
        self.assignment_id = assignment_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {access_token}"})

    @classmethod
    def from_config(cls, config: StoredConfig, session: Optional[requests.Session] = None) -> "CanvasClient":
        return cls(
            base_url=config.base_url,
            access_token=config.access_token or "",
            course_id=config.course_id,
            assignment_id=config.assignment_id,
            session=session,
        )

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = self.session.request(method, self._url(path), **kwargs)
            response.raise_for_status()
        except requests.RequestException as exc:
            status = _status_of(exc)
            logger.warning("Canvas %s %s failed (status=%s)", method, path.split("?")[0], status)
            raise RemoteAPIError(f"Canvas request failed: {method} {path}", status_code=status) from exc
        return response

    def _json(self, response: requests.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            # login pages and proxy errors come back as 2xx HTML
            logger.warning("Canvas GET %s returned a non-JSON body", path.split("?")[0])
            raise RemoteAPIError(
                f"Canvas returned an unreadable response: GET {path}",
                status_code=response.status_code,
            ) from exc

    def get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        return self._json(self._request("GET", path, params=params), path)

    def fetch_all_pages(self, path: str, params: Optional[dict[str, Any]] = None) -> list[Any]:
        """Collect a list endpoint by following rel="next" Link headers."""
        results: list[Any] = []
        next_url: Optional[str] = path
        next_params = params

        while next_url:
            response = self._request("GET", next_url, params=next_params)
            page = self._json(response, next_url)
            if not isinstance(page, list):
                raise RemoteAPIError(f"Expected a list from GET {path}", status_code=response.status_code)
            results.extend(page)
            # the next link already carries the query string
            next_url = response.links.get("next", {}).get("url")
            next_params = None

        return results

    # Submissions

    @property
    def _assignment_path(self) -> str:
        return f"/courses/{self.course_id}/assignments/{self.assignment_id}"

    def _fetch_groups(self) -> tuple[GroupMap, UserGroupMap]:
        group_map: GroupMap = {}
        user_group_map: UserGroupMap = {}
        groups = self.fetch_all_pages(
            f"/courses/{self.course_id}/groups",
            {"per_page": PER_PAGE, "include[]": ["users"]},
        )
        for group in groups:
            group_map[group["id"]] = {"id": group["id"], "name": group.get("name")}
            for user in group.get("users") or []:
                user_group_map[user["id"]] = {"group_id": group["id"], "group_name": group.get("name")}
        return group_map, user_group_map

    def _late_policy(self, course: dict[str, Any]) -> Optional[LatePolicy]:
        policy = course.get("late_policy")
        if not policy or not policy.get("late_submission_deduction_enabled"):
            return None
        return LatePolicy(
            late_submission_deduction_enabled=True,
            late_submission_deduction=float(policy.get("late_submission_deduction") or 0),
            late_submission_interval=policy.get("late_submission_interval") or "day",
            late_submission_minimum_percent=float(policy.get("late_submission_minimum_percent") or 0),
        )

    def fetch_submissions(self) -> SubmissionsResponse:
        raw_submissions = self.fetch_all_pages(
            f"{self._assignment_path}/submissions",
            {
                "per_page": PER_PAGE,
                "include[]": SUBMISSION_INCLUDES,
                "student_ids[]": ["all"],
            },
        )

        # everything below is decoration: failures are logged and skipped
        details: dict[str, Any] = {}
        try:
            assignment = self.get_json(self._assignment_path)
            details["assignment_name"] = assignment.get("name")
            details["due_at"] = assignment.get("due_at") or None
            details["points_possible"] = assignment.get("points_possible") or None
            details["rubric"] = assignment.get("rubric") or None
        except RemoteAPIError:
            logger.debug("Could not fetch assignment details")

        try:
            course = self.get_json(f"/courses/{self.course_id}", {"include[]": ["late_policy"]})
            details["course_name"] = course.get("name")
            details["course_code"] = course.get("course_code")
            details["late_policy"] = self._late_policy(course)
        except RemoteAPIError:
            logger.debug("Could not fetch course or late policy")

        group_map: GroupMap = {}
        user_group_map: UserGroupMap = {}
        try:
            group_map, user_group_map = self._fetch_groups()
        except RemoteAPIError:
            logger.debug("Could not fetch course groups")

        return SubmissionsResponse(
            submissions=[normalize_submission(s, group_map, user_group_map) for s in raw_submissions],
            course_id=self.course_id,
            assignment_id=self.assignment_id,
            has_groups=len(group_map) > 0,
            **details,
        )

    def update_submission(self, user_id: int, form: dict[str, str]) -> None:
        self._request(
            "PUT",
            f"{self._assignment_path}/submissions/{user_id}",
            data=form,
        )

    # Assignments

    def _fetch_module_names(self) -> dict[int, str]:
        module_map: dict[int, str] = {}
        modules = self.fetch_all_pages(
            f"/courses/{self.course_id}/modules",
            {"per_page": PER_PAGE, "include[]": ["items"]},
        )
        for module in modules:
            for item in module.get("items") or []:
                if item.get("type") == "Assignment" and item.get("content_id"):
                    module_map[item["content_id"]] = module.get("name")
        return module_map

    def fetch_assignments(self) -> list[AssignmentInfo]:
        assignments = self.fetch_all_pages(
            f"/courses/{self.course_id}/assignments",
            {"per_page": PER_PAGE, "include[]": ["submission"]},
        )

        try:
            module_map = self._fetch_module_names()
        except RemoteAPIError:
            logger.debug("Could not fetch modules")
            module_map = {}

        rows: list[AssignmentInfo] = []
        for assignment in assignments:
            submission_count = 0
            graded_count = 0
            try:
                summary = self.get_json(
                    f"/courses/{self.course_id}/assignments/{assignment['id']}/submission_summary"
                )
                graded_count = summary.get("graded") or 0
                submission_count = graded_count + (summary.get("ungraded") or 0)
            except RemoteAPIError:
                logger.debug("Could not fetch submission summary for assignment %s", assignment["id"])

            rows.append(
                AssignmentInfo(
                    id=assignment["id"],
                    name=assignment.get("name") or "",
                    due_at=assignment.get("due_at"),
                    points_possible=assignment.get("points_possible"),
                    module_name=module_map.get(assignment["id"]),
                    submission_count=submission_count,
                    graded_count=graded_count,
                )
            )

        # latest due date first, undated last
        dated = sorted((a for a in rows if a.due_at), key=lambda a: a.due_at, reverse=True)
        undated = [a for a in rows if not a.due_at]
        return dated + undated

    def fetch_assignment_details(self) -> AssignmentDetails:
        assignment = self.get_json(self._assignment_path)
        rubric = assignment.get("rubric")
        return AssignmentDetails(
            id=assignment["id"],
            name=assignment.get("name") or "",
            description=assignment.get("description") or None,
            due_at=assignment.get("due_at") or None,
            points_possible=assignment.get("points_possible") or None,
            rubric=[RubricCriterion.model_validate(c) for c in rubric] if rubric else None,
            submission_types=assignment.get("submission_types") or [],
        )

    # Files

    def fetch_file(self, file_id: int) -> RemoteFile:
        meta = self.get_json(f"/files/{file_id}")
        download_url = meta.get("url")
        if not download_url:
            raise RemoteAPIError("File URL missing from Canvas response")

        # pre-signed URL: no auth header, follow redirects
        try:
            download = requests.get(download_url, stream=True, timeout=self.timeout)
            download.raise_for_status()
        except requests.RequestException as exc:
            status = _status_of(exc)
            logger.warning("Attachment download failed (file=%s, status=%s)", file_id, status)
            raise RemoteAPIError("Failed to download attachment", status_code=status) from exc

        return RemoteFile(
            chunks=download.iter_content(chunk_size=64 * 1024),
            content_type=download.headers.get("Content-Type"),
            content_length=download.headers.get("Content-Length"),
            file_name=meta.get("display_name") or meta.get("filename"),
        )
