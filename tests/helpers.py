import json

import requests

from grade_speeder.schemas.submission import RubricAssessment, SubmissionRecord

BASE_URL = "https://canvas.test/api/v1"
COURSE_ID = 1
ASSIGNMENT_ID = 2
SUBMISSIONS_URL = f"{BASE_URL}/courses/{COURSE_ID}/assignments/{ASSIGNMENT_ID}/submissions"


def make_response(payload, status_code=200, link=None, url=BASE_URL, headers=None, body=None):
    r = requests.Response()
    r.status_code = status_code
    if body is not None:
        r._content = body
        r.headers["Content-Type"] = "text/html"
    else:
        r._content = json.dumps(payload).encode() if payload is not None else b""
        r.headers["Content-Type"] = "application/json"
    if link:
        r.headers["Link"] = link
    for key, value in (headers or {}).items():
        r.headers[key] = value
    r.url = url
    return r


class FakeCanvasSession(requests.Session):
    """Answers from a (method, url) table; anything unknown is a 404."""

    def __init__(self, routes=None):
        super().__init__()
        self.routes = dict(routes or {})
        self.calls = []

    def request(self, method, url, params=None, data=None, **kwargs):
        self.calls.append({"method": method, "url": url, "params": params, "data": data})
        answer = self.routes.get((method, url))
        if answer is None:
            return make_response({"errors": [{"message": "not found"}]}, 404, url=url)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def calls_to(self, method, url):
        return [c for c in self.calls if c["method"] == method and c["url"] == url]


def raw_submission(user_id, name="Student", score=None, **extra):
    raw = {
        "user_id": user_id,
        "user": {"id": user_id, "name": name, "sortable_name": name},
        "workflow_state": "submitted",
        "submitted_at": "2026-09-01T10:00:00Z",
        "score": score,
        "grade": None if score is None else str(score),
        "late": False,
        "missing": False,
        "excused": False,
        "seconds_late": 0,
        "attachments": [],
        "submission_comments": [],
    }
    raw.update(extra)
    return raw


def record(user_id, name=None, score=None, group_id=None, rubric=None, has_submission=True, **flags):
    return SubmissionRecord(
        user_id=user_id,
        user_name=name or f"Student {user_id}",
        group_id=group_id,
        group_name=f"Group {group_id}" if group_id is not None else None,
        has_submission=has_submission,
        score=score,
        rubric_assessments={
            criterion: RubricAssessment(rating_id=None, comments=text)
            for criterion, text in (rubric or {}).items()
        },
        **flags,
    )


def canvas_routes(submissions, put_failures=()):
    """Routes for a minimal course: one page of submissions, PUT per student."""
    routes = {
        ("GET", SUBMISSIONS_URL): make_response(submissions, url=SUBMISSIONS_URL),
        ("GET", f"{BASE_URL}/courses/{COURSE_ID}/assignments/{ASSIGNMENT_ID}"): make_response(
            {"id": ASSIGNMENT_ID, "name": "Essay 1", "points_possible": 100, "due_at": "2026-09-01T00:00:00Z"}
        ),
        ("GET", f"{BASE_URL}/courses/{COURSE_ID}"): make_response(
            {"id": COURSE_ID, "name": "Writing 101", "course_code": "WRT101"}
        ),
        ("GET", f"{BASE_URL}/courses/{COURSE_ID}/groups"): make_response([]),
    }
    for raw in submissions:
        user_id = raw["user_id"]
        status_code = 500 if user_id in put_failures else 200
        routes[("PUT", f"{SUBMISSIONS_URL}/{user_id}")] = make_response({"id": user_id}, status_code)
    return routes
