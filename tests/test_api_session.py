import pytest

from tests.helpers import SUBMISSIONS_URL, canvas_routes, raw_submission


@pytest.fixture()
def loaded(canvas_client, canvas_session):
    canvas_session.routes.update(
        canvas_routes(
            [
                raw_submission(1, "Ada Lovelace", score=92),
                raw_submission(2, "Alan Turing"),
                raw_submission(3, "Grace Hopper", late=True),
            ]
        )
    )
    r = canvas_client.post("/api/session/load")
    assert r.status_code == 200, r.text
    return canvas_client


def test_load_summary(loaded):
    r = loaded.get("/api/session")
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["loaded"] is True
    assert data["assignmentName"] == "Essay 1"
    assert data["stats"] == {"total": 3, "withSubmission": 3, "graded": 1, "dirty": 0}
    assert data["drafts"]["3"]["status"] == "late"
    assert data["active"] == {"userId": 1, "field": "grade"}


def test_session_before_load(client):
    r = client.get("/api/session")
    assert r.status_code == 200
    assert r.json()["loaded"] is False


def test_load_without_config(client):
    r = client.post("/api/session/load")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "missing_configuration"


def test_load_remote_failure(canvas_client):
    r = canvas_client.post("/api/session/load")
    assert r.status_code == 502


def test_edit_draft(loaded):
    r = loaded.patch("/api/session/drafts/2", json={"grade": "85", "comment": "Good"})
    assert r.status_code == 200, r.text
    draft = r.json()
    assert draft["grade"] == 85
    assert draft["gradeDirty"] is True
    assert draft["commentDirty"] is True
    assert draft["synced"] is False

    r = loaded.get("/api/session/stats")
    assert r.json()["dirty"] == 1


def test_invalid_grade_is_ignored(loaded):
    r = loaded.patch("/api/session/drafts/1", json={"grade": "abc", "status": "excused"})
    assert r.status_code == 200, r.text
    draft = r.json()
    assert draft["grade"] == 92
    assert draft["gradeDirty"] is False
    assert draft["statusDirty"] is True


def test_rubric_comment_edit(loaded):
    r = loaded.patch("/api/session/drafts/1", json={"criterionId": "c1", "rubricComment": "clear"})
    assert r.status_code == 200, r.text
    assert r.json()["rubricComments"] == {"c1": "clear"}
    assert r.json()["rubricCommentsDirty"] is True


def test_unknown_student_is_404(loaded):
    assert loaded.patch("/api/session/drafts/99", json={"grade": 1}).status_code == 404
    assert loaded.post("/api/session/drafts/99/clear").status_code == 404
    assert loaded.put("/api/session/active", json={"userId": 99}).status_code == 404


def test_staged_tab_and_clear(loaded):
    loaded.patch("/api/session/drafts/3", json={"comment": "late but fine"})

    r = loaded.get("/api/session", params={"tab": "staged"})
    assert [s["userId"] for s in r.json()["submissions"]] == [3]

    r = loaded.post("/api/session/drafts/3/clear")
    assert r.status_code == 200
    assert r.json()["comment"] == ""
    assert r.json()["commentDirty"] is False

    loaded.patch("/api/session/drafts/1", json={"grade": None})
    r = loaded.post("/api/session/clear")
    assert r.json()["dirty"] == 0
    assert r.json()["graded"] == 1


def test_copy_to_group_without_group(loaded):
    r = loaded.post("/api/session/drafts/1/copy-to-group", json={"field": "grade", "value": 88})
    assert r.status_code == 200
    assert r.json() == {"updated": []}


def test_flush_pushes_and_records_history(loaded, canvas_session):
    loaded.patch("/api/session/drafts/2", json={"grade": 77})

    r = loaded.get("/api/session/updates")
    assert [u["userId"] for u in r.json()] == [2]

    r = loaded.post("/api/session/flush")
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["synced"] == 1
    assert data["failed"] == 0
    assert data["message"] == "Synced 1 students."

    put = canvas_session.calls_to("PUT", f"{SUBMISSIONS_URL}/2")[0]
    assert put["data"] == {"submission[posted_grade]": "77"}

    draft = loaded.get("/api/session").json()["drafts"]["2"]
    assert draft["baseGrade"] == 77
    assert draft["synced"] is True

    history = loaded.get("/api/history").json()
    assert history[0]["summary"] == "Pushed grades for 1 student"
    assert history[0]["changes"][0]["newGrade"] == 77
    assert history[0]["changes"][0]["oldGrade"] is None


def test_flush_partial_failure(canvas_client, canvas_session):
    canvas_session.routes.update(
        canvas_routes([raw_submission(i) for i in (1, 2, 3)], put_failures={2})
    )
    canvas_client.post("/api/session/load")
    for user_id in (1, 2, 3):
        canvas_client.patch(f"/api/session/drafts/{user_id}", json={"grade": 50 + user_id})

    data = canvas_client.post("/api/session/flush").json()
    assert [r["success"] for r in data["results"]] == [True, False, True]
    assert data["message"] == "Synced 2 students. 1 failed."

    updates = canvas_client.get("/api/session/updates").json()
    assert [u["userId"] for u in updates] == [2]


def test_flush_with_nothing_staged(loaded, canvas_session):
    r = loaded.post("/api/session/flush")
    assert r.status_code == 200
    assert r.json()["message"] == "No staged changes to sync"
    assert canvas_session.calls_to("PUT", f"{SUBMISSIONS_URL}/1") == []


def test_busy_session_refuses(loaded, grading_session):
    grading_session._busy.acquire()
    try:
        assert loaded.post("/api/session/load").status_code == 409
        r = loaded.post("/api/session/flush")
        assert r.status_code == 409
        assert r.json()["detail"]["code"] == "busy"
    finally:
        grading_session._busy.release()


def test_session_view_reports_busy(loaded, grading_session):
    assert loaded.get("/api/session").json()["busy"] is False
    grading_session._busy.acquire()
    try:
        assert loaded.get("/api/session").json()["busy"] is True
    finally:
        grading_session._busy.release()


def test_autosave_survives_reload(loaded):
    loaded.patch("/api/session/drafts/2", json={"comment": "keep me"})
    r = loaded.post("/api/session/autosave")
    assert r.json() == {"saved": True}

    r = loaded.post("/api/session/load")
    assert r.status_code == 200
    data = r.json()
    assert data["restored"] == 1
    assert data["message"] == "Restored unsaved drafts for 1 students"

    draft = loaded.get("/api/session").json()["drafts"]["2"]
    assert draft["comment"] == "keep me"
    assert draft["commentDirty"] is True


def test_autosave_before_load_keeps_snapshot(client, local_state):
    local_state.save_autosave({"1": {"grade": 1, "gradeDirty": True}})
    r = client.post("/api/session/autosave")
    assert r.json() == {"saved": False}
    assert local_state.load_autosave() != {}


def test_active_pointer_is_remembered(loaded):
    r = loaded.put("/api/session/active", json={"userId": 3, "field": "comment"})
    assert r.status_code == 200, r.text

    r = loaded.post("/api/session/load")
    assert r.json()["active"] == {"userId": 3, "field": "comment"}
