import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from grade_speeder.clients.canvas import CanvasClient
from grade_speeder.core.deps import get_canvas_client, get_grading_session, get_local_state, remote_failure
from grade_speeder.core.errors import RemoteAPIError, SessionBusyError
from grade_speeder.schemas.draft import (
    ActivePointer,
    CopyToGroupRequest,
    DraftEdit,
    DraftState,
    DraftStats,
    FlushSummary,
    LoadSummary,
    SessionView,
)
from grade_speeder.schemas.sync import SubmissionUpdate
from grade_speeder.services.drafts import rubric_rating_stats
from grade_speeder.services.grading_session import GradingSession
from grade_speeder.services.local_state import LocalStateStore
from grade_speeder.services.student_list import ListTab, SortBy, filter_students
from grade_speeder.services.sync_gateway import SyncGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session")


def _busy(exc: SessionBusyError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"code": "busy", "message": str(exc)},
    )


def _ensure_draft(session: GradingSession, user_id: int) -> DraftState:
    draft = session.store.get(user_id)
    if draft is None:
        raise HTTPException(status_code=404, detail="Student not in the loaded submissions")
    return draft


@router.post("/load", response_model=LoadSummary)
def load_session(
    client: CanvasClient = Depends(get_canvas_client),
    session: GradingSession = Depends(get_grading_session),
    local_state: LocalStateStore = Depends(get_local_state),
):
    try:
        return session.load(client, local_state, local_state.ui_settings())
    except SessionBusyError as exc:
        raise _busy(exc)
    except RemoteAPIError as exc:
        logger.warning("Failed to load submissions (status=%s)", exc.status_code)
        raise remote_failure("Failed to fetch submissions")


@router.get("", response_model=SessionView)
def read_session(
    tab: ListTab = Query("all"),
    q: str = Query(""),
    sort: SortBy = Query("name"),
    session: GradingSession = Depends(get_grading_session),
):
    store = session.store
    response = session.response
    has_groups = response.has_groups if response else False

    return SessionView(
        loaded=session.loaded,
        busy=session.busy,
        assignment_name=response.assignment_name if response else None,
        course_name=response.course_name if response else None,
        course_id=response.course_id if response else None,
        assignment_id=response.assignment_id if response else None,
        points_possible=response.points_possible if response else None,
        has_groups=has_groups,
        submissions=filter_students(store.submissions, store.drafts, tab, q, sort, has_groups),
        drafts=store.drafts,
        stats=store.stats(),
        rubric_stats=rubric_rating_stats(store.submissions),
        active=session.active,
        loaded_at=session.loaded_at,
    )


@router.get("/stats", response_model=DraftStats)
def session_stats(session: GradingSession = Depends(get_grading_session)):
    return session.store.stats()


@router.patch("/drafts/{user_id}", response_model=DraftState)
def edit_draft(
    user_id: int,
    payload: DraftEdit,
    session: GradingSession = Depends(get_grading_session),
):
    _ensure_draft(session, user_id)
    store = session.store
    sent = payload.model_fields_set

    # a non-numeric grade is ignored, the rest of the edit still applies
    if "grade" in sent:
        store.set_grade(user_id, payload.grade)
    if "comment" in sent:
        store.set_comment(user_id, payload.comment or "")
    if "status" in sent and payload.status is not None:
        store.set_status(user_id, payload.status)
    if payload.criterion_id is not None and "rubric_comment" in sent:
        store.set_rubric_comment(user_id, payload.criterion_id, payload.rubric_comment or "")

    return store.get(user_id)


@router.post("/drafts/{user_id}/copy-to-group")
def copy_to_group(
    user_id: int,
    payload: CopyToGroupRequest,
    session: GradingSession = Depends(get_grading_session),
):
    _ensure_draft(session, user_id)
    updated = session.store.copy_to_group(user_id, payload.field, payload.value)
    return {"updated": updated}


@router.post("/drafts/{user_id}/clear", response_model=DraftState)
def clear_student(
    user_id: int,
    session: GradingSession = Depends(get_grading_session),
):
    _ensure_draft(session, user_id)
    session.store.clear_one(user_id)
    return session.store.get(user_id)


@router.post("/clear", response_model=DraftStats)
def clear_all(session: GradingSession = Depends(get_grading_session)):
    session.store.clear_all()
    return session.store.stats()


@router.get("/updates", response_model=list[SubmissionUpdate])
def staged_updates(session: GradingSession = Depends(get_grading_session)):
    return session.store.pending()


@router.post("/flush", response_model=FlushSummary)
def flush(
    client: CanvasClient = Depends(get_canvas_client),
    session: GradingSession = Depends(get_grading_session),
    local_state: LocalStateStore = Depends(get_local_state),
):
    try:
        return session.flush(
            SyncGateway(client),
            local_state,
            local_state.ui_settings().max_history_entries,
        )
    except SessionBusyError as exc:
        raise _busy(exc)


@router.post("/autosave")
def autosave(
    session: GradingSession = Depends(get_grading_session),
    local_state: LocalStateStore = Depends(get_local_state),
):
    return {"saved": session.autosave(local_state)}


@router.put("/active", response_model=ActivePointer)
def set_active(
    payload: ActivePointer,
    session: GradingSession = Depends(get_grading_session),
    local_state: LocalStateStore = Depends(get_local_state),
):
    if payload.user_id is not None:
        _ensure_draft(session, payload.user_id)
    return session.set_active(payload, local_state, local_state.ui_settings())
