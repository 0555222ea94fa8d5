from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from grade_speeder.clients.canvas import CanvasClient
from grade_speeder.core.config_store import ConfigStore
from grade_speeder.core.errors import MissingConfigurationError
from grade_speeder.db.session import SessionLocal
from grade_speeder.schemas.config import StoredConfig
from grade_speeder.services.grading_session import GradingSession
from grade_speeder.services.local_state import LocalStateStore


# every request that needs DB will get a fresh session, and it will always close.
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_config_store(request: Request) -> ConfigStore:
    return request.app.state.config_store


def get_grading_session(request: Request) -> GradingSession:
    return request.app.state.grading_session


def missing_config(exc: MissingConfigurationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"code": "missing_configuration", "message": str(exc)},
    )


def require_config(store: ConfigStore = Depends(get_config_store)) -> StoredConfig:
    try:
        return store.require()
    except MissingConfigurationError as exc:
        raise missing_config(exc)


def require_course_config(store: ConfigStore = Depends(get_config_store)) -> StoredConfig:
    try:
        return store.require_course()
    except MissingConfigurationError as exc:
        raise missing_config(exc)


def get_canvas_client(config: StoredConfig = Depends(require_config)) -> CanvasClient:
    return CanvasClient.from_config(config)


def get_course_client(config: StoredConfig = Depends(require_course_config)) -> CanvasClient:
    return CanvasClient.from_config(config)


def remote_failure(message: str) -> HTTPException:
    # the remote error body is not passed through, the grader only needs to know it failed
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"code": "remote_error", "message": message},
    )


def get_local_state(db: Session = Depends(get_db)) -> LocalStateStore:
    return LocalStateStore(db)
