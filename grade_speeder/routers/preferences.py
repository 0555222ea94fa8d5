from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from grade_speeder.core.deps import get_local_state
from grade_speeder.schemas.preferences import Preferences, PreferencesUpdate
from grade_speeder.services.local_state import LocalStateStore

router = APIRouter()


def _current(local_state: LocalStateStore) -> Preferences:
    return Preferences(ui_settings=local_state.ui_settings(), dark_mode=local_state.dark_mode())


@router.get("/preferences", response_model=Preferences)
def read_preferences(local_state: LocalStateStore = Depends(get_local_state)):
    return _current(local_state)


@router.post("/preferences", response_model=Preferences)
def update_preferences(
    payload: PreferencesUpdate,
    local_state: LocalStateStore = Depends(get_local_state),
):
    if payload.ui_settings is not None:
        try:
            local_state.update_ui_settings(payload.ui_settings)
        except ValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Invalid UI settings: {exc.error_count()} error(s)",
            )
    if payload.dark_mode is not None:
        local_state.set_dark_mode(payload.dark_mode)
    return _current(local_state)
