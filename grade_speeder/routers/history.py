from fastapi import APIRouter, Depends, status

from grade_speeder.core.deps import get_local_state
from grade_speeder.schemas.history import HistoryEntry
from grade_speeder.services.local_state import LocalStateStore

router = APIRouter()


@router.get("/history", response_model=list[HistoryEntry])
def list_history(local_state: LocalStateStore = Depends(get_local_state)):
    return local_state.history(local_state.ui_settings().max_history_entries)


@router.delete("/history", status_code=status.HTTP_204_NO_CONTENT)
def clear_history(local_state: LocalStateStore = Depends(get_local_state)):
    local_state.clear_history()
