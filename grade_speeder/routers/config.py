from fastapi import APIRouter, Depends

from grade_speeder.core.config_store import ConfigStore
from grade_speeder.core.deps import get_config_store
from grade_speeder.core.logging_middleware import set_log_level
from grade_speeder.schemas.config import ConfigUpdate, PublicConfig

router = APIRouter()


@router.get("/config", response_model=PublicConfig)
def read_config(store: ConfigStore = Depends(get_config_store)):
    return store.public_view()


@router.post("/config", response_model=PublicConfig)
def update_config(
    payload: ConfigUpdate,
    store: ConfigStore = Depends(get_config_store),
):
    # only keys the client actually sent; an explicit null clears
    changes = payload.model_dump(exclude_unset=True)
    public = store.update(changes)
    set_log_level(public.log_level)
    return public
