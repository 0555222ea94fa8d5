import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from grade_speeder.core.config import AUTOSAVE_INTERVAL_SECONDS, CONFIG_PATH, CORS_ORIGINS
from grade_speeder.core.config_store import ConfigStore
from grade_speeder.core.logging_middleware import LoggingMiddleware, set_log_level
from grade_speeder.db.init_db import init_db
from grade_speeder.db.session import SessionLocal
from grade_speeder.routers.assignments import router as assignments_router
from grade_speeder.routers.config import router as config_router
from grade_speeder.routers.history import router as history_router
from grade_speeder.routers.preferences import router as preferences_router
from grade_speeder.routers.session import router as session_router
from grade_speeder.routers.submissions import router as submissions_router
from grade_speeder.services.grading_session import GradingSession
from grade_speeder.services.local_state import LocalStateStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Grade Speeder")

app.state.config_store = ConfigStore(CONFIG_PATH)
app.state.grading_session = GradingSession()

# Middleware
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


def autosave_once(session: GradingSession) -> None:
    db = SessionLocal()
    try:
        session.autosave(LocalStateStore(db))
    finally:
        db.close()


async def autosave_loop(interval: float) -> None:
    # best effort: a failed tick is logged and the next one tries again
    while True:
        await asyncio.sleep(interval)
        try:
            # SQLAlchemy I/O stays off the event loop
            await asyncio.to_thread(autosave_once, app.state.grading_session)
        except Exception:
            logger.exception("Autosave failed")


@app.on_event("startup")
async def on_startup():
    init_db()
    set_log_level(app.state.config_store.load().log_level)
    app.state.autosave_task = None
    if AUTOSAVE_INTERVAL_SECONDS > 0:
        app.state.autosave_task = asyncio.create_task(autosave_loop(AUTOSAVE_INTERVAL_SECONDS))


@app.on_event("shutdown")
async def on_shutdown():
    task = app.state.autosave_task
    if task is not None:
        task.cancel()


# Include routers
app.include_router(config_router, prefix="/api", tags=["config"])
app.include_router(assignments_router, prefix="/api", tags=["assignments"])
app.include_router(submissions_router, prefix="/api", tags=["submissions"])
app.include_router(session_router, prefix="/api", tags=["session"])
app.include_router(history_router, prefix="/api", tags=["history"])
app.include_router(preferences_router, prefix="/api", tags=["preferences"])


def run() -> None:
    import uvicorn

    uvicorn.run("grade_speeder.main:app", host="127.0.0.1", port=4000)
