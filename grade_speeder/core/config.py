import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Connection settings file (holds the access token, keep it out of VCS)
CONFIG_PATH = Path(os.getenv("GRADE_SPEEDER_CONFIG", str(BASE_DIR / "config.json")))

# Local state (autosave, history, preferences) lives in SQLite
DATABASE_URL = os.getenv("GRADE_SPEEDER_DATABASE_URL", f"sqlite:///{BASE_DIR}/grade_speeder.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "info")

CORS_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
    "http://localhost:5175",
    "http://127.0.0.1:5175",
]

DEFAULT_KEYBINDINGS = {
    "NEXT_FIELD": ["Tab", "ArrowDown"],
    "PREV_FIELD": ["Shift+Tab", "ArrowUp"],
    "NEXT_STUDENT_SAME_FIELD": ["ArrowRight"],
    "PREV_STUDENT_SAME_FIELD": ["ArrowLeft"],
}

# Remote API
PER_PAGE = 100
REQUEST_TIMEOUT_SECONDS = 30
SYNC_FAILED_MESSAGE = "Failed to sync with Canvas"

# Drafts
AUTOSAVE_INTERVAL_SECONDS = int(os.getenv("AUTOSAVE_INTERVAL_SECONDS", "30"))
RECONCILE_ADVANCES_ALL_BASES = True

# Local state keys
AUTOSAVE_KEY = "grade-speeder-autosave"
HISTORY_KEY = "grade-speeder-history"
UI_SETTINGS_KEY = "grade-speeder-ui-settings"
DARK_MODE_KEY = "grade-speeder-dark-mode"
SESSION_KEY = "grade-speeder-session"
