import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = BASE_DIR / "data"
DB_PATH = DATA_DIR / "habit_tracker.sqlite3"

DATABASE_URL = os.environ.get("HABIT_TRACKER_DATABASE_URL", f"sqlite:///{DB_PATH}")
SECRET_KEY = os.environ.get("HABIT_TRACKER_SECRET_KEY", "dev-secret-change-me-before-deploying")
PARENT_TOKEN_MINUTES = int(os.environ.get("HABIT_TRACKER_TOKEN_MINUTES", "30"))
CHILD_TOKEN_MINUTES = int(os.environ.get("HABIT_TRACKER_CHILD_TOKEN_MINUTES", "720"))
LOG_LEVEL = os.environ.get("HABIT_TRACKER_LOG_LEVEL", "INFO")

# Steps are completion-only unless this is switched on.
ALLOW_STEP_UNCOMPLETE = os.environ.get("HABIT_TRACKER_ALLOW_STEP_UNCOMPLETE", "false").lower() in ("1", "true", "yes")

DEFAULT_TIMEZONE = os.environ.get("HABIT_TRACKER_DEFAULT_TIMEZONE", "America/New_York")
SEED_PARENT_EMAIL = os.environ.get("HABIT_TRACKER_SEED_EMAIL", "parent@example.com")
SEED_PARENT_NAME = os.environ.get("HABIT_TRACKER_SEED_NAME", "Parent")
SEED_PARENT_PIN = os.environ.get("HABIT_TRACKER_SEED_PIN", "1234")

WEEKDAY_CODES = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]
FREQUENCIES = ["daily", "weekly", "custom"]

DEFAULT_HABIT_ICON = "⭐"
DEFAULT_REWARD_ICON = "🎁"
DEFAULT_COINS_PER_COMPLETION = 10
DEFAULT_COOLDOWN_MINUTES = 60
MIN_CHILD_AGE = 6
MAX_CHILD_AGE = 12
MIN_PIN_LENGTH = 4
