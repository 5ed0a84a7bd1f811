from datetime import date

from habit_tracker.config import WEEKDAY_CODES
from habit_tracker.domain.rules.shapes import HabitConfig


def weekday_code(on_date: date) -> str:
    return WEEKDAY_CODES[on_date.weekday()]


def is_scheduled_on(habit: HabitConfig, on_date: date) -> bool:
    """
    Decide whether a habit is offered on a given day.

    Daily and weekly habits are offered every day; a weekly habit's limit is
    enforced through ``times_per_period``. Custom habits are offered only on
    their allowed weekdays, and never when that set is empty or missing.
    """
    if habit.frequency in ("daily", "weekly"):
        return True
    if habit.frequency == "custom":
        if not habit.allowed_days:
            return False
        return weekday_code(on_date) in habit.allowed_days
    return False
