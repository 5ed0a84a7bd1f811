import logging
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from habit_tracker.config import (
    DEFAULT_COINS_PER_COMPLETION,
    DEFAULT_COOLDOWN_MINUTES,
    DEFAULT_HABIT_ICON,
    FREQUENCIES,
    WEEKDAY_CODES,
)
from habit_tracker.data.models import Habit, HabitProgress, HabitStep
from habit_tracker.data.repos import children_repo, habits_repo, progress_repo
from habit_tracker.domain.clock import to_naive_utc, utcnow
from habit_tracker.domain.errors import NotFound, ValidationFailed
from habit_tracker.domain.rules.shapes import Stepped
from habit_tracker.domain.services.child_service import get_owned_child
from habit_tracker.domain.services.progress_service import habit_status
from habit_tracker.domain.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

HABIT_FIELDS = [
    "name",
    "description",
    "icon",
    "frequency",
    "allowed_days",
    "times_per_period",
    "cooldown_minutes",
    "coins_per_completion",
    "is_active",
]


def _normalize(values: Dict) -> Dict:
    """
    Apply the form rules to a full set of habit fields.

    Names are trimmed and required, blank descriptions become null, cooldown
    is dropped for single-completion habits, and allowed days are only kept
    (and defaulted to the whole week) for custom frequency.
    """
    name = (values.get("name") or "").strip()
    if not name:
        raise ValidationFailed("Please enter a habit name")
    frequency = values.get("frequency") or "daily"
    if frequency not in FREQUENCIES:
        raise ValidationFailed(f"Frequency must be one of {', '.join(FREQUENCIES)}")
    times_per_period = values.get("times_per_period") or 1
    if times_per_period < 1:
        raise ValidationFailed("times_per_period must be at least 1")
    coins = values.get("coins_per_completion")
    coins = DEFAULT_COINS_PER_COMPLETION if coins is None else coins
    if coins < 1:
        raise ValidationFailed("coins_per_completion must be at least 1")
    cooldown = values.get("cooldown_minutes")
    cooldown = DEFAULT_COOLDOWN_MINUTES if cooldown is None else cooldown
    if cooldown < 0:
        raise ValidationFailed("cooldown_minutes must not be negative")

    allowed_days = None
    if frequency == "custom":
        days = values.get("allowed_days")
        days = list(WEEKDAY_CODES) if days is None else [day.strip().lower() for day in days]
        unknown = [day for day in days if day not in WEEKDAY_CODES]
        if unknown:
            raise ValidationFailed(f"Unknown weekday codes: {', '.join(unknown)}")
        if not days:
            raise ValidationFailed("Pick at least one day for a custom habit")
        allowed_days = ",".join(code for code in WEEKDAY_CODES if code in days)

    description = (values.get("description") or "").strip() or None
    return {
        "name": name,
        "description": description,
        "icon": values.get("icon") or DEFAULT_HABIT_ICON,
        "frequency": frequency,
        "allowed_days": allowed_days,
        "times_per_period": times_per_period,
        "cooldown_minutes": cooldown if times_per_period > 1 else 0,
        "coins_per_completion": coins,
        "is_active": True if values.get("is_active") is None else values["is_active"],
    }


def _clean_steps(names: Optional[List[str]]) -> List[str]:
    return [name.strip() for name in (names or []) if name and name.strip()]


def _finished_stepped_day(session: Session, habit: Habit, now: datetime) -> Optional[date]:
    """The local day when the habit's current steps are all done today, else None."""
    child = children_repo.get_child(session, habit.child_id)
    status = habit_status(session, habit, child, now)
    if isinstance(status.shape, Stepped) and status.eligibility.completions_in_period > 0:
        return status.today
    return None


def _carry_completion(session: Session, habit: Habit, steps: List[HabitStep], on_date: date, now: datetime) -> None:
    # A habit left without steps keeps its completion as one whole-habit row.
    for step_id in [step.id for step in steps] or [None]:
        progress_repo.insert_progress(
            session,
            HabitProgress(habit_id=habit.id, child_id=habit.child_id, step_id=step_id, date=on_date, completed_at=now),
        )
    logger.info("completion kept across step edit habit_id=%s date=%s", habit.id, on_date)


def get_owned_habit(session: Session, parent_id: int, habit_id: int) -> Habit:
    habit = habits_repo.get_habit(session, habit_id)
    if not habit:
        raise NotFound("Habit")
    get_owned_child(session, parent_id, habit.child_id)
    return habit


def list_habits(session: Session, parent_id: int, child_id: int) -> List[Habit]:
    get_owned_child(session, parent_id, child_id)
    return habits_repo.list_habits(session, child_id)


def create_habit(session: Session, parent_id: int, child_id: int, data: Dict) -> Habit:
    with atomic(session, "create_habit"):
        get_owned_child(session, parent_id, child_id)
        habit = habits_repo.add_habit(session, Habit(child_id=child_id, **_normalize(data)))
        steps = _clean_steps(data.get("steps"))
        if steps:
            habits_repo.replace_steps(session, habit, steps)
    logger.info("habit created id=%s child_id=%s steps=%s", habit.id, child_id, len(steps))
    session.refresh(habit)
    return habit


def update_habit(
    session: Session, parent_id: int, habit_id: int, data: Dict, now: Optional[datetime] = None
) -> Habit:
    """
    Update a habit's settings.

    Fields sent as null keep their current value. When ``steps`` is present
    the existing steps are deleted and the new list inserted in order;
    progress recorded against the old steps goes with them. A habit already
    finished today stays finished: the replacement steps are recorded as
    done for today so the child is not paid twice.
    """
    now = to_naive_utc(now or utcnow())
    with atomic(session, "update_habit"):
        habit = get_owned_habit(session, parent_id, habit_id)
        current = {field: getattr(habit, field) for field in HABIT_FIELDS}
        current["allowed_days"] = habit.allowed_day_codes
        updates = {field: value for field, value in data.items() if field in HABIT_FIELDS and value is not None}
        if "frequency" in updates and updates["frequency"] != "custom":
            updates.setdefault("allowed_days", None)
        if updates.get("times_per_period", 1) > 1 and not current["cooldown_minutes"]:
            updates.setdefault("cooldown_minutes", DEFAULT_COOLDOWN_MINUTES)
        finished_on = _finished_stepped_day(session, habit, now) if data.get("steps") is not None else None
        for field, value in _normalize({**current, **updates}).items():
            setattr(habit, field, value)
        if data.get("steps") is not None:
            steps = habits_repo.replace_steps(session, habit, _clean_steps(data["steps"]))
            if finished_on is not None:
                _carry_completion(session, habit, steps, finished_on, now)
        session.flush()
    logger.info("habit updated id=%s", habit_id)
    session.refresh(habit)
    return habit


def delete_habit(session: Session, parent_id: int, habit_id: int) -> None:
    with atomic(session, "delete_habit"):
        habit = get_owned_habit(session, parent_id, habit_id)
        habits_repo.delete_habit(session, habit)
    logger.info("habit deleted id=%s", habit_id)
