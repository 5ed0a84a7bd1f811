"""
Child profiles and the child's daily view.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from habit_tracker.config import MAX_CHILD_AGE, MIN_CHILD_AGE
from habit_tracker.data.models import Child
from habit_tracker.data.repos import children_repo, habits_repo, rewards_repo
from habit_tracker.domain.clock import local_today, to_naive_utc, utcnow
from habit_tracker.domain.errors import NotFound, ValidationFailed
from habit_tracker.domain.rules.shapes import Stepped
from habit_tracker.domain.services.progress_service import HabitStatus, habit_status, timezone_for_child
from habit_tracker.domain.services.unit_of_work import atomic

logger = logging.getLogger(__name__)


def get_owned_child(session: Session, parent_id: int, child_id: int) -> Child:
    child = children_repo.get_child(session, child_id)
    if not child or child.parent_id != parent_id:
        raise NotFound("Child")
    return child


def list_children(session: Session, parent_id: int) -> List[Child]:
    return children_repo.list_children(session, parent_id)


def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationFailed("Please enter a name")
    return cleaned


def _check_age(age: int) -> int:
    if age < MIN_CHILD_AGE or age > MAX_CHILD_AGE:
        raise ValidationFailed(f"Age must be between {MIN_CHILD_AGE} and {MAX_CHILD_AGE}")
    return age


def create_child(session: Session, parent_id: int, data: Dict) -> Child:
    with atomic(session, "create_child"):
        child = children_repo.add_child(
            session,
            Child(
                parent_id=parent_id,
                name=_clean_name(data.get("name")),
                age=_check_age(data["age"]),
                avatar_url=data.get("avatar_url"),
                coin_balance=0,
                current_streak=0,
            ),
        )
    logger.info("child created id=%s parent_id=%s", child.id, parent_id)
    session.refresh(child)
    return child


def update_child(session: Session, parent_id: int, child_id: int, data: Dict) -> Child:
    """
    Edit a child's profile.

    ``coin_balance`` and ``current_streak`` are accepted as administrative
    corrections only and must not be negative.
    """
    with atomic(session, "update_child"):
        child = get_owned_child(session, parent_id, child_id)
        if "name" in data and data["name"] is not None:
            child.name = _clean_name(data["name"])
        if "age" in data and data["age"] is not None:
            child.age = _check_age(data["age"])
        if "avatar_url" in data:
            child.avatar_url = data["avatar_url"] or None
        for field in ("coin_balance", "current_streak"):
            if field in data and data[field] is not None:
                if data[field] < 0:
                    raise ValidationFailed(f"{field} must not be negative")
                children_repo.lock_child(session, child.id)
                logger.info("administrative correction child_id=%s %s=%s", child.id, field, data[field])
                setattr(child, field, data[field])
    session.refresh(child)
    return child


def delete_child(session: Session, parent_id: int, child_id: int) -> None:
    with atomic(session, "delete_child"):
        child = get_owned_child(session, parent_id, child_id)
        children_repo.delete_child(session, child)
    logger.info("child deleted id=%s parent_id=%s", child_id, parent_id)


def habit_view(status: HabitStatus) -> Dict:
    habit = status.habit
    eligibility = status.eligibility
    done = eligibility.completed_step_ids
    steps = [
        {"id": step.id, "name": step.name, "order_index": step.order_index, "completed": step.id in done}
        for step in status.steps
    ]
    if isinstance(status.shape, Stepped):
        progress_percent = int(len(done & {s.id for s in status.steps}) * 100 / len(status.steps))
    else:
        progress_percent = min(int(eligibility.completions_in_period * 100 / habit.times_per_period), 100)
    blocked = eligibility.blocking_error()
    return {
        "id": habit.id,
        "name": habit.name,
        "description": habit.description,
        "icon": habit.icon,
        "frequency": habit.frequency,
        "times_per_period": habit.times_per_period,
        "cooldown_minutes": habit.cooldown_minutes,
        "coins_per_completion": habit.coins_per_completion,
        "steps": steps,
        "progress_percent": progress_percent,
        "completions_in_period": eligibility.completions_in_period,
        "last_completed_at": eligibility.last_completed_at,
        "is_scheduled_today": eligibility.is_scheduled_today,
        "can_complete": eligibility.can_complete,
        "next_available_at": eligibility.next_available_at,
        "minutes_left": eligibility.minutes_left,
        "blocked_reason": blocked.code if blocked else None,
    }


def build_today(session: Session, child_id: int, now: Optional[datetime] = None) -> Dict:
    """Everything the child's screen needs for one refresh."""
    now = to_naive_utc(now or utcnow())
    child = children_repo.get_child(session, child_id)
    if not child:
        raise NotFound("Child")
    statuses = [habit_status(session, habit, child, now) for habit in habits_repo.list_habits(session, child_id, active_only=True)]
    return {
        "date": local_today(now, timezone_for_child(session, child)).isoformat(),
        "child": child,
        "habits": [habit_view(status) for status in statuses],
    }


def reward_catalog(session: Session, child_id: int) -> List[Dict]:
    child = children_repo.get_child(session, child_id)
    if not child:
        raise NotFound("Child")
    return [
        {
            "id": reward.id,
            "name": reward.name,
            "description": reward.description,
            "icon": reward.icon,
            "coin_cost": reward.coin_cost,
            "affordable": child.coin_balance >= reward.coin_cost,
        }
        for reward in rewards_repo.list_rewards(session, child_id, active_only=True)
    ]
