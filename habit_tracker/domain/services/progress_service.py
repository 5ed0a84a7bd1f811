"""
Progress recorder.

Applies step and whole-habit completions for a child. Every operation locks
the child's row, re-reads today's progress inside the transaction, re-runs the
eligibility rules against it, and only then writes the progress row and the
matching ledger change, so a stale client view can never push a habit past
its limits.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from habit_tracker.config import ALLOW_STEP_UNCOMPLETE, DEFAULT_TIMEZONE
from habit_tracker.data.models import Habit, HabitProgress, HabitStep
from habit_tracker.data.repos import children_repo, habits_repo, profiles_repo, progress_repo
from habit_tracker.domain.clock import local_today, to_naive_utc, utcnow
from habit_tracker.domain.errors import (
    AlreadyCompleted,
    NotFound,
    NotScheduledToday,
    StepNotCompleted,
    StepUncompleteDisabled,
    ValidationFailed,
)
from habit_tracker.domain.rules.eligibility_rules import Eligibility, evaluate
from habit_tracker.domain.rules.period_rules import period_bounds
from habit_tracker.domain.rules.shapes import HabitShape, ProgressEntry, Stepped, shape_of
from habit_tracker.domain.services import ledger_service
from habit_tracker.domain.services.unit_of_work import atomic

logger = logging.getLogger(__name__)


@dataclass
class HabitStatus:
    habit: Habit
    steps: List[HabitStep]
    shape: HabitShape
    today: date
    eligibility: Eligibility


@dataclass
class CompletionResult:
    habit_id: int
    step_id: Optional[int]
    coins_awarded: int
    coin_balance: int
    habit_completed: bool
    status: HabitStatus


def timezone_for_child(session: Session, child) -> str:
    profile = profiles_repo.get_profile(session, child.parent_id)
    return profile.timezone if profile else DEFAULT_TIMEZONE


def habit_status(session: Session, habit: Habit, child, now: datetime) -> HabitStatus:
    """Load a habit's steps and current-period progress and evaluate them."""
    today = local_today(now, timezone_for_child(session, child))
    start, end = period_bounds(habit.frequency, today)
    rows = progress_repo.list_progress(session, habit.id, child.id, start, end)
    steps = habits_repo.list_steps(session, habit.id)
    shape = shape_of(habit, steps)
    eligibility = evaluate(shape, [ProgressEntry.from_model(row) for row in rows], today, now)
    return HabitStatus(habit=habit, steps=steps, shape=shape, today=today, eligibility=eligibility)


def _load_for_child(session: Session, child_id: int, habit_id: int):
    child = children_repo.get_child(session, child_id)
    if not child:
        raise NotFound("Child")
    habit = habits_repo.get_habit(session, habit_id)
    if not habit or habit.child_id != child_id:
        raise NotFound("Habit")
    if not habit.is_active:
        raise ValidationFailed("Habit is not active")
    if not children_repo.lock_child(session, child_id):
        raise NotFound("Child")
    return child, habit


def _load_step(status: HabitStatus, step_id: int) -> HabitStep:
    for step in status.steps:
        if step.id == step_id:
            return step
    raise NotFound("Step")


def _result(session: Session, child, habit: Habit, step_id, coins: int, completed: bool, now: datetime) -> CompletionResult:
    session.refresh(child)
    return CompletionResult(
        habit_id=habit.id,
        step_id=step_id,
        coins_awarded=coins,
        coin_balance=child.coin_balance,
        habit_completed=completed,
        status=habit_status(session, habit, child, now),
    )


def complete_habit(session: Session, child_id: int, habit_id: int, now: Optional[datetime] = None) -> CompletionResult:
    """
    Register one whole-habit completion for a stepless habit and pay for it.

    Raises ``NotScheduledToday``, ``CooldownActive`` or ``MaxCompletionsReached``
    when the habit is not completable right now.
    """
    now = to_naive_utc(now or utcnow())
    with atomic(session, "complete_habit"):
        child, habit = _load_for_child(session, child_id, habit_id)
        status = habit_status(session, habit, child, now)
        if isinstance(status.shape, Stepped):
            raise ValidationFailed("Habit has steps, complete them one at a time")
        error = status.eligibility.blocking_error()
        if error:
            logger.warning("completion rejected habit_id=%s child_id=%s code=%s", habit_id, child_id, error.code)
            raise error
        progress_repo.insert_progress(
            session,
            HabitProgress(habit_id=habit.id, child_id=child_id, step_id=None, date=status.today, completed_at=now),
        )
        ledger_service.credit(session, child_id, habit.coins_per_completion)

    logger.info("habit completed habit_id=%s child_id=%s coins=%s", habit_id, child_id, habit.coins_per_completion)
    return _result(session, child, habit, None, habit.coins_per_completion, True, now)


def complete_step(
    session: Session, child_id: int, habit_id: int, step_id: int, now: Optional[datetime] = None
) -> CompletionResult:
    now = to_naive_utc(now or utcnow())
    with atomic(session, "complete_step"):
        child, habit = _load_for_child(session, child_id, habit_id)
        status = habit_status(session, habit, child, now)
        step = _load_step(status, step_id)
        if not status.eligibility.is_scheduled_today:
            logger.warning("step rejected habit_id=%s step_id=%s code=not_scheduled_today", habit_id, step_id)
            raise NotScheduledToday()
        done = status.eligibility.completed_step_ids
        if step.id in done:
            raise AlreadyCompleted()
        progress_repo.insert_progress(
            session,
            HabitProgress(habit_id=habit.id, child_id=child_id, step_id=step.id, date=status.today, completed_at=now),
        )
        completed = set(done | {step.id}) == {s.id for s in status.steps}
        coins = habit.coins_per_completion if completed else 0
        if completed:
            ledger_service.credit(session, child_id, coins)

    if completed:
        logger.info("habit completed habit_id=%s child_id=%s coins=%s", habit_id, child_id, coins)
    return _result(session, child, habit, step_id, coins, completed, now)


def uncomplete_step(
    session: Session,
    child_id: int,
    habit_id: int,
    step_id: int,
    now: Optional[datetime] = None,
    allow_uncomplete: Optional[bool] = None,
) -> CompletionResult:
    """
    Toggle a completed step back off, when the deployment allows it.

    If the habit had been fully completed today its coin award is taken back,
    clamped at a zero balance.
    """
    allowed = ALLOW_STEP_UNCOMPLETE if allow_uncomplete is None else allow_uncomplete
    if not allowed:
        raise StepUncompleteDisabled()
    now = to_naive_utc(now or utcnow())
    with atomic(session, "uncomplete_step"):
        child, habit = _load_for_child(session, child_id, habit_id)
        status = habit_status(session, habit, child, now)
        step = _load_step(status, step_id)
        if step.id not in status.eligibility.completed_step_ids:
            raise StepNotCompleted()
        was_completed = status.eligibility.completions_today > 0
        progress_repo.delete_step_progress(session, habit.id, step.id, child_id, status.today)
        coins = 0
        if was_completed:
            ledger_service.debit(session, child_id, habit.coins_per_completion)
            coins = -habit.coins_per_completion

    logger.info("step uncompleted habit_id=%s step_id=%s child_id=%s coins=%s", habit_id, step_id, child_id, coins)
    return _result(session, child, habit, step_id, coins, False, now)
