"""
Completion eligibility for a single habit.

Given the habit's shape, its progress rows, the local calendar day and the
current instant, decide whether one more completion may be registered and,
when a cooldown blocks it, when it next becomes available. The functions
here are pure; callers re-run them on every refresh.
"""
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import FrozenSet, Iterable, List, Optional

from habit_tracker.domain.clock import to_naive_utc
from habit_tracker.domain.errors import (
    CooldownActive,
    HabitTrackerError,
    MaxCompletionsReached,
    NotScheduledToday,
)
from habit_tracker.domain.rules.period_rules import period_bounds
from habit_tracker.domain.rules.schedule_rules import is_scheduled_on
from habit_tracker.domain.rules.shapes import HabitShape, ProgressEntry, Stepless, Stepped


@dataclass(frozen=True)
class Eligibility:
    completions_in_period: int
    last_completed_at: Optional[datetime]
    can_complete: bool
    next_available_at: Optional[datetime]
    is_scheduled_today: bool
    times_per_period: int
    now: datetime
    completed_step_ids: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def completions_today(self) -> int:
        return self.completions_in_period

    @property
    def minutes_left(self) -> Optional[int]:
        if self.next_available_at is None:
            return None
        seconds = (self.next_available_at - self.now).total_seconds()
        return max(int(math.ceil(seconds / 60)), 0)

    def blocking_error(self) -> Optional[HabitTrackerError]:
        """The typed failure a completion attempt would meet right now, if any."""
        if self.can_complete:
            return None
        if not self.is_scheduled_today:
            return NotScheduledToday()
        if self.completions_in_period >= self.times_per_period:
            return MaxCompletionsReached(self.times_per_period)
        if self.next_available_at is not None:
            return CooldownActive(self.minutes_left, self.next_available_at)
        return MaxCompletionsReached(self.times_per_period)


def evaluate(shape: HabitShape, progress: Iterable[ProgressEntry], today: date, now: datetime) -> Eligibility:
    now = to_naive_utc(now)
    rows = list(progress)
    if isinstance(shape, Stepped):
        return _evaluate_stepped(shape, rows, today, now)
    if isinstance(shape, Stepless):
        return _evaluate_stepless(shape, rows, today, now)
    raise TypeError(f"Unknown habit shape: {type(shape).__name__}")


def _evaluate_stepped(shape: Stepped, rows: List[ProgressEntry], today: date, now: datetime) -> Eligibility:
    # A stepped habit completes at most once per day whatever times_per_period says.
    config = shape.config
    wanted = set(shape.step_ids)
    todays = [row for row in rows if row.date == today and row.step_id in wanted]
    done = frozenset(row.step_id for row in todays)
    fully_completed = bool(wanted) and done == wanted

    scheduled = is_scheduled_on(config, today)
    return Eligibility(
        completions_in_period=1 if fully_completed else 0,
        last_completed_at=max(row.completed_at for row in todays) if fully_completed else None,
        can_complete=scheduled and not fully_completed,
        next_available_at=None,
        is_scheduled_today=scheduled,
        times_per_period=1,
        now=now,
        completed_step_ids=done,
    )


def _evaluate_stepless(shape: Stepless, rows: List[ProgressEntry], today: date, now: datetime) -> Eligibility:
    config = shape.config
    start, end = period_bounds(config.frequency, today)
    completions = [row for row in rows if row.step_id is None and start <= row.date <= end]
    last_completed_at = max((row.completed_at for row in completions), default=None)

    scheduled = is_scheduled_on(config, today)
    can_complete = scheduled and len(completions) < config.times_per_period

    next_available_at = None
    if (
        config.frequency != "weekly"
        and config.times_per_period > 1
        and config.cooldown_minutes > 0
        and last_completed_at is not None
    ):
        cooldown_ends = last_completed_at + timedelta(minutes=config.cooldown_minutes)
        if now < cooldown_ends:
            can_complete = False
            next_available_at = cooldown_ends

    return Eligibility(
        completions_in_period=len(completions),
        last_completed_at=last_completed_at,
        can_complete=can_complete,
        next_available_at=next_available_at,
        is_scheduled_today=scheduled,
        times_per_period=config.times_per_period,
        now=now,
    )
