"""
Immutable views of a habit used by the pure rules.

A habit is either ``Stepless`` (each completion stands alone) or ``Stepped``
(one completion means every step done today). Building one from the ORM row
keeps the rules free of database state.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import FrozenSet, Optional, Tuple, Union


@dataclass(frozen=True)
class HabitConfig:
    habit_id: Optional[int]
    frequency: str
    times_per_period: int = 1
    cooldown_minutes: int = 0
    coins_per_completion: int = 1
    allowed_days: Optional[FrozenSet[str]] = None

    @classmethod
    def from_model(cls, habit) -> HabitConfig:
        codes = habit.allowed_day_codes
        return cls(
            habit_id=habit.id,
            frequency=habit.frequency,
            times_per_period=habit.times_per_period,
            cooldown_minutes=habit.cooldown_minutes,
            coins_per_completion=habit.coins_per_completion,
            allowed_days=frozenset(codes) if codes is not None else None,
        )


@dataclass(frozen=True)
class Stepless:
    config: HabitConfig


@dataclass(frozen=True)
class Stepped:
    config: HabitConfig
    step_ids: Tuple[int, ...] = field(default_factory=tuple)


HabitShape = Union[Stepless, Stepped]


def shape_of(habit, steps=None) -> HabitShape:
    """Tag an ORM habit by whether it has steps."""
    config = HabitConfig.from_model(habit)
    steps = habit.steps if steps is None else steps
    if steps:
        return Stepped(config, tuple(step.id for step in steps))
    return Stepless(config)


@dataclass(frozen=True)
class ProgressEntry:
    step_id: Optional[int]
    date: date
    completed_at: datetime

    @classmethod
    def from_model(cls, row) -> ProgressEntry:
        return cls(step_id=row.step_id, date=row.date, completed_at=row.completed_at)
