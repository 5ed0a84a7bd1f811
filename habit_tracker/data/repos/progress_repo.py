from datetime import date
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from habit_tracker.data.models import HabitProgress


def list_progress(session: Session, habit_id: int, child_id: int, start: date, end: Optional[date] = None) -> list[HabitProgress]:
    end = end or start
    return list(
        session.execute(
            select(HabitProgress)
            .where(
                HabitProgress.habit_id == habit_id,
                HabitProgress.child_id == child_id,
                HabitProgress.date >= start,
                HabitProgress.date <= end,
            )
            .order_by(HabitProgress.completed_at, HabitProgress.id)
        )
        .scalars()
        .all()
    )


def insert_progress(session: Session, row: HabitProgress) -> HabitProgress:
    session.add(row)
    session.flush()
    return row


def delete_step_progress(session: Session, habit_id: int, step_id: int, child_id: int, on_date: date) -> int:
    result = session.execute(
        delete(HabitProgress).where(
            HabitProgress.habit_id == habit_id,
            HabitProgress.step_id == step_id,
            HabitProgress.child_id == child_id,
            HabitProgress.date == on_date,
        )
    )
    return result.rowcount
