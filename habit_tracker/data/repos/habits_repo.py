from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from habit_tracker.data.models import Habit, HabitProgress, HabitStep


def get_habit(session: Session, habit_id: int) -> Optional[Habit]:
    return session.get(Habit, habit_id)


def list_habits(session: Session, child_id: int, active_only: bool = False) -> list[Habit]:
    query = select(Habit).where(Habit.child_id == child_id)
    if active_only:
        query = query.where(Habit.is_active.is_(True))
    return list(session.execute(query.order_by(Habit.created_at.desc(), Habit.id.desc())).scalars().all())


def list_steps(session: Session, habit_id: int) -> list[HabitStep]:
    return list(
        session.execute(select(HabitStep).where(HabitStep.habit_id == habit_id).order_by(HabitStep.order_index))
        .scalars()
        .all()
    )


def add_habit(session: Session, habit: Habit) -> Habit:
    session.add(habit)
    session.flush()
    return habit


def replace_steps(session: Session, habit: Habit, names: list[str]) -> list[HabitStep]:
    """Delete every step of the habit (and progress recorded against them), then insert ``names`` in order."""
    old_ids = [step.id for step in list_steps(session, habit.id)]
    if old_ids:
        session.execute(delete(HabitProgress).where(HabitProgress.step_id.in_(old_ids)))
        session.execute(delete(HabitStep).where(HabitStep.id.in_(old_ids)))
    session.expire(habit, ["steps"])
    steps = [HabitStep(habit_id=habit.id, name=name, order_index=index) for index, name in enumerate(names)]
    session.add_all(steps)
    session.flush()
    return steps


def delete_habit(session: Session, habit: Habit) -> None:
    session.delete(habit)
    session.flush()
