from typing import Optional

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from habit_tracker.data.models import Child


def get_child(session: Session, child_id: int) -> Optional[Child]:
    return session.get(Child, child_id)


def list_children(session: Session, parent_id: int) -> list[Child]:
    return list(
        session.execute(select(Child).where(Child.parent_id == parent_id).order_by(Child.created_at, Child.id))
        .scalars()
        .all()
    )


def add_child(session: Session, child: Child) -> Child:
    session.add(child)
    session.flush()
    return child


def delete_child(session: Session, child: Child) -> None:
    session.delete(child)
    session.flush()


def lock_child(session: Session, child_id: int) -> bool:
    """
    Take the write lock on a child's row for the rest of the transaction.

    A no-op update locks the row on server databases and takes the database
    write lock on SQLite, so every flow touching this child's balance
    serializes behind it. Returns False when the child does not exist.
    """
    result = session.execute(
        update(Child)
        .where(Child.id == child_id)
        .values(coin_balance=Child.coin_balance)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def increment_balance(session: Session, child_id: int, amount: int) -> None:
    session.execute(
        update(Child)
        .where(Child.id == child_id)
        .values(coin_balance=Child.coin_balance + amount)
        .execution_options(synchronize_session=False)
    )


def decrement_balance_clamped(session: Session, child_id: int, amount: int) -> None:
    session.execute(
        update(Child)
        .where(Child.id == child_id)
        .values(coin_balance=case((Child.coin_balance > amount, Child.coin_balance - amount), else_=0))
        .execution_options(synchronize_session=False)
    )


def decrement_balance_if_covered(session: Session, child_id: int, amount: int) -> bool:
    result = session.execute(
        update(Child)
        .where(Child.id == child_id, Child.coin_balance >= amount)
        .values(coin_balance=Child.coin_balance - amount)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def read_balance(session: Session, child_id: int) -> Optional[int]:
    return session.execute(select(Child.coin_balance).where(Child.id == child_id)).scalar_one_or_none()
