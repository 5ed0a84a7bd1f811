"""
Coin ledger.

A child's ``coin_balance`` only moves through these functions. They run inside
the caller's transaction, after the progress or redemption write they pay for,
and use single SQL expressions so concurrent flows cannot lose updates.
"""
import logging

from sqlalchemy.orm import Session

from habit_tracker.data.repos import children_repo
from habit_tracker.domain.errors import InsufficientCoins, NotFound, ValidationFailed

logger = logging.getLogger(__name__)


def _check_amount(amount: int) -> None:
    if amount < 0:
        raise ValidationFailed("Coin amount must not be negative")


def credit(session: Session, child_id: int, amount: int) -> None:
    _check_amount(amount)
    children_repo.increment_balance(session, child_id, amount)


def debit(session: Session, child_id: int, amount: int) -> bool:
    """Take coins back, stopping at zero. Returns True when the floor was hit."""
    _check_amount(amount)
    balance = children_repo.read_balance(session, child_id)
    if balance is None:
        raise NotFound("Child")
    clamped = balance < amount
    if clamped:
        logger.warning("debit clamped at zero child_id=%s balance=%s amount=%s", child_id, balance, amount)
    children_repo.decrement_balance_clamped(session, child_id, amount)
    return clamped


def spend(session: Session, child_id: int, amount: int) -> None:
    """Debit that must be fully covered by the current balance."""
    _check_amount(amount)
    if children_repo.decrement_balance_if_covered(session, child_id, amount):
        return
    balance = children_repo.read_balance(session, child_id)
    if balance is None:
        raise NotFound("Child")
    raise InsufficientCoins(amount - balance)
