import pytest

from habit_tracker.domain.errors import InsufficientCoins, NotFound, ValidationFailed
from habit_tracker.domain.services import ledger_service


def test_credit_adds_coins(session, make_profile, make_child, read_child) -> None:
    child_id = make_child(make_profile(), coin_balance=5)
    ledger_service.credit(session, child_id, 10)
    session.commit()
    assert read_child(child_id).coin_balance == 15


def test_debit_stops_at_zero(session, make_profile, make_child, read_child) -> None:
    child_id = make_child(make_profile(), coin_balance=7)

    assert ledger_service.debit(session, child_id, 5) is False
    assert ledger_service.debit(session, child_id, 5) is True
    assert ledger_service.debit(session, child_id, 5) is True
    session.commit()

    assert read_child(child_id).coin_balance == 0


def test_spend_requires_full_cover(session, make_profile, make_child, read_child) -> None:
    child_id = make_child(make_profile(), coin_balance=20)

    with pytest.raises(InsufficientCoins) as excinfo:
        ledger_service.spend(session, child_id, 50)
    assert excinfo.value.shortfall == 30

    ledger_service.spend(session, child_id, 20)
    session.commit()
    assert read_child(child_id).coin_balance == 0


@pytest.mark.parametrize("operation", [ledger_service.credit, ledger_service.debit, ledger_service.spend])
def test_negative_amounts_are_rejected(session, make_profile, make_child, operation) -> None:
    child_id = make_child(make_profile(), coin_balance=20)
    with pytest.raises(ValidationFailed):
        operation(session, child_id, -1)


def test_missing_child(session) -> None:
    with pytest.raises(NotFound):
        ledger_service.debit(session, 999, 1)
    with pytest.raises(NotFound):
        ledger_service.spend(session, 999, 1)
