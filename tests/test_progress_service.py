from datetime import datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from habit_tracker.data.models import Child, HabitProgress, HabitStep
from habit_tracker.data.repos import progress_repo
from habit_tracker.domain.errors import (
    AlreadyCompleted,
    CooldownActive,
    MaxCompletionsReached,
    NotFound,
    NotScheduledToday,
    StepNotCompleted,
    StepUncompleteDisabled,
    StoreWriteFailed,
    ValidationFailed,
)
from habit_tracker.domain.services import habit_service, progress_service

from .conftest import MONDAY_MORNING


def step_ids(session, habit_id):
    return list(
        session.execute(select(HabitStep.id).where(HabitStep.habit_id == habit_id).order_by(HabitStep.order_index)).scalars()
    )


def test_stepless_completion_pays_once(session, family, make_habit, read_child) -> None:
    _, child_id = family
    habit_id = make_habit(child_id, coins_per_completion=10)

    result = progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING)

    assert result.coins_awarded == 10
    assert result.coin_balance == 10
    assert result.habit_completed
    assert not result.status.eligibility.can_complete
    assert read_child(child_id).coin_balance == 10


def test_completions_stop_at_times_per_period(session, family, make_habit, read_child) -> None:
    _, child_id = family
    habit_id = make_habit(child_id, times_per_period=3, cooldown_minutes=0, coins_per_completion=5)

    for minute in range(3):
        progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING + timedelta(minutes=minute))
    with pytest.raises(MaxCompletionsReached) as excinfo:
        progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING + timedelta(minutes=5))

    assert excinfo.value.times_per_period == 3
    assert read_child(child_id).coin_balance == 15


def test_cooldown_rejects_then_allows(session, family, make_habit) -> None:
    _, child_id = family
    habit_id = make_habit(child_id, times_per_period=3, cooldown_minutes=60)

    progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING)
    with pytest.raises(CooldownActive) as excinfo:
        progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING + timedelta(minutes=30))
    assert excinfo.value.minutes_left == 30
    assert excinfo.value.next_available_at == MONDAY_MORNING + timedelta(minutes=60)

    result = progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING + timedelta(minutes=61))
    assert result.status.eligibility.completions_in_period == 2


def test_next_day_starts_a_fresh_period(session, family, make_habit, read_child) -> None:
    _, child_id = family
    habit_id = make_habit(child_id)

    progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING)
    with pytest.raises(MaxCompletionsReached):
        progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING + timedelta(hours=1))
    progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING + timedelta(days=1))

    assert read_child(child_id).coin_balance == 20


def test_day_boundary_uses_the_parents_timezone(session, family, make_habit) -> None:
    _, child_id = family
    habit_id = make_habit(child_id)
    progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING)

    # 02:00 UTC Tuesday is still Monday evening in New York.
    with pytest.raises(MaxCompletionsReached):
        progress_service.complete_habit(session, child_id, habit_id, now=datetime(2024, 6, 4, 2, 0))
    result = progress_service.complete_habit(session, child_id, habit_id, now=datetime(2024, 6, 4, 5, 0))
    assert result.status.today.isoformat() == "2024-06-04"


def test_custom_habit_rejected_off_schedule(session, family, make_habit, read_child) -> None:
    _, child_id = family
    habit_id = make_habit(child_id, frequency="custom", allowed_days="tue,thu")

    with pytest.raises(NotScheduledToday):
        progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING)
    assert read_child(child_id).coin_balance == 0


def test_steps_pay_only_when_the_last_one_is_done(session, family, make_habit, read_child) -> None:
    _, child_id = family
    habit_id = make_habit(child_id, steps=["Get out of bed", "Brush teeth", "Get dressed"], coins_per_completion=15)
    first, second, third = step_ids(session, habit_id)

    assert progress_service.complete_step(session, child_id, habit_id, first, now=MONDAY_MORNING).coins_awarded == 0
    assert progress_service.complete_step(session, child_id, habit_id, second, now=MONDAY_MORNING).coins_awarded == 0
    result = progress_service.complete_step(session, child_id, habit_id, third, now=MONDAY_MORNING)

    assert result.habit_completed
    assert result.coins_awarded == 15
    assert read_child(child_id).coin_balance == 15
    with pytest.raises(AlreadyCompleted):
        progress_service.complete_step(session, child_id, habit_id, third, now=MONDAY_MORNING)
    assert read_child(child_id).coin_balance == 15


def test_stepped_habit_cannot_be_completed_whole(session, family, make_habit) -> None:
    _, child_id = family
    habit_id = make_habit(child_id, steps=["One", "Two"])
    with pytest.raises(ValidationFailed):
        progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING)


def test_step_from_another_habit_is_not_found(session, family, make_habit) -> None:
    _, child_id = family
    habit_id = make_habit(child_id, steps=["One"])
    other_id = make_habit(child_id, name="Other", steps=["Elsewhere"])
    (foreign_step,) = step_ids(session, other_id)
    with pytest.raises(NotFound):
        progress_service.complete_step(session, child_id, habit_id, foreign_step, now=MONDAY_MORNING)


def test_habit_of_another_child_is_not_found(session, make_profile, make_child, make_habit) -> None:
    parent_id = make_profile()
    child_id = make_child(parent_id)
    sibling_id = make_child(parent_id, name="Bo")
    habit_id = make_habit(sibling_id)
    with pytest.raises(NotFound):
        progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING)


def test_inactive_habit_is_rejected(session, family, make_habit) -> None:
    _, child_id = family
    habit_id = make_habit(child_id, is_active=False)
    with pytest.raises(ValidationFailed):
        progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING)


def test_uncomplete_is_disabled_by_default(session, family, make_habit) -> None:
    _, child_id = family
    habit_id = make_habit(child_id, steps=["One", "Two"])
    first, _ = step_ids(session, habit_id)
    progress_service.complete_step(session, child_id, habit_id, first, now=MONDAY_MORNING)

    with pytest.raises(StepUncompleteDisabled):
        progress_service.uncomplete_step(session, child_id, habit_id, first, now=MONDAY_MORNING)


def test_uncomplete_claws_back_a_finished_habit(session, make_profile, make_child, make_habit, read_child) -> None:
    parent_id = make_profile()
    child_id = make_child(parent_id)
    habit_id = make_habit(child_id, steps=["One", "Two"], coins_per_completion=10)
    first, second = step_ids(session, habit_id)
    progress_service.complete_step(session, child_id, habit_id, first, now=MONDAY_MORNING)
    progress_service.complete_step(session, child_id, habit_id, second, now=MONDAY_MORNING)

    result = progress_service.uncomplete_step(
        session, child_id, habit_id, second, now=MONDAY_MORNING, allow_uncomplete=True
    )

    assert result.coins_awarded == -10
    assert read_child(child_id).coin_balance == 0
    assert result.status.eligibility.completed_step_ids == {first}
    with pytest.raises(StepNotCompleted):
        progress_service.uncomplete_step(
            session, child_id, habit_id, second, now=MONDAY_MORNING, allow_uncomplete=True
        )

    # Completing it again pays again, once.
    progress_service.complete_step(session, child_id, habit_id, second, now=MONDAY_MORNING)
    assert read_child(child_id).coin_balance == 10


def test_uncomplete_clawback_never_goes_below_zero(session, make_profile, make_child, make_habit, read_child, session_factory) -> None:
    parent_id = make_profile()
    child_id = make_child(parent_id)
    habit_id = make_habit(child_id, steps=["Only"], coins_per_completion=10)
    (only,) = step_ids(session, habit_id)
    progress_service.complete_step(session, child_id, habit_id, only, now=MONDAY_MORNING)

    with session_factory() as other:
        child = other.get(Child, child_id)
        child.coin_balance = 4
        other.commit()

    progress_service.uncomplete_step(session, child_id, habit_id, only, now=MONDAY_MORNING, allow_uncomplete=True)
    assert read_child(child_id).coin_balance == 0


def test_failed_write_changes_nothing(session, family, make_habit, read_child, monkeypatch) -> None:
    _, child_id = family
    habit_id = make_habit(child_id)

    def fail(*args, **kwargs):
        raise OperationalError("INSERT INTO habit_progress", {}, Exception("disk I/O error"))

    monkeypatch.setattr(progress_repo, "insert_progress", fail)
    with pytest.raises(StoreWriteFailed):
        progress_service.complete_habit(session, child_id, habit_id, now=MONDAY_MORNING)

    assert read_child(child_id).coin_balance == 0
    assert session.execute(select(HabitProgress)).scalars().all() == []


def test_editing_steps_keeps_todays_completion(session, family, make_habit, read_child) -> None:
    parent_id, child_id = family
    habit_id = make_habit(child_id, steps=["Bath", "Teeth"], coins_per_completion=15)
    for step_id in step_ids(session, habit_id):
        progress_service.complete_step(session, child_id, habit_id, step_id, now=MONDAY_MORNING)
    assert read_child(child_id).coin_balance == 15

    habit_service.update_habit(
        session, parent_id, habit_id, {"steps": ["Bath", "Teeth", "Story"]}, now=MONDAY_MORNING + timedelta(hours=1)
    )
    story = step_ids(session, habit_id)[-1]

    with pytest.raises(AlreadyCompleted):
        progress_service.complete_step(session, child_id, habit_id, story, now=MONDAY_MORNING + timedelta(hours=2))
    assert read_child(child_id).coin_balance == 15

    # The new step list starts fresh the next day.
    tomorrow = MONDAY_MORNING + timedelta(days=1)
    for step_id in step_ids(session, habit_id):
        result = progress_service.complete_step(session, child_id, habit_id, step_id, now=tomorrow)
    assert result.habit_completed
    assert read_child(child_id).coin_balance == 30


def test_editing_steps_of_an_open_habit_records_nothing(session, family, make_habit) -> None:
    parent_id, child_id = family
    habit_id = make_habit(child_id, steps=["Bath", "Teeth"])
    first, _ = step_ids(session, habit_id)
    progress_service.complete_step(session, child_id, habit_id, first, now=MONDAY_MORNING)

    habit_service.update_habit(session, parent_id, habit_id, {"steps": ["Shower"]}, now=MONDAY_MORNING)

    assert session.execute(select(HabitProgress).where(HabitProgress.habit_id == habit_id)).scalars().all() == []
