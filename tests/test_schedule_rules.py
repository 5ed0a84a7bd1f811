from datetime import date, timedelta

import pytest

from habit_tracker.config import WEEKDAY_CODES
from habit_tracker.domain.rules.period_rules import period_bounds
from habit_tracker.domain.rules.schedule_rules import is_scheduled_on, weekday_code
from habit_tracker.domain.rules.shapes import HabitConfig

MONDAY = date(2024, 6, 3)
WEEK = [MONDAY + timedelta(days=offset) for offset in range(7)]


def custom(*days) -> HabitConfig:
    return HabitConfig(habit_id=1, frequency="custom", allowed_days=frozenset(days))


def test_weekday_codes_follow_the_calendar() -> None:
    assert [weekday_code(day) for day in WEEK] == WEEKDAY_CODES


@pytest.mark.parametrize("frequency", ["daily", "weekly"])
def test_daily_and_weekly_are_offered_every_day(frequency) -> None:
    config = HabitConfig(habit_id=1, frequency=frequency)
    assert all(is_scheduled_on(config, day) for day in WEEK)


@pytest.mark.parametrize("allowed", [("mon",), ("mon", "wed", "fri"), ("sat", "sun"), tuple(WEEKDAY_CODES)])
def test_custom_is_offered_exactly_on_allowed_days(allowed) -> None:
    config = custom(*allowed)
    for day in WEEK:
        assert is_scheduled_on(config, day) == (weekday_code(day) in allowed)


def test_custom_with_no_days_is_never_offered() -> None:
    empty = custom()
    missing = HabitConfig(habit_id=1, frequency="custom", allowed_days=None)
    assert not any(is_scheduled_on(empty, day) for day in WEEK)
    assert not any(is_scheduled_on(missing, day) for day in WEEK)


def test_unknown_frequency_is_never_offered() -> None:
    assert not is_scheduled_on(HabitConfig(habit_id=1, frequency="monthly"), MONDAY)


def test_schedule_check_is_stable_for_the_same_inputs() -> None:
    config = custom("tue", "thu")
    first = [is_scheduled_on(config, day) for day in WEEK]
    second = [is_scheduled_on(config, day) for day in WEEK]
    assert first == second


def test_weekly_period_runs_monday_to_sunday() -> None:
    for day in WEEK:
        assert period_bounds("weekly", day) == (MONDAY, MONDAY + timedelta(days=6))


@pytest.mark.parametrize("frequency", ["daily", "custom"])
def test_other_periods_are_the_day_itself(frequency) -> None:
    day = MONDAY + timedelta(days=3)
    assert period_bounds(frequency, day) == (day, day)
