from datetime import date, timedelta
from typing import Tuple


def period_bounds(frequency: str, today: date) -> Tuple[date, date]:
    """Inclusive first and last day of the period ``today`` belongs to."""
    if frequency == "weekly":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    return today, today
