"""
Typed failures raised by the domain services.

Each error carries a stable ``code`` and the HTTP status the API answers
with, plus any payload the client needs to render specific guidance.
"""
from datetime import datetime
from typing import Any, Dict, Optional


class HabitTrackerError(Exception):
    code = "error"
    status_code = 400
    message = "Request failed"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)
        self.detail = message or self.message

    def payload(self) -> Dict[str, Any]:
        return {}


class NotFound(HabitTrackerError):
    code = "not_found"
    status_code = 404

    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity


class Forbidden(HabitTrackerError):
    code = "forbidden"
    status_code = 403
    message = "Not allowed for this account"


class ValidationFailed(HabitTrackerError):
    code = "validation_failed"
    status_code = 400


class NotScheduledToday(HabitTrackerError):
    code = "not_scheduled_today"
    status_code = 409
    message = "This habit is not scheduled for today"


class CooldownActive(HabitTrackerError):
    code = "cooldown_active"
    status_code = 409

    def __init__(self, minutes_left: int, next_available_at: datetime) -> None:
        super().__init__(f"Try again in {minutes_left} minute{'s' if minutes_left != 1 else ''}")
        self.minutes_left = minutes_left
        self.next_available_at = next_available_at

    def payload(self) -> Dict[str, Any]:
        return {"minutes_left": self.minutes_left, "next_available_at": self.next_available_at.isoformat()}


class MaxCompletionsReached(HabitTrackerError):
    code = "max_completions_reached"
    status_code = 409

    def __init__(self, times_per_period: int) -> None:
        super().__init__("Already completed the maximum number of times for this period")
        self.times_per_period = times_per_period

    def payload(self) -> Dict[str, Any]:
        return {"times_per_period": self.times_per_period}


class AlreadyCompleted(HabitTrackerError):
    code = "already_completed"
    status_code = 409
    message = "Step already completed today"


class StepNotCompleted(HabitTrackerError):
    code = "step_not_completed"
    status_code = 409
    message = "Step has not been completed today"


class StepUncompleteDisabled(HabitTrackerError):
    code = "step_uncomplete_disabled"
    status_code = 409
    message = "Completed steps cannot be undone"


class InsufficientCoins(HabitTrackerError):
    code = "insufficient_coins"
    status_code = 409

    def __init__(self, shortfall: int) -> None:
        super().__init__(f"Not enough coins, {shortfall} more needed")
        self.shortfall = shortfall

    def payload(self) -> Dict[str, Any]:
        return {"shortfall": self.shortfall}


class InvalidTransition(HabitTrackerError):
    code = "invalid_transition"
    status_code = 409

    def __init__(self, current_status: str) -> None:
        super().__init__(f"Redemption is already {current_status}")
        self.current_status = current_status

    def payload(self) -> Dict[str, Any]:
        return {"status": self.current_status}


class StoreWriteFailed(HabitTrackerError):
    code = "store_write_failed"
    status_code = 503
    message = "Could not save your change, please try again"
