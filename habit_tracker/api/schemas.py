from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Frequency = Literal["daily", "weekly", "custom"]


class UnlockRequest(BaseModel):
    email: str
    pin: str


class TokenResponse(BaseModel):
    token: str
    mode: str
    child_id: Optional[int] = None


class ProfileOut(BaseModel):
    id: int
    email: str
    name: str
    timezone: str
    has_pin: bool


class SettingsUpdate(BaseModel):
    name: Optional[str] = None
    timezone: Optional[str] = None
    old_pin: Optional[str] = None
    new_pin: Optional[str] = None


class ChildCreate(BaseModel):
    name: str
    age: int
    avatar_url: Optional[str] = None


class ChildUpdate(BaseModel):
    name: Optional[str] = None
    age: Optional[int] = None
    avatar_url: Optional[str] = None
    coin_balance: Optional[int] = None
    current_streak: Optional[int] = None


class ChildOut(BaseModel):
    id: int
    parent_id: int
    name: str
    age: int
    avatar_url: Optional[str]
    coin_balance: int
    current_streak: int
    created_at: datetime

    class Config:
        from_attributes = True


class StepOut(BaseModel):
    id: int
    name: str
    order_index: int

    class Config:
        from_attributes = True


class HabitCreate(BaseModel):
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    frequency: Frequency = "daily"
    allowed_days: Optional[List[str]] = None
    times_per_period: int = Field(default=1, ge=1)
    cooldown_minutes: Optional[int] = Field(default=None, ge=0)
    coins_per_completion: Optional[int] = Field(default=None, ge=1)
    is_active: bool = True
    steps: List[str] = []


class HabitUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    frequency: Optional[Frequency] = None
    allowed_days: Optional[List[str]] = None
    times_per_period: Optional[int] = Field(default=None, ge=1)
    cooldown_minutes: Optional[int] = Field(default=None, ge=0)
    coins_per_completion: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None
    steps: Optional[List[str]] = None


class HabitOut(BaseModel):
    id: int
    child_id: int
    name: str
    description: Optional[str]
    icon: str
    frequency: str
    allowed_days: Optional[List[str]] = Field(default=None, validation_alias="allowed_day_codes")
    times_per_period: int
    cooldown_minutes: int
    coins_per_completion: int
    is_active: bool
    created_at: datetime
    steps: List[StepOut]

    class Config:
        from_attributes = True


class RewardCreate(BaseModel):
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    coin_cost: int = Field(ge=1)
    is_active: bool = True


class RewardUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    coin_cost: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None


class RewardOut(BaseModel):
    id: int
    parent_id: int
    child_id: Optional[int]
    name: str
    description: Optional[str]
    icon: str
    coin_cost: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CatalogRewardOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    icon: str
    coin_cost: int
    affordable: bool


class RedemptionOut(BaseModel):
    id: int
    child_id: int
    reward_id: int
    status: str
    coin_cost: int
    redeemed_at: datetime
    decided_at: Optional[datetime]
    reward: RewardOut

    class Config:
        from_attributes = True


class TodayStepOut(BaseModel):
    id: int
    name: str
    order_index: int
    completed: bool


class TodayHabitOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    icon: str
    frequency: str
    times_per_period: int
    cooldown_minutes: int
    coins_per_completion: int
    steps: List[TodayStepOut]
    progress_percent: int
    completions_in_period: int
    last_completed_at: Optional[datetime]
    is_scheduled_today: bool
    can_complete: bool
    next_available_at: Optional[datetime]
    minutes_left: Optional[int]
    blocked_reason: Optional[str]


class TodayResponse(BaseModel):
    date: date
    child: ChildOut
    habits: List[TodayHabitOut]


class CompletionResponse(BaseModel):
    habit_id: int
    step_id: Optional[int]
    coins_awarded: int
    coin_balance: int
    habit_completed: bool
    habit: TodayHabitOut
