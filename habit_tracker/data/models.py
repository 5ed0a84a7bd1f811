from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from habit_tracker.domain.clock import utcnow


class Base(DeclarativeBase):
    pass


class Profile(Base):
    """Parent identity record. ``pin_hash`` gates parent mode on a shared device."""

    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    pin_hash: Mapped[str | None] = mapped_column(Text, nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="America/New_York")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    children: Mapped[list[Child]] = relationship(
        "Child", back_populates="parent", cascade="all, delete-orphan"
    )


class Child(Base):
    __tablename__ = "children"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    parent_id: Mapped[int] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    coin_balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    parent: Mapped[Profile] = relationship("Profile", back_populates="children")
    habits: Mapped[list[Habit]] = relationship(
        "Habit", back_populates="child", cascade="all, delete-orphan"
    )
    rewards: Mapped[list[Reward]] = relationship(
        "Reward", back_populates="child", cascade="all, delete-orphan"
    )
    redemptions: Mapped[list[RewardRedemption]] = relationship(
        "RewardRedemption", back_populates="child", cascade="all, delete-orphan"
    )


class Habit(Base):
    """
    A recurring task a child completes for coins.

    ``allowed_days`` holds comma separated weekday codes and is only set for
    the ``custom`` frequency. ``cooldown_minutes`` only matters when
    ``times_per_period`` is greater than one.
    """

    __tablename__ = "habits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    child_id: Mapped[int] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str] = mapped_column(String(20), nullable=False, default="⭐")
    frequency: Mapped[str] = mapped_column(String(20), nullable=False, default="daily")
    allowed_days: Mapped[str | None] = mapped_column(String(40), nullable=True)
    times_per_period: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    cooldown_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    coins_per_completion: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    child: Mapped[Child] = relationship("Child", back_populates="habits")
    steps: Mapped[list[HabitStep]] = relationship(
        "HabitStep",
        back_populates="habit",
        order_by="HabitStep.order_index",
        cascade="all, delete-orphan",
    )
    progress: Mapped[list[HabitProgress]] = relationship(
        "HabitProgress", back_populates="habit", cascade="all, delete-orphan"
    )

    @property
    def allowed_day_codes(self) -> list[str] | None:
        if self.allowed_days is None:
            return None
        return [code for code in self.allowed_days.split(",") if code]


class HabitStep(Base):
    __tablename__ = "habit_steps"
    __table_args__ = (UniqueConstraint("habit_id", "order_index", name="uq_habit_steps_order"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    habit_id: Mapped[int] = mapped_column(ForeignKey("habits.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    habit: Mapped[Habit] = relationship("Habit", back_populates="steps")


class HabitProgress(Base):
    """
    Immutable completion record.

    ``step_id`` is null for a whole-habit completion. ``date`` is the calendar
    day in the parent's timezone; ``completed_at`` is naive UTC.
    """

    __tablename__ = "habit_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    habit_id: Mapped[int] = mapped_column(ForeignKey("habits.id", ondelete="CASCADE"), nullable=False)
    child_id: Mapped[int] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"), nullable=False)
    step_id: Mapped[int | None] = mapped_column(ForeignKey("habit_steps.id", ondelete="CASCADE"), nullable=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    habit: Mapped[Habit] = relationship("Habit", back_populates="progress")


class Reward(Base):
    __tablename__ = "rewards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    parent_id: Mapped[int] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    child_id: Mapped[int | None] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"), nullable=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str] = mapped_column(String(20), nullable=False, default="🎁")
    coin_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    child: Mapped[Child | None] = relationship("Child", back_populates="rewards")
    redemptions: Mapped[list[RewardRedemption]] = relationship(
        "RewardRedemption", back_populates="reward", cascade="all, delete-orphan"
    )


class RewardRedemption(Base):
    """
    A child's request to spend coins on a reward.

    ``coin_cost`` is copied from the reward when the redemption is created so
    a denial refunds exactly what was paid.
    """

    __tablename__ = "reward_redemptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    child_id: Mapped[int] = mapped_column(ForeignKey("children.id", ondelete="CASCADE"), nullable=False, index=True)
    reward_id: Mapped[int] = mapped_column(ForeignKey("rewards.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    coin_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    redeemed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    child: Mapped[Child] = relationship("Child", back_populates="redemptions")
    reward: Mapped[Reward] = relationship("Reward", back_populates="redemptions")
