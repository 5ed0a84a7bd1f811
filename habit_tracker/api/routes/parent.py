"""
Parent-mode API endpoints.

Unlocking with the PIN issues a parent token; every other endpoint requires
it and only touches children owned by that parent.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from habit_tracker.api.dependencies import get_now, get_session, require_parent
from habit_tracker.api.schemas import (
    ChildCreate,
    ChildOut,
    ChildUpdate,
    HabitCreate,
    HabitOut,
    HabitUpdate,
    ProfileOut,
    RedemptionOut,
    RewardCreate,
    RewardOut,
    RewardUpdate,
    SettingsUpdate,
    TokenResponse,
    UnlockRequest,
)
from habit_tracker.domain.services import (
    child_service,
    habit_service,
    profile_service,
    redemption_service,
    reward_service,
)
from habit_tracker.security.token import CHILD_MODE, PARENT_MODE, Actor, create_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/parent")


def _profile_out(profile) -> dict:
    return {
        "id": profile.id,
        "email": profile.email,
        "name": profile.name,
        "timezone": profile.timezone,
        "has_pin": bool(profile.pin_hash),
    }


@router.post("/unlock", response_model=TokenResponse)
def unlock(payload: UnlockRequest, session: Session = Depends(get_session)):
    """
    Enter parent mode.

    Verifies the profile's PIN and returns a parent token used as a Bearer
    header on every other parent endpoint. Leaving child mode on a shared
    device goes through here as well.
    """
    profile = profile_service.authenticate(session, payload.email, payload.pin)
    if not profile:
        logger.warning("unlock failed email=%s", payload.email)
        raise HTTPException(status_code=401, detail="Invalid PIN")
    return {"token": create_token(profile.id, PARENT_MODE), "mode": PARENT_MODE}


@router.post("/child-mode/{child_id}", response_model=TokenResponse)
def enter_child_mode(child_id: int, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    """Hand the device to a child: returns a token that can only act for that child."""
    child = child_service.get_owned_child(session, actor.profile_id, child_id)
    return {"token": create_token(actor.profile_id, CHILD_MODE, child.id), "mode": CHILD_MODE, "child_id": child.id}


# ============================================
# SETTINGS
# ============================================

@router.get("/settings", response_model=ProfileOut)
def get_settings(session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    return _profile_out(profile_service.get_profile(session, actor.profile_id))


@router.put("/settings", response_model=ProfileOut)
def update_settings(payload: SettingsUpdate, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    """Update name, timezone, or PIN. Changing an existing PIN requires the old one."""
    profile = profile_service.update_settings(session, actor.profile_id, payload.model_dump(exclude_unset=True))
    return _profile_out(profile)


# ============================================
# CHILDREN
# ============================================

@router.get("/children", response_model=list[ChildOut])
def list_children(session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    return child_service.list_children(session, actor.profile_id)


@router.post("/children", response_model=ChildOut)
def create_child(payload: ChildCreate, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    return child_service.create_child(session, actor.profile_id, payload.model_dump())


@router.get("/children/{child_id}", response_model=ChildOut)
def get_child(child_id: int, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    return child_service.get_owned_child(session, actor.profile_id, child_id)


@router.put("/children/{child_id}", response_model=ChildOut)
def update_child(
    child_id: int, payload: ChildUpdate, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)
):
    return child_service.update_child(session, actor.profile_id, child_id, payload.model_dump(exclude_unset=True))


@router.delete("/children/{child_id}")
def delete_child(child_id: int, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    """Delete a child together with their habits, progress, rewards and redemptions."""
    child_service.delete_child(session, actor.profile_id, child_id)
    return {"status": "ok"}


# ============================================
# HABITS
# ============================================

@router.get("/children/{child_id}/habits", response_model=list[HabitOut])
def list_habits(child_id: int, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    """All of a child's habits, newest first, inactive ones included."""
    return habit_service.list_habits(session, actor.profile_id, child_id)


@router.post("/children/{child_id}/habits", response_model=HabitOut)
def create_habit(
    child_id: int, payload: HabitCreate, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)
):
    return habit_service.create_habit(session, actor.profile_id, child_id, payload.model_dump(exclude_unset=True))


@router.put("/habits/{habit_id}", response_model=HabitOut)
def update_habit(
    habit_id: int,
    payload: HabitUpdate,
    session: Session = Depends(get_session),
    actor: Actor = Depends(require_parent),
    now=Depends(get_now),
):
    """
    Update a habit.

    Sending ``steps`` replaces the whole step list; leaving it out keeps the
    current steps. Fields sent as null are left unchanged.
    """
    return habit_service.update_habit(
        session, actor.profile_id, habit_id, payload.model_dump(exclude_unset=True), now=now
    )


@router.delete("/habits/{habit_id}")
def delete_habit(habit_id: int, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    habit_service.delete_habit(session, actor.profile_id, habit_id)
    return {"status": "ok"}


# ============================================
# REWARDS
# ============================================

@router.get("/children/{child_id}/rewards", response_model=list[RewardOut])
def list_rewards(child_id: int, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    return reward_service.list_rewards(session, actor.profile_id, child_id)


@router.post("/children/{child_id}/rewards", response_model=RewardOut)
def create_reward(
    child_id: int, payload: RewardCreate, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)
):
    return reward_service.create_reward(session, actor.profile_id, child_id, payload.model_dump(exclude_unset=True))


@router.put("/rewards/{reward_id}", response_model=RewardOut)
def update_reward(
    reward_id: int, payload: RewardUpdate, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)
):
    return reward_service.update_reward(session, actor.profile_id, reward_id, payload.model_dump(exclude_unset=True))


@router.delete("/rewards/{reward_id}")
def delete_reward(reward_id: int, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    reward_service.delete_reward(session, actor.profile_id, reward_id)
    return {"status": "ok"}


# ============================================
# REDEMPTIONS
# ============================================

@router.get("/children/{child_id}/redemptions", response_model=list[RedemptionOut])
def list_redemptions(child_id: int, session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    child_service.get_owned_child(session, actor.profile_id, child_id)
    return redemption_service.list_redemptions(session, child_id)


@router.get("/redemptions/pending", response_model=list[RedemptionOut])
def list_pending(session: Session = Depends(get_session), actor: Actor = Depends(require_parent)):
    """Pending redemptions across all of this parent's children, oldest first."""
    return redemption_service.list_pending(session, actor.profile_id)


@router.post("/redemptions/{redemption_id}/approve", response_model=RedemptionOut)
def approve_redemption(
    redemption_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(require_parent),
    now=Depends(get_now),
):
    """Approve a pending redemption. The coins were already taken when the child redeemed."""
    return redemption_service.approve(session, redemption_id, actor.profile_id, now=now)


@router.post("/redemptions/{redemption_id}/deny", response_model=RedemptionOut)
def deny_redemption(
    redemption_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(require_parent),
    now=Depends(get_now),
):
    """Deny a pending redemption and refund the coins the child paid."""
    return redemption_service.deny(session, redemption_id, actor.profile_id, now=now)
