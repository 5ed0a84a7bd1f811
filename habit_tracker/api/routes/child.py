"""
Child-mode API endpoints.

Each route acts for the child in the path and requires a child-mode token
issued for that child.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from habit_tracker.api.dependencies import get_now, get_session, require_child
from habit_tracker.api.schemas import CatalogRewardOut, CompletionResponse, RedemptionOut, TodayResponse
from habit_tracker.domain.services import child_service, progress_service, redemption_service

router = APIRouter(prefix="/api/child/{child_id}", dependencies=[Depends(require_child)])


def _completion_out(result) -> dict:
    return {
        "habit_id": result.habit_id,
        "step_id": result.step_id,
        "coins_awarded": result.coins_awarded,
        "coin_balance": result.coin_balance,
        "habit_completed": result.habit_completed,
        "habit": child_service.habit_view(result.status),
    }


@router.get("/today", response_model=TodayResponse)
def today(child_id: int, session: Session = Depends(get_session), now=Depends(get_now)):
    """
    The child's screen for right now: balance, streak, and every active habit
    with its steps and whether it can be completed (or when it next can).
    """
    return child_service.build_today(session, child_id, now)


@router.post("/habits/{habit_id}/complete", response_model=CompletionResponse)
def complete_habit(child_id: int, habit_id: int, session: Session = Depends(get_session), now=Depends(get_now)):
    """Complete a habit without steps once and earn its coins."""
    return _completion_out(progress_service.complete_habit(session, child_id, habit_id, now))


@router.post("/habits/{habit_id}/steps/{step_id}/complete", response_model=CompletionResponse)
def complete_step(
    child_id: int, habit_id: int, step_id: int, session: Session = Depends(get_session), now=Depends(get_now)
):
    """Check off one step. Coins are paid when the last open step is checked."""
    return _completion_out(progress_service.complete_step(session, child_id, habit_id, step_id, now))


@router.post("/habits/{habit_id}/steps/{step_id}/uncomplete", response_model=CompletionResponse)
def uncomplete_step(
    child_id: int, habit_id: int, step_id: int, session: Session = Depends(get_session), now=Depends(get_now)
):
    return _completion_out(progress_service.uncomplete_step(session, child_id, habit_id, step_id, now))


@router.get("/rewards", response_model=list[CatalogRewardOut])
def list_rewards(child_id: int, session: Session = Depends(get_session)):
    return child_service.reward_catalog(session, child_id)


@router.post("/rewards/{reward_id}/redeem", response_model=RedemptionOut)
def redeem_reward(child_id: int, reward_id: int, session: Session = Depends(get_session), now=Depends(get_now)):
    """Spend coins on a reward. The request waits for a parent to approve or deny it."""
    return redemption_service.redeem(session, child_id, reward_id, now)


@router.get("/redemptions", response_model=list[RedemptionOut])
def list_redemptions(child_id: int, session: Session = Depends(get_session)):
    return redemption_service.list_redemptions(session, child_id)
