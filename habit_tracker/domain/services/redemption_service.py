"""
Reward redemption workflow.

A redemption is created ``pending`` and reserves its coins immediately. A
parent then moves it to ``approved`` or ``denied``; both are terminal, and a
denial refunds the cost that was paid. Every transition publishes one event
to the child's realtime listeners once it has committed.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from habit_tracker.data.models import RewardRedemption
from habit_tracker.data.repos import children_repo, redemptions_repo, rewards_repo
from habit_tracker.domain.clock import to_naive_utc, utcnow
from habit_tracker.domain.errors import Forbidden, InsufficientCoins, InvalidTransition, NotFound, ValidationFailed
from habit_tracker.domain.services import ledger_service
from habit_tracker.domain.services.notifier import RedemptionNotifier, notifier as default_notifier
from habit_tracker.domain.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

PENDING = "pending"
APPROVED = "approved"
DENIED = "denied"


def redemption_event(redemption: RewardRedemption) -> Dict[str, Any]:
    reward = redemption.reward
    return {
        "event": "redemption_status_changed",
        "redemption": {
            "id": redemption.id,
            "child_id": redemption.child_id,
            "reward_id": redemption.reward_id,
            "reward_name": reward.name if reward else None,
            "status": redemption.status,
            "coin_cost": redemption.coin_cost,
            "redeemed_at": redemption.redeemed_at.isoformat(),
            "decided_at": redemption.decided_at.isoformat() if redemption.decided_at else None,
        },
    }


def redeem(session: Session, child_id: int, reward_id: int, now=None) -> RewardRedemption:
    """Create a pending redemption and reserve the reward's cost from the balance."""
    now = to_naive_utc(now or utcnow())
    with atomic(session, "redeem"):
        child = children_repo.get_child(session, child_id)
        if not child or not children_repo.lock_child(session, child_id):
            raise NotFound("Child")
        reward = rewards_repo.get_reward(session, reward_id)
        if not reward or reward.parent_id != child.parent_id:
            raise NotFound("Reward")
        if reward.child_id is not None and reward.child_id != child_id:
            raise NotFound("Reward")
        if not reward.is_active:
            raise ValidationFailed("Reward is not available")

        try:
            ledger_service.spend(session, child_id, reward.coin_cost)
        except InsufficientCoins as exc:
            logger.warning("redemption rejected child_id=%s reward_id=%s shortfall=%s", child_id, reward_id, exc.shortfall)
            raise
        redemption = redemptions_repo.insert_redemption(
            session,
            RewardRedemption(
                child_id=child_id,
                reward_id=reward.id,
                status=PENDING,
                coin_cost=reward.coin_cost,
                redeemed_at=now,
            ),
        )

    logger.info("redemption created id=%s child_id=%s cost=%s", redemption.id, child_id, redemption.coin_cost)
    session.refresh(redemption)
    return redemption


def _decide(
    session: Session,
    redemption_id: int,
    parent_id: int,
    new_status: str,
    now,
    notifier: Optional[RedemptionNotifier],
) -> RewardRedemption:
    now = to_naive_utc(now or utcnow())
    with atomic(session, f"redemption_{new_status}"):
        redemption = redemptions_repo.get_redemption(session, redemption_id)
        if not redemption:
            raise NotFound("Redemption")
        child = children_repo.get_child(session, redemption.child_id)
        if not child or child.parent_id != parent_id:
            logger.warning("redemption decision refused id=%s parent_id=%s", redemption_id, parent_id)
            raise Forbidden()
        children_repo.lock_child(session, child.id)
        # Re-read under the lock; a concurrent decision may have landed.
        session.refresh(redemption)
        if redemption.status != PENDING:
            raise InvalidTransition(redemption.status)

        redemption.status = new_status
        redemption.decided_at = now
        if new_status == DENIED:
            ledger_service.credit(session, child.id, redemption.coin_cost)
        session.flush()

    session.refresh(redemption)
    logger.info("redemption %s id=%s child_id=%s", new_status, redemption.id, redemption.child_id)
    (notifier or default_notifier).publish(redemption.child_id, redemption_event(redemption))
    return redemption


def approve(session: Session, redemption_id: int, parent_id: int, now=None, notifier=None) -> RewardRedemption:
    return _decide(session, redemption_id, parent_id, APPROVED, now, notifier)


def deny(session: Session, redemption_id: int, parent_id: int, now=None, notifier=None) -> RewardRedemption:
    """Deny a pending redemption and refund the cost paid at redemption time."""
    return _decide(session, redemption_id, parent_id, DENIED, now, notifier)


def list_redemptions(session: Session, child_id: int) -> list[RewardRedemption]:
    return redemptions_repo.list_for_child(session, child_id)


def list_pending(session: Session, parent_id: int) -> list[RewardRedemption]:
    return redemptions_repo.list_pending_for_parent(session, parent_id)
