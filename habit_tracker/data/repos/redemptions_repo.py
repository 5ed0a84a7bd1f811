from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from habit_tracker.data.models import Child, RewardRedemption


def get_redemption(session: Session, redemption_id: int) -> Optional[RewardRedemption]:
    return session.get(RewardRedemption, redemption_id)


def list_for_child(session: Session, child_id: int) -> list[RewardRedemption]:
    return list(
        session.execute(
            select(RewardRedemption)
            .options(joinedload(RewardRedemption.reward))
            .where(RewardRedemption.child_id == child_id)
            .order_by(RewardRedemption.redeemed_at.desc(), RewardRedemption.id.desc())
        )
        .scalars()
        .all()
    )


def list_pending_for_parent(session: Session, parent_id: int) -> list[RewardRedemption]:
    return list(
        session.execute(
            select(RewardRedemption)
            .join(Child, RewardRedemption.child_id == Child.id)
            .options(joinedload(RewardRedemption.reward), joinedload(RewardRedemption.child))
            .where(Child.parent_id == parent_id, RewardRedemption.status == "pending")
            .order_by(RewardRedemption.redeemed_at, RewardRedemption.id)
        )
        .scalars()
        .all()
    )


def insert_redemption(session: Session, redemption: RewardRedemption) -> RewardRedemption:
    session.add(redemption)
    session.flush()
    return redemption
