from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from habit_tracker.data.models import Reward


def get_reward(session: Session, reward_id: int) -> Optional[Reward]:
    return session.get(Reward, reward_id)


def list_rewards(session: Session, child_id: int, active_only: bool = False) -> list[Reward]:
    query = select(Reward).where(Reward.child_id == child_id)
    if active_only:
        query = query.where(Reward.is_active.is_(True))
    return list(session.execute(query.order_by(Reward.created_at.desc(), Reward.id.desc())).scalars().all())


def add_reward(session: Session, reward: Reward) -> Reward:
    session.add(reward)
    session.flush()
    return reward


def delete_reward(session: Session, reward: Reward) -> None:
    session.delete(reward)
    session.flush()
