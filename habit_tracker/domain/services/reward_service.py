import logging
from typing import Dict, List

from sqlalchemy.orm import Session

from habit_tracker.config import DEFAULT_REWARD_ICON
from habit_tracker.data.models import Reward
from habit_tracker.data.repos import rewards_repo
from habit_tracker.domain.errors import NotFound, ValidationFailed
from habit_tracker.domain.services.child_service import get_owned_child
from habit_tracker.domain.services.unit_of_work import atomic

logger = logging.getLogger(__name__)


def _clean(data: Dict, partial: bool = False) -> Dict:
    values = {}
    if not partial or "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationFailed("Please enter a reward name")
        values["name"] = name
    if not partial or "coin_cost" in data:
        cost = data.get("coin_cost")
        if cost is None or cost < 1:
            raise ValidationFailed("coin_cost must be at least 1")
        values["coin_cost"] = cost
    if not partial or "description" in data:
        values["description"] = (data.get("description") or "").strip() or None
    if not partial or "icon" in data:
        values["icon"] = data.get("icon") or DEFAULT_REWARD_ICON
    if "is_active" in data and data["is_active"] is not None:
        values["is_active"] = data["is_active"]
    return values


def get_owned_reward(session: Session, parent_id: int, reward_id: int) -> Reward:
    reward = rewards_repo.get_reward(session, reward_id)
    if not reward or reward.parent_id != parent_id:
        raise NotFound("Reward")
    return reward


def list_rewards(session: Session, parent_id: int, child_id: int) -> List[Reward]:
    get_owned_child(session, parent_id, child_id)
    return rewards_repo.list_rewards(session, child_id)


def create_reward(session: Session, parent_id: int, child_id: int, data: Dict) -> Reward:
    with atomic(session, "create_reward"):
        get_owned_child(session, parent_id, child_id)
        reward = rewards_repo.add_reward(session, Reward(parent_id=parent_id, child_id=child_id, **_clean(data)))
    logger.info("reward created id=%s child_id=%s cost=%s", reward.id, child_id, reward.coin_cost)
    session.refresh(reward)
    return reward


def update_reward(session: Session, parent_id: int, reward_id: int, data: Dict) -> Reward:
    with atomic(session, "update_reward"):
        reward = get_owned_reward(session, parent_id, reward_id)
        for field, value in _clean(data, partial=True).items():
            setattr(reward, field, value)
        session.flush()
    session.refresh(reward)
    return reward


def delete_reward(session: Session, parent_id: int, reward_id: int) -> None:
    with atomic(session, "delete_reward"):
        reward = get_owned_reward(session, parent_id, reward_id)
        rewards_repo.delete_reward(session, reward)
    logger.info("reward deleted id=%s", reward_id)
