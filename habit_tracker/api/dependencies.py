import logging
from datetime import datetime
from typing import Callable

from fastapi import Depends, Header, HTTPException

from habit_tracker.data.session import SessionLocal
from habit_tracker.domain.clock import utcnow
from habit_tracker.security.token import CHILD_MODE, PARENT_MODE, Actor, verify_token

logger = logging.getLogger(__name__)


def get_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_now(clock: Callable[[], datetime] = Depends(get_clock)) -> datetime:
    return clock()


def actor_from_token(token: str) -> Actor:
    actor = verify_token(token)
    if actor is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return actor


def get_actor(authorization: str = Header(default="")) -> Actor:
    """Resolve the Bearer token into the acting profile and Mode."""
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing token")
    return actor_from_token(authorization.split(" ", 1)[1])


def require_parent(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.mode != PARENT_MODE:
        logger.warning("parent endpoint refused profile_id=%s mode=%s", actor.profile_id, actor.mode)
        raise HTTPException(status_code=403, detail="Parent mode required")
    return actor


def require_child(child_id: int, actor: Actor = Depends(get_actor)) -> Actor:
    """A child-mode token only acts for the child it was issued to."""
    if actor.mode != CHILD_MODE or actor.child_id != child_id:
        logger.warning("child endpoint refused profile_id=%s child_id=%s", actor.profile_id, child_id)
        raise HTTPException(status_code=403, detail="Not allowed for this child")
    return actor
