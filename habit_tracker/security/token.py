"""
Signed session tokens.

A token names the parent profile it belongs to and the Mode the device is in.
Child-mode tokens are additionally pinned to one child.
"""
import datetime
from dataclasses import dataclass
from typing import Optional

import jwt

from habit_tracker.config import CHILD_TOKEN_MINUTES, PARENT_TOKEN_MINUTES, SECRET_KEY

ALGORITHM = "HS256"
PARENT_MODE = "parent"
CHILD_MODE = "child"


@dataclass(frozen=True)
class Actor:
    profile_id: int
    mode: str
    child_id: Optional[int] = None


def create_token(profile_id: int, mode: str = PARENT_MODE, child_id: Optional[int] = None) -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    minutes = CHILD_TOKEN_MINUTES if mode == CHILD_MODE else PARENT_TOKEN_MINUTES
    payload = {
        "sub": str(profile_id),
        "mode": mode,
        "iat": now,
        "exp": now + datetime.timedelta(minutes=minutes),
    }
    if child_id is not None:
        payload["child_id"] = child_id
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[Actor]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        return None
    mode = payload.get("mode")
    if mode not in (PARENT_MODE, CHILD_MODE):
        return None
    if mode == CHILD_MODE and payload.get("child_id") is None:
        return None
    try:
        return Actor(profile_id=int(payload["sub"]), mode=mode, child_id=payload.get("child_id"))
    except (KeyError, ValueError):
        return None
