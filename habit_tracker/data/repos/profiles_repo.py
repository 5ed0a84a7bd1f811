from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from habit_tracker.data.models import Profile


def get_profile(session: Session, profile_id: int) -> Optional[Profile]:
    return session.get(Profile, profile_id)


def find_by_email(session: Session, email: str) -> Optional[Profile]:
    return session.execute(select(Profile).where(Profile.email == email.strip().lower())).scalar_one_or_none()


def add_profile(session: Session, profile: Profile) -> Profile:
    session.add(profile)
    session.flush()
    return profile
