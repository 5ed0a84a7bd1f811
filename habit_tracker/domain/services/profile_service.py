"""
Parent profile: PIN gate, timezone and seeding.
"""
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from habit_tracker.config import (
    DEFAULT_TIMEZONE,
    MIN_PIN_LENGTH,
    SEED_PARENT_EMAIL,
    SEED_PARENT_NAME,
    SEED_PARENT_PIN,
)
from habit_tracker.data.models import Profile
from habit_tracker.data.repos import profiles_repo
from habit_tracker.domain.clock import is_valid_timezone
from habit_tracker.domain.errors import NotFound, ValidationFailed
from habit_tracker.domain.services.unit_of_work import atomic
from habit_tracker.security.pin import hash_pin, needs_rehash, verify_pin

logger = logging.getLogger(__name__)


def _check_pin(pin: Optional[str]) -> str:
    if not pin or len(pin) < MIN_PIN_LENGTH or not pin.isdigit():
        raise ValidationFailed(f"PIN must be at least {MIN_PIN_LENGTH} digits")
    return pin


def authenticate(session: Session, email: str, pin: str) -> Optional[Profile]:
    """
    Return the profile when the PIN matches, otherwise None.

    A matching PIN stored with an older work factor is rehashed.
    """
    profile = profiles_repo.find_by_email(session, email)
    if not profile or not profile.pin_hash:
        return None
    if not verify_pin(pin, profile.pin_hash):
        return None
    if needs_rehash(profile.pin_hash):
        with atomic(session, "rehash_pin"):
            profile.pin_hash = hash_pin(pin)
        logger.info("pin rehashed profile_id=%s", profile.id)
    return profile


def get_profile(session: Session, profile_id: int) -> Profile:
    profile = profiles_repo.get_profile(session, profile_id)
    if not profile:
        raise NotFound("Profile")
    return profile


def update_settings(session: Session, profile_id: int, data: Dict) -> Profile:
    """
    Update display name, timezone and PIN.

    A PIN can be created when none is set; replacing an existing one requires
    the old PIN.
    """
    with atomic(session, "update_settings"):
        profile = get_profile(session, profile_id)
        if data.get("name") is not None:
            name = data["name"].strip()
            if not name:
                raise ValidationFailed("Please enter a name")
            profile.name = name
        if data.get("timezone") is not None:
            if not is_valid_timezone(data["timezone"]):
                raise ValidationFailed("Unknown timezone")
            profile.timezone = data["timezone"]
        if data.get("new_pin"):
            new_pin = _check_pin(data["new_pin"])
            if profile.pin_hash and not verify_pin(data.get("old_pin") or "", profile.pin_hash):
                raise ValidationFailed("Invalid old PIN")
            profile.pin_hash = hash_pin(new_pin)
            logger.info("pin changed profile_id=%s", profile.id)
    session.refresh(profile)
    return profile


def ensure_seed_profile(session: Session) -> Profile:
    """Create the default parent profile on an empty database."""
    profile = profiles_repo.find_by_email(session, SEED_PARENT_EMAIL)
    if profile:
        return profile
    with atomic(session, "seed_profile"):
        profile = profiles_repo.add_profile(
            session,
            Profile(
                email=SEED_PARENT_EMAIL.strip().lower(),
                name=SEED_PARENT_NAME,
                pin_hash=hash_pin(SEED_PARENT_PIN),
                timezone=DEFAULT_TIMEZONE,
            ),
        )
    logger.info("seeded parent profile email=%s", profile.email)
    return profile
