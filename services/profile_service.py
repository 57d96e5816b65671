"""
Profile service: read-modify-write of a user's own emergency-contact profile.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from database.models import UserProfile, UserType
from core.validators import validate_profile_update


class ProfileService:
    """Service for profile operations."""

    @staticmethod
    def get_profile(db: Session, user_id: str) -> Optional[UserProfile]:
        return db.query(UserProfile).filter(UserProfile.user_id == user_id).first()

    @staticmethod
    def prepare_update(changes: Dict[str, Any]) -> Dict[str, Any]:
        """Validate a partial update before it is dispatched (raises ValidationFailed)."""
        return validate_profile_update(changes)

    @staticmethod
    def preview(profile: UserProfile, changes: Dict[str, Any]) -> dict:
        """The profile as it will look once `changes` are merged (no write)."""
        merged = profile.to_dict()
        merged.update(changes)
        return merged

    @staticmethod
    def apply_update(db: Session, user_id: str, changes: Dict[str, Any]) -> dict:
        """
        Merge `changes` onto the stored profile. Fields not in `changes` keep their values.

        Raises:
            LookupError: the profile no longer exists
        """
        profile = db.query(UserProfile).filter(UserProfile.user_id == user_id).first()
        if profile is None:
            raise LookupError(f"Profile for user {user_id} not found")
        for field, value in changes.items():
            setattr(profile, UserProfile.FIELD_COLUMNS[field], value)
        db.flush()
        return profile.to_dict()

    @staticmethod
    def list_profiles(db: Session, user_type: Optional[UserType] = None) -> List[UserProfile]:
        """All registered profiles (user directory), optionally filtered by role."""
        query = db.query(UserProfile)
        if user_type is not None:
            query = query.filter(UserProfile.user_type == user_type)
        return query.order_by(UserProfile.contact_name.asc()).all()
