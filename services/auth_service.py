"""
Authentication service: account registration, credential checks and token issuing.
"""
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from database.models import User, UserProfile, UserType, utcnow
from auth.security import verify_password, get_password_hash, validate_password, create_access_token
from core.exceptions import DuplicateAccount, FieldError, ValidationFailed
from core.validators import normalize_email, validate_min_length, MIN_NAME_LENGTH
from core.logger import logger
import config


class AuthService:
    """Service for authentication operations."""

    @staticmethod
    def register(
        db: Session,
        email: str,
        password: str,
        full_name: str,
        user_type: UserType,
        student_number: Optional[str] = None,
    ) -> User:
        """
        Create an account and its minimal profile.

        The profile starts with the contact name, the role and (students only)
        the student number; contact details are completed later by the user.

        Raises:
            ValidationFailed: bad password or name
            DuplicateAccount: email already registered
        """
        errors = []
        is_valid, error_message = validate_password(password)
        if not is_valid:
            errors.append(FieldError("password", error_message))
        ok, message = validate_min_length(full_name, MIN_NAME_LENGTH, "Full name")
        if not ok:
            errors.append(FieldError("fullName", message))
        if errors:
            raise ValidationFailed(errors)

        email = normalize_email(email)
        if db.query(User).filter(User.email == email).first():
            raise DuplicateAccount("This email is already registered. Please log in.")

        if user_type == UserType.STUDENT:
            student_number = (student_number or "").strip() or None
        else:
            student_number = None

        user = User(
            id=str(uuid.uuid4()),
            email=email,
            hashed_password=get_password_hash(password),
            is_active=True,
        )
        profile = UserProfile(
            user_id=user.id,
            contact_name=full_name.strip(),
            contact_phone_number="",
            emergency_contact_name="",
            emergency_contact_phone_number="",
            medical_information="",
            student_number=student_number,
            user_type=user_type,
        )
        user.profile = profile
        db.add(user)
        db.commit()
        logger.info(f"Created user: {email} (role: {user_type.value})")
        return user

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Optional[User]:
        """
        Check email/password.

        Returns:
            The user, or None for unknown email, wrong password or inactive account
        """
        user = db.query(User).filter(User.email == normalize_email(email)).first()
        if user is None:
            return None
        if not user.hashed_password or not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login attempt for {normalize_email(email)}")
            return None
        if not user.is_active:
            return None

        user.last_login_at = utcnow()
        db.commit()
        return user

    @staticmethod
    def issue_token(user: User) -> str:
        user_type = user.profile.user_type.value if user.profile else None
        return create_access_token(
            {"sub": user.id, "email": user.email, "role": user_type},
            config.SECRET_KEY,
        )
