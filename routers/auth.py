"""
Authentication endpoints: registration, login, logout and current user.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from database.models import User, UserType, isoformat
from auth.dependencies import get_current_user, get_db_session, user_type_of
from core.exceptions import DuplicateAccount, ValidationFailed
from services.auth_service import AuthService
from services.audit_service import AuditService
from core.logger import logger
import config


router = APIRouter(prefix="/api/auth", tags=["authentication"])


# Request Models
class RegisterRequest(BaseModel):
    """Sign-up request. Students may give their student number now."""
    email: EmailStr
    password: str
    fullName: str
    userType: str = UserType.STUDENT.value
    studentNumber: Optional[str] = None


class LoginRequest(BaseModel):
    """Login request."""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Token response model."""
    accessToken: str
    tokenType: str = "bearer"
    expiresIn: int
    userId: str
    userType: Optional[str] = None
    profileSetupRequired: bool


class LogoutResponse(BaseModel):
    """Logout response."""
    message: str


def _token_response(user: User) -> TokenResponse:
    profile = user.profile
    return TokenResponse(
        accessToken=AuthService.issue_token(user),
        expiresIn=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        userId=user.id,
        userType=profile.user_type.value if profile else None,
        profileSetupRequired=profile is None or not profile.is_complete,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db_session)
):
    """
    Create an account with a minimal profile and log it in.
    Administrator self-registration is disabled unless ALLOW_ADMIN_SELF_REGISTRATION is set.
    """
    try:
        user_type = UserType(payload.userType.strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=422,
            detail=[{"field": "userType", "message": "User type must be 'student' or 'admin'"}]
        )

    if user_type == UserType.ADMIN and not config.ALLOW_ADMIN_SELF_REGISTRATION:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator accounts cannot be self-registered"
        )

    try:
        user = AuthService.register(
            db=db,
            email=payload.email,
            password=payload.password,
            full_name=payload.fullName,
            user_type=user_type,
            student_number=payload.studentNumber,
        )
    except ValidationFailed as e:
        raise HTTPException(status_code=422, detail=[error.to_dict() for error in e.errors])
    except DuplicateAccount as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    AuditService.log_from_request(
        db=db,
        request=request,
        action="register",
        user_id=user.id,
        resource_type="user",
        resource_id=user.id,
        details={"userType": user_type.value}
    )
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: Session = Depends(get_db_session)
):
    """
    Login with email + password.
    Returns a JWT access token and whether the profile still needs completing.
    """
    user = AuthService.authenticate(db, credentials.email, credentials.password)

    if not user:
        AuditService.log_from_request(
            db=db,
            request=request,
            action="login_failed",
            resource_type="user"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    AuditService.log_from_request(
        db=db,
        request=request,
        action="login",
        user_id=user.id,
        resource_type="user",
        resource_id=user.id
    )
    logger.info(f"User {user.id} logged in")
    return _token_response(user)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    """
    Logout. Tokens are stateless, so the client simply discards its token.
    """
    AuditService.log_from_request(
        db=db,
        request=request,
        action="logout",
        user_id=current_user.id,
        resource_type="user",
        resource_id=current_user.id
    )
    return LogoutResponse(message="Logged out successfully")


@router.get("/me", response_model=dict)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    user_type = user_type_of(current_user)
    profile = current_user.profile
    return {
        "id": current_user.id,
        "email": current_user.email,
        "userType": user_type.value if user_type else None,
        "isActive": current_user.is_active,
        "createdAt": isoformat(current_user.created_at),
        "lastLoginAt": isoformat(current_user.last_login_at),
        "profile": profile.to_dict() if profile else None,
        "profileSetupRequired": profile is None or not profile.is_complete,
    }
