"""
Authentication dependencies for FastAPI.
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request, Security, WebSocket, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database.models import User, UserProfile, UserType
from auth.security import security, decode_access_token
from core.context import AppContext
import config


def get_context(request: Request) -> AppContext:
    """Get the application context built at startup."""
    ctx = getattr(request.app.state, "ctx", None)
    if ctx is None:
        raise HTTPException(status_code=503, detail="Database not initialized")
    return ctx


def get_db_session(ctx: AppContext = Depends(get_context)):
    """Get database session."""
    with ctx.db.get_session() as session:
        yield session


def resolve_user_from_token(db: Session, token: Optional[str]) -> Optional[User]:
    """
    Return the active user a bearer token belongs to, or None.

    Shared by the HTTP dependencies and the WebSocket handshake.
    """
    if not token:
        return None
    payload = decode_access_token(token, config.SECRET_KEY)
    if payload is None:
        return None
    user_id = payload.get("sub")
    if user_id is None:
        return None
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    db: Session = Depends(get_db_session)
) -> User:
    """
    Get current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        Current user

    Raises:
        HTTPException: If authentication fails
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials, config.SECRET_KEY)
    if payload is None or payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == payload["sub"]).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    return user


def user_type_of(user: User) -> Optional[UserType]:
    """Role from the user's profile (None when the profile is missing)."""
    profile: Optional[UserProfile] = user.profile
    return profile.user_type if profile else None


def require_role(allowed_roles: list[str]):
    """
    Dependency factory for role-based access control.

    Args:
        allowed_roles: List of allowed roles

    Returns:
        Dependency function
    """
    async def role_checker(
        current_user: User = Depends(get_current_user)
    ) -> User:
        user_type = user_type_of(current_user)
        if user_type is None or user_type.value not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {', '.join(allowed_roles)}"
            )
        return current_user

    return role_checker


require_admin = require_role(["admin"])


def extract_token_from_websocket(websocket: WebSocket) -> Optional[str]:
    """
    Extract JWT from WebSocket query parameters (?token=<jwt>),
    falling back to an Authorization header on the upgrade request.
    """
    token = websocket.query_params.get("token")
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return None
