"""
User Directory APIs (Administrators).
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from database.models import User, UserType
from auth.dependencies import get_db_session, require_admin
from services.profile_service import ProfileService


router = APIRouter(prefix="/api/users", tags=["users"])


class UserSummary(BaseModel):
    """Directory entry."""
    id: str
    contactName: str
    userType: str
    studentNumber: Optional[str] = None


class UserListResponse(BaseModel):
    """User list response."""
    data: List[UserSummary]
    total: int


@router.get("", response_model=UserListResponse)
async def list_users(
    user_type: Optional[str] = Query(None, alias="userType"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """
    List registered users by profile, ordered by name.
    Optional userType filter (student | admin).
    """
    type_filter = None
    if user_type:
        try:
            type_filter = UserType(user_type.strip().lower())
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid user type: {user_type}"
            )

    profiles = ProfileService.list_profiles(db, user_type=type_filter)
    data = [
        UserSummary(
            id=p.user_id,
            contactName=p.contact_name,
            userType=p.user_type.value,
            studentNumber=p.student_number,
        )
        for p in profiles
    ]
    return UserListResponse(data=data, total=len(data))
