"""
Profile APIs (All Authenticated Users).
"""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from database.models import User
from auth.dependencies import get_context, get_current_user, get_db_session
from core.context import AppContext
from core.exceptions import ValidationFailed
from services.audit_service import AuditService
from services.profile_service import ProfileService


router = APIRouter(prefix="/api/profile", tags=["profile"])


class ProfileUpdate(BaseModel):
    """Partial profile update. Omitted fields keep their stored values."""
    model_config = ConfigDict(extra="forbid")  # userType / studentNumber are not editable here

    contactName: Optional[str] = None
    contactPhoneNumber: Optional[str] = None
    emergencyContactName: Optional[str] = None
    emergencyContactPhoneNumber: Optional[str] = None
    medicalInformation: Optional[str] = None


class ProfileResponse(BaseModel):
    """Profile response model."""
    id: str
    contactName: str
    contactPhoneNumber: str
    emergencyContactName: str
    emergencyContactPhoneNumber: str
    medicalInformation: Optional[str] = None
    studentNumber: Optional[str] = None
    userType: str
    isComplete: bool


def _response(profile_dict: dict) -> dict:
    data = dict(profile_dict)
    data["isComplete"] = bool(data.get("contactPhoneNumber"))
    return data


@router.get("", response_model=ProfileResponse)
async def get_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    """
    Get own profile.
    All authenticated users.
    """
    profile = ProfileService.get_profile(db, current_user.id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return _response(profile.to_dict())


@router.put("", response_model=ProfileResponse, status_code=status.HTTP_202_ACCEPTED)
@router.patch("", response_model=ProfileResponse, status_code=status.HTTP_202_ACCEPTED)
async def update_profile(
    profile_data: ProfileUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
    ctx: AppContext = Depends(get_context),
):
    """
    Update own profile (PUT or PATCH, both merge).
    Returns the profile as it will look once the write completes; a failed
    write is reported on the notifications channel.
    """
    profile = ProfileService.get_profile(db, current_user.id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    try:
        changes = ProfileService.prepare_update(profile_data.model_dump(exclude_unset=True))
    except ValidationFailed as e:
        raise HTTPException(status_code=422, detail=[error.to_dict() for error in e.errors])

    preview = _response(ProfileService.preview(profile, changes))
    if not changes:
        return JSONResponse(status_code=status.HTTP_200_OK, content=preview)

    user_id = current_user.id

    def write(session: Session):
        ProfileService.apply_update(session, user_id, changes)
        # profile writes publish no report records

    background_tasks.add_task(
        ctx.writer.run,
        user_id,
        "profile_update",
        write,
        "Profile could not be saved",
    )

    AuditService.log_from_request(
        db=db,
        request=request,
        action="profile_update",
        user_id=user_id,
        resource_type="profile",
        resource_id=user_id,
        details={"fields": sorted(changes)},
    )
    return preview
