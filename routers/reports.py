"""
Incident Reports APIs.
"""
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from database.models import User
from auth.dependencies import get_context, get_current_user, get_db_session, require_admin, user_type_of
from core.context import AppContext
from core.exceptions import (
    InvalidTransition, PermissionDenied, PreconditionFailed, ReportNotFound, ValidationFailed
)
from core.lifecycle import parse_status
from core.validators import parse_incident_type
from services.audit_service import AuditService
from services.profile_service import ProfileService
from services.report_service import ReportService
from core.logger import logger
import config


router = APIRouter(prefix="/api/reports", tags=["reports"])


# Request/Response Models
class ReportCreate(BaseModel):
    """Create report request. Fields are validated by the service so errors come back per field."""
    incidentType: Optional[str] = None  # Fire | Medical | GBV | Bullying | Crime
    locationDetails: Optional[str] = None
    detailedDescription: Optional[str] = None


class ReportStatusUpdate(BaseModel):
    """Update report status request."""
    status: str  # Acknowledged | Resolved


class ReportResponse(BaseModel):
    """Report response model."""
    id: str
    incidentType: str
    locationDetails: str
    detailedDescription: str
    reportDateTime: str
    userId: str
    userName: str
    studentNumber: str
    mediaUrls: List[str]
    status: str


class ReportListResponse(BaseModel):
    """Report list response."""
    data: List[ReportResponse]
    total: int


class ReportDetailResponse(BaseModel):
    """Single report lookup. `found` is False (with HTTP 404) when the id does not exist."""
    found: bool
    data: Optional[ReportResponse] = None


class StatusChangeResponse(BaseModel):
    """Result of a status change request."""
    id: str
    status: str
    previousStatus: str
    changed: bool
    reason: str


def _validation_error(exc: ValidationFailed) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail=[error.to_dict() for error in exc.errors],
    )


@router.post("", status_code=status.HTTP_202_ACCEPTED, response_model=ReportResponse)
async def create_report(
    payload: ReportCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
    ctx: AppContext = Depends(get_context),
):
    """
    File an incident report.

    Validation and preconditions are checked now; the record is then stored in
    the background and the caller gets it back immediately with status New.
    A storage failure is reported on the notifications channel.
    """
    profile = ProfileService.get_profile(db, current_user.id)
    try:
        record = ReportService.build_report(
            current_user,
            profile,
            payload.incidentType,
            payload.locationDetails,
            payload.detailedDescription,
        )
    except ValidationFailed as e:
        raise _validation_error(e)
    except PreconditionFailed as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": e.code, "message": e.message},
        )

    background_tasks.add_task(
        ctx.writer.run,
        current_user.id,
        "report_create",
        lambda session: ReportService.persist_report(session, record),
        "Report could not be submitted",
    )

    AuditService.log_from_request(
        db=db,
        request=request,
        action="report_create",
        user_id=current_user.id,
        resource_type="report",
        resource_id=record["id"],
        details={"incidentType": record["incidentType"]},
    )
    logger.info(f"Report {record['id']} accepted from user {current_user.id}")
    return record


@router.get("/mine", response_model=ReportListResponse)
async def list_my_reports(
    limit: Optional[int] = Query(None, ge=1, le=100, description="Return only the N most recent reports"),
    recent: bool = Query(False, description="Shortcut for the dashboard's most recent reports"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """
    List the caller's own reports, newest first.
    """
    if recent and limit is None:
        limit = config.RECENT_REPORTS_LIMIT
    reports = ReportService.list_own(db, current_user.id, limit=limit)
    return ReportListResponse(data=[r.to_dict() for r in reports], total=len(reports))


@router.get("", response_model=ReportListResponse)
async def list_all_reports(
    status_filter: Optional[str] = Query(None, alias="status"),
    incident_type: Optional[str] = Query(None, alias="incidentType"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session),
):
    """
    List every report (administrators only).
    """
    status_enum = None
    if status_filter:
        try:
            status_enum = parse_status(status_filter)
        except InvalidTransition as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    type_enum = None
    if incident_type:
        type_enum = parse_incident_type(incident_type)
        if type_enum is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid incident type: {incident_type}"
            )

    try:
        reports = ReportService.list_all(db, user_type_of(current_user), status=status_enum, incident_type=type_enum)
    except PermissionDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return ReportListResponse(data=[r.to_dict() for r in reports], total=len(reports))


@router.get("/{report_id}", response_model=ReportDetailResponse)
async def get_report(
    report_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """
    Get report by ID.
    Owners see their own reports, administrators see all. Anything else is "not found".
    """
    report = ReportService.get_visible_report(db, report_id, current_user.id, user_type_of(current_user))
    if report is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"found": False, "data": None, "detail": "Report not found"},
        )
    return ReportDetailResponse(found=True, data=report.to_dict())


@router.patch("/{report_id}/status", response_model=StatusChangeResponse)
async def update_report_status(
    report_id: str,
    status_data: ReportStatusUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session),
    ctx: AppContext = Depends(get_context),
):
    """
    Move a report forward in its lifecycle (administrators only).

    - 202: change accepted and dispatched
    - 200: report is already in the requested state (no-op)
    - 409: report is already past the requested state; status is left unchanged
    """
    try:
        target = parse_status(status_data.status)
        plan = ReportService.plan_status_change(db, report_id, target, user_type_of(current_user))
    except InvalidTransition as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PermissionDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ReportNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")

    body = StatusChangeResponse(
        id=report_id,
        status=(plan.target if plan.changed else plan.current).value,
        previousStatus=plan.current.value,
        changed=plan.changed,
        reason=plan.reason,
    )

    if not plan.changed:
        if plan.reason == "already_past_state":
            content = body.model_dump()
            content["detail"] = f"Report is already {plan.current.value}; status cannot move backwards"
            return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=content)
        return body

    background_tasks.add_task(
        ctx.writer.run,
        current_user.id,
        "report_status_update",
        lambda session: ReportService.apply_status_change(session, report_id, target),
        "Status update failed",
    )

    AuditService.log_from_request(
        db=db,
        request=request,
        action="report_status_update",
        user_id=current_user.id,
        resource_type="report",
        resource_id=report_id,
        details={"from": plan.current.value, "to": target.value},
    )
    return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=body.model_dump())
