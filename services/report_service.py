"""
Incident report service: creation, query views and status transitions.
"""
import uuid
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from database.models import (
    IncidentReport, IncidentType, ReportStatus, User, UserProfile, UserType, utcnow
)
from core.exceptions import PermissionDenied, PreconditionFailed, ReportNotFound
from core.lifecycle import (
    INITIAL_STATUS, TransitionPlan, ensure_can_change_status, lower_states, plan_transition
)
from core.validators import validate_report_input
from core.logger import logger


UNKNOWN_REPORTER_NAME = "Unknown User"


class ReportService:
    """Service for incident report operations."""

    @staticmethod
    def build_report(
        user: Optional[User],
        profile: Optional[UserProfile],
        incident_type: Any,
        location_details: Any,
        detailed_description: Any,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Validate a submission and build the record to persist.

        Nothing is written here; the returned record is handed to the write
        dispatcher. The id and timestamp are fixed now, and the reporter's
        name and student number are copied from the profile as it is at this
        moment (later profile edits never touch the report).

        Raises:
            PreconditionFailed: not authenticated, or no profile yet
            ValidationFailed: field-level problems
        """
        if user is None:
            raise PreconditionFailed("You must be logged in to submit a report.", code="not_authenticated")
        if profile is None:
            raise PreconditionFailed(
                "You must be logged in and have a complete profile to submit a report.",
                code="profile_required",
            )

        parsed_type = validate_report_input(incident_type, location_details, detailed_description)

        report = IncidentReport(
            id=str(uuid.uuid4()),
            incident_type=parsed_type,
            location_details=location_details,
            detailed_description=detailed_description,
            report_date_time=now or utcnow(),
            user_id=user.id,
            user_name=profile.contact_name or UNKNOWN_REPORTER_NAME,
            student_number=profile.student_number or "",
            media_urls=[],
            status=INITIAL_STATUS,
        )
        return report.to_dict()

    @staticmethod
    def persist_report(db: Session, record: dict) -> List[dict]:
        """Insert a report built by build_report. Returns the stored record for publishing."""
        report = IncidentReport(
            id=record["id"],
            incident_type=IncidentType(record["incidentType"]),
            location_details=record["locationDetails"],
            detailed_description=record["detailedDescription"],
            report_date_time=datetime.fromisoformat(record["reportDateTime"]),
            user_id=record["userId"],
            user_name=record["userName"],
            student_number=record["studentNumber"],
            media_urls=list(record["mediaUrls"]),
            status=ReportStatus(record["status"]),
        )
        db.add(report)
        db.flush()
        logger.info(f"Report {report.id} ({report.incident_type.value}) stored for user {report.user_id}")
        return [report.to_dict()]

    @staticmethod
    def list_own(db: Session, user_id: str, limit: Optional[int] = None) -> List[IncidentReport]:
        """Reports filed by user_id, newest first; `limit` takes a prefix."""
        query = (
            db.query(IncidentReport)
            .filter(IncidentReport.user_id == user_id)
            .order_by(IncidentReport.report_date_time.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def list_all(
        db: Session,
        viewer_type: Optional[UserType],
        status: Optional[ReportStatus] = None,
        incident_type: Optional[IncidentType] = None,
    ) -> List[IncidentReport]:
        """
        Every report, newest first (administrators only).

        Raises:
            PermissionDenied: viewer is not an administrator
        """
        if viewer_type != UserType.ADMIN:
            raise PermissionDenied("Only administrators can view all reports")
        query = db.query(IncidentReport)
        if status is not None:
            query = query.filter(IncidentReport.status == status)
        if incident_type is not None:
            query = query.filter(IncidentReport.incident_type == incident_type)
        return query.order_by(IncidentReport.report_date_time.desc()).all()

    @staticmethod
    def get_report(db: Session, report_id: str) -> Optional[IncidentReport]:
        """Lookup by id; None when absent."""
        return db.query(IncidentReport).filter(IncidentReport.id == report_id).first()

    @staticmethod
    def can_view(report: IncidentReport, viewer_id: str, viewer_type: Optional[UserType]) -> bool:
        return viewer_type == UserType.ADMIN or report.user_id == viewer_id

    @staticmethod
    def get_visible_report(
        db: Session, report_id: str, viewer_id: str, viewer_type: Optional[UserType]
    ) -> Optional[IncidentReport]:
        """Lookup by id limited to the owner and administrators; None otherwise."""
        report = ReportService.get_report(db, report_id)
        if report is None or not ReportService.can_view(report, viewer_id, viewer_type):
            return None
        return report

    @staticmethod
    def plan_status_change(
        db: Session, report_id: str, target: ReportStatus, actor_type: Optional[UserType]
    ) -> TransitionPlan:
        """
        Check a status change against policy and the stored status.

        Raises:
            PermissionDenied: actor is not an administrator
            ReportNotFound: no such report
            InvalidTransition: target is not a legal target
        """
        ensure_can_change_status(actor_type)
        report = ReportService.get_report(db, report_id)
        if report is None:
            raise ReportNotFound(report_id)
        return plan_transition(report.status, target)

    @staticmethod
    def apply_status_change(db: Session, report_id: str, target: ReportStatus) -> List[dict]:
        """
        Move a report forward to `target`.

        The forward-only rule is part of the UPDATE itself, so two concurrent
        administrators can never move a report backwards: whichever write lands
        second only applies if it is still a forward move.

        Returns:
            The updated record (for publishing), or [] when nothing changed
        """
        updated = (
            db.query(IncidentReport)
            .filter(
                IncidentReport.id == report_id,
                IncidentReport.status.in_(lower_states(target)),
            )
            .update(
                {IncidentReport.status: target, IncidentReport.updated_at: utcnow()},
                synchronize_session=False,
            )
        )
        if not updated:
            logger.info(f"Report {report_id}: status change to {target.value} skipped (already at or past it)")
            return []
        report = db.query(IncidentReport).filter(IncidentReport.id == report_id).first()
        db.refresh(report)
        logger.info(f"Report {report_id}: status changed to {target.value}")
        return [report.to_dict()]
