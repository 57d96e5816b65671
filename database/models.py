"""
Database models for the campus incident reporting system.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Boolean, DateTime, Text,
    ForeignKey, JSON, Index, TypeDecorator
)
from sqlalchemy.orm import declarative_base, relationship
import enum

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp (all stored datetimes are UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: datetime) -> str:
    return value.isoformat() if value else None


# ============================================================================
# Custom Type Decorator for Enum Values
# ============================================================================

class EnumValue(TypeDecorator):
    """Type decorator to ensure enum values (not names) are stored."""
    impl = String
    cache_ok = True

    def __init__(self, enum_class, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        """Convert enum to its value when writing to database."""
        if value is None:
            return None
        if isinstance(value, enum.Enum):
            return value.value
        return value

    def process_result_value(self, value, dialect):
        """Convert database value back to enum when reading."""
        if value is None:
            return None
        if isinstance(value, str):
            try:
                return self.enum_class(value)
            except ValueError:
                return value
        return value


# ============================================================================
# Enums - Must be defined before models that use them
# ============================================================================

class UserType(str, enum.Enum):
    """User roles for authorization."""
    STUDENT = "student"
    ADMIN = "admin"


class IncidentType(str, enum.Enum):
    """Incident report types."""
    FIRE = "Fire"
    MEDICAL = "Medical"
    GBV = "GBV"
    BULLYING = "Bullying"
    CRIME = "Crime"


class ReportStatus(str, enum.Enum):
    """Report lifecycle status (forward-only, see core.lifecycle)."""
    NEW = "New"
    ACKNOWLEDGED = "Acknowledged"
    RESOLVED = "Resolved"


# ============================================================================
# Models
# ============================================================================

class User(Base):
    """Identity record used for authentication. Its id is the user identity key."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)  # UUID4
    email = Column(String(255), unique=True, nullable=False)  # Stored lower-cased
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    # Relationships
    profile = relationship("UserProfile", back_populates="user", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_user_email', 'email'),
    )


class UserProfile(Base):
    """Emergency-contact profile. Keyed by the owning user's id (no surrogate key)."""
    __tablename__ = "user_profiles"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    contact_name = Column(String(255), nullable=False, default="")
    contact_phone_number = Column(String(50), nullable=False, default="")
    emergency_contact_name = Column(String(255), nullable=False, default="")
    emergency_contact_phone_number = Column(String(50), nullable=False, default="")
    medical_information = Column(Text, nullable=True)
    student_number = Column(String(100), nullable=True)
    user_type = Column(EnumValue(UserType), nullable=False)  # Assigned at registration only
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="profile")

    __table_args__ = (
        Index('idx_profile_user_type', 'user_type'),
    )

    # Column name <-> API field name
    FIELD_COLUMNS = {
        "contactName": "contact_name",
        "contactPhoneNumber": "contact_phone_number",
        "emergencyContactName": "emergency_contact_name",
        "emergencyContactPhoneNumber": "emergency_contact_phone_number",
        "medicalInformation": "medical_information",
        "studentNumber": "student_number",
    }

    @property
    def is_complete(self) -> bool:
        return bool(self.contact_phone_number)

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "contactName": self.contact_name,
            "contactPhoneNumber": self.contact_phone_number,
            "emergencyContactName": self.emergency_contact_name,
            "emergencyContactPhoneNumber": self.emergency_contact_phone_number,
            "medicalInformation": self.medical_information,
            "studentNumber": self.student_number,
            "userType": self.user_type.value,
        }


class IncidentReport(Base):
    """
    Incident report.

    Content and snapshot fields (user_name, student_number) are written once at
    creation; only `status` changes afterwards.
    """
    __tablename__ = "incident_reports"

    id = Column(String(36), primary_key=True)  # UUID4 generated before persistence
    incident_type = Column(EnumValue(IncidentType), nullable=False)
    location_details = Column(Text, nullable=False)
    detailed_description = Column(Text, nullable=False)
    report_date_time = Column(DateTime, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    user_name = Column(String(255), nullable=False)  # Snapshot of profile contact_name
    student_number = Column(String(100), nullable=False, default="")  # Snapshot
    media_urls = Column(JSON, nullable=False, default=list)
    status = Column(EnumValue(ReportStatus), default=ReportStatus.NEW, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index('idx_report_user', 'user_id'),
        Index('idx_report_status', 'status'),
        Index('idx_report_incident_type', 'incident_type'),
        Index('idx_report_datetime', 'report_date_time'),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "incidentType": self.incident_type.value,
            "locationDetails": self.location_details,
            "detailedDescription": self.detailed_description,
            "reportDateTime": isoformat(self.report_date_time),
            "userId": self.user_id,
            "userName": self.user_name,
            "studentNumber": self.student_number,
            "mediaUrls": list(self.media_urls or []),
            "status": self.status.value,
        }


class AuditLog(Base):
    """Audit log for security and compliance."""
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(100), nullable=False)  # e.g., "report_create", "report_status_update", "user_login"
    resource_type = Column(String(50), nullable=True)  # e.g., "report", "profile", "user"
    resource_id = Column(String(100), nullable=True)
    ip_address = Column(String(45), nullable=True)  # IPv6 compatible
    user_agent = Column(String(500), nullable=True)
    details = Column(JSON, nullable=True)  # Audit log details (not using 'metadata' to avoid conflict)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index('idx_audit_user', 'user_id'),
        Index('idx_audit_action', 'action'),
        Index('idx_audit_created', 'created_at'),
    )
