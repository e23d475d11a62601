from sqlalchemy import Column, String, DateTime, Enum, Index, JSON, CheckConstraint
from datetime import datetime, timezone
from .db import Base
import uuid

ACCOUNT_TYPES = ("job_seeker", "organization")

AUTH_EVENT_TYPES = (
    "register",
    "login_success",
    "login_failure",
    "password_reset_request",
    "password_reset",
)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every datetime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Account(Base):
    __tablename__ = "accounts"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_type = Column(Enum(*ACCOUNT_TYPES, name="account_type"), nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)

    # Profile payload, owned by the profile collaborator
    personal_info = Column(JSON, nullable=False, default=dict)
    company_info = Column(JSON, nullable=False, default=dict)

    # Password reset (digest of the emailed token, never the token itself)
    reset_password_token = Column(String(64), nullable=True, index=True)
    reset_password_expire = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(reset_password_token IS NULL AND reset_password_expire IS NULL) OR "
            "(reset_password_token IS NOT NULL AND reset_password_expire IS NOT NULL)",
            name="ck_accounts_reset_fields_paired",
        ),
    )

    @property
    def has_pending_reset(self) -> bool:
        return self.reset_password_token is not None


class AuthEvent(Base):
    __tablename__ = "auth_events"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id = Column(String(36), nullable=True)
    email = Column(String, nullable=False)
    event_type = Column(Enum(*AUTH_EVENT_TYPES, name="auth_event_type"), nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    event_metadata = Column(JSON, nullable=True)

    __table_args__ = (
        Index('ix_auth_events_account_id', 'account_id'),
        Index('ix_auth_events_timestamp', 'timestamp'),
        Index('ix_auth_events_event_type', 'event_type'),
    )

    def to_dict(self) -> dict:
        """
        Serialize AuthEvent to dictionary.

        Returns:
            Dictionary with all event fields, datetimes in ISO 8601 format
        """
        return {
            "id": str(self.id),
            "account_id": self.account_id,
            "email": self.email,
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "metadata": self.event_metadata or {}
        }
