"""
Event logger utility for authentication events.
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import SQLAlchemyError
import sys
import logging
import os

from ..models import AuthEvent, AUTH_EVENT_TYPES

logger = logging.getLogger(__name__)

ALLOWED_EVENT_TYPES = set(AUTH_EVENT_TYPES)

# Never persisted, whatever the caller passes in metadata
SENSITIVE_METADATA_KEYS = {"password", "new_password", "token", "reset_token"}


def configure_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Configure stdout logging, plus a file handler when ``log_dir`` is set.

    Args:
        level: Root log level name
        log_dir: Directory for ``auth_events.log``; skipped if it cannot be created
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_dir:
        # Continue without file logging if the directory is not writable
        try:
            os.makedirs(log_dir, exist_ok=True)
            handlers.append(logging.FileHandler(os.path.join(log_dir, "auth_events.log")))
        except OSError as e:
            print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers
    )


def log_auth_event(
    event_type: str,
    email: str,
    session_factory: sessionmaker,
    account_id: Optional[str] = None,
    metadata: dict = None
) -> None:
    """
    Log an authentication event to the database.

    Args:
        event_type: One of: register, login_success, login_failure,
                    password_reset_request, password_reset
        email: Email the event concerns
        session_factory: Factory for the session the event is written with
        account_id: Account id, when the email matched an account
        metadata: Optional dictionary of additional context

    Raises:
        ValueError: If event_type is invalid
    """
    if event_type not in ALLOWED_EVENT_TYPES:
        raise ValueError(
            f"Invalid event_type '{event_type}'. Must be one of: {', '.join(sorted(ALLOWED_EVENT_TYPES))}"
        )

    clean_metadata = {
        key: value for key, value in (metadata or {}).items()
        if key not in SENSITIVE_METADATA_KEYS
    }
    timestamp = datetime.now(timezone.utc).replace(tzinfo=None)

    db = session_factory()
    try:
        auth_event = AuthEvent(
            account_id=account_id,
            email=email,
            event_type=event_type,
            timestamp=timestamp,
            event_metadata=clean_metadata
        )

        db.add(auth_event)
        db.commit()

        logger.info(
            "AUTH %s account_id=%s email=%s timestamp=%s",
            event_type, account_id, email, timestamp.isoformat()
        )

    except SQLAlchemyError as e:
        # Logging failure should not break auth flow
        logger.warning(
            "Failed to log auth event - account_id=%s, event_type=%s, error=%s",
            account_id, event_type, e
        )
        db.rollback()
    finally:
        db.close()
