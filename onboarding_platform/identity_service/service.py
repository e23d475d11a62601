"""Identity lifecycle workflows: register, login and password reset."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import sessionmaker

from .auth import PasswordHasher, SessionTokenIssuer
from .delivery import ResetDelivery
from .exceptions import EmailTaken, InvalidCredentials, NotFound
from .models import ACCOUNT_TYPES, Account
from .profile import profile_for_account_type
from .reset_tokens import ResetTokenService
from .store import AccountStore
from .utils.event_logger import log_auth_event

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SessionGrant:
    """Result of a successful register or login."""

    session_token: str
    account_type: str


@dataclass(slots=True)
class ResetAccepted:
    """Result of a reset request or confirmation; never carries the token."""

    accepted: bool = True


class IdentityService:
    """Coordinates the credential store, hasher and token services."""

    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        session_tokens: SessionTokenIssuer,
        reset_tokens: ResetTokenService,
        delivery: ResetDelivery,
        event_sessions: Optional[sessionmaker] = None,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._session_tokens = session_tokens
        self._reset_tokens = reset_tokens
        self._delivery = delivery
        self._event_sessions = event_sessions

    def _record(self, event_type: str, email: str, account: Account | None = None, **metadata) -> None:
        if self._event_sessions is None:
            return
        log_auth_event(
            event_type,
            email,
            self._event_sessions,
            account_id=account.id if account is not None else None,
            metadata=metadata,
        )

    def _grant(self, account: Account) -> SessionGrant:
        token = self._session_tokens.issue(account.id, account.account_type)
        return SessionGrant(session_token=token, account_type=account.account_type)

    def register(
        self,
        account_type: str,
        email: str,
        password: str,
        personal_info: dict | None = None,
        company_info: dict | None = None,
    ) -> SessionGrant:
        """Create an account and sign the caller in.

        The profile half that does not belong to ``account_type`` is dropped
        and list fields sent as strings are coerced to empty lists.

        Raises:
            EmailTaken: An account already uses ``email``.
        """
        if account_type not in ACCOUNT_TYPES:
            raise ValueError(f"Unknown account type '{account_type}'")

        if self._store.get_by_email(email) is not None:
            raise EmailTaken()

        personal, company = profile_for_account_type(account_type, personal_info, company_info)
        account = self._store.create_account(
            account_type=account_type,
            email=email,
            password_hash=self._hasher.hash(password),
            personal_info=personal,
            company_info=company,
        )
        logger.info("Account registered: account_id=%s account_type=%s", account.id, account_type)
        self._record("register", email, account, account_type=account_type)
        return self._grant(account)

    def login(self, email: str, password: str) -> SessionGrant:
        """
        Raises:
            NotFound: No account uses ``email``.
            InvalidCredentials: The password does not match.
        """
        account = self._store.get_by_email(email)
        if account is None:
            raise NotFound()

        if not self._hasher.verify(password, account.password):
            self._record("login_failure", email, account)
            raise InvalidCredentials()

        self._record("login_success", email, account)
        return self._grant(account)

    def initiate_reset(self, email: str) -> ResetAccepted:
        """Issue a reset token and hand it to the delivery channel.

        Raises:
            NotFound: No account uses ``email``.
        """
        account = self._store.get_by_email(email)
        if account is None:
            raise NotFound()

        token = self._reset_tokens.issue(account)
        self._record("password_reset_request", email, account)
        try:
            self._delivery.deliver(email, token)
        except Exception:
            # The token is stored already; the user can ask for another one
            logger.exception("Reset link delivery failed: account_id=%s", account.id)
        return ResetAccepted()

    def complete_reset(self, token: str, new_password: str) -> ResetAccepted:
        """
        Raises:
            InvalidOrExpiredToken: The token is unknown, expired or already used.
        """
        account = self._reset_tokens.redeem(token, new_password)
        self._record("password_reset", account.email, account)
        return ResetAccepted()
