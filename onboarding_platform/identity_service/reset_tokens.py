"""Password reset token service.

Tokens are 32 random bytes rendered as hex. Only the SHA-256 digest of a
token is persisted, next to its expiry instant, so a leaked accounts table
does not hand out working reset links. The token is high-entropy and
short-lived, so a fast digest is enough here.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from .auth import PasswordHasher
from .exceptions import InvalidOrExpiredToken
from .models import Account, utcnow
from .store import AccountStore

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
RESET_TOKEN_TTL = timedelta(minutes=10)


def digest_token(token: str) -> str:
    """Return the SHA-256 hex digest for a reset token string."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class ResetTokenService:
    """Issues and redeems single-use password reset tokens."""

    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        ttl: timedelta = RESET_TOKEN_TTL,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._ttl = ttl
        self._clock = clock or utcnow

    def issue(self, account: Account) -> str:
        """Store a fresh token digest on the account and return the plaintext token.

        Any reset already pending for the account is overwritten, so only the
        most recently issued token can be redeemed.
        """
        token = secrets.token_hex(TOKEN_BYTES)
        expires_at = self._clock() + self._ttl
        self._store.set_reset_token(account.id, digest_token(token), expires_at)
        logger.info(
            "Password reset token issued: account_id=%s expires_at=%s",
            account.id, expires_at.isoformat()
        )
        return token

    def redeem(self, token: str, new_password: str) -> Account:
        """Replace the account password if ``token`` is live, consuming the token.

        Returns the account as stored after the write.

        Raises:
            InvalidOrExpiredToken: The token is unknown, expired, already used,
                or another request redeemed it first. Nothing is changed.
        """
        if not token:
            raise InvalidOrExpiredToken()

        digest = digest_token(token)
        account = self._store.find_by_reset_digest(digest, self._clock())
        if account is None:
            raise InvalidOrExpiredToken()

        password_hash = self._hasher.hash(new_password)
        # Hashing takes time; the window is checked again at the instant of the write
        written_at = self._clock()
        if not self._store.replace_password_with_reset(account.id, digest, written_at, password_hash):
            logger.info(
                "Password reset rejected at write time: account_id=%s", account.id
            )
            raise InvalidOrExpiredToken()

        logger.info("Password reset completed: account_id=%s", account.id)
        return self._store.get_account(account.id)
