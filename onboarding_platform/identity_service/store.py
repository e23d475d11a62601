"""Credential store: persistence for accounts and their reset material."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .exceptions import EmailTaken, NotFound, StoreUnavailable
from .models import Account
from .profile import merge_company_payload, merge_profile_payload

logger = logging.getLogger(__name__)


class AccountStore:
    """SQLAlchemy-backed account persistence; every call uses its own session."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        """Open a session, translating driver failures into ``StoreUnavailable``."""
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Account store operation %s failed: %s", operation, exc)
            raise StoreUnavailable() from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create_account(
        self,
        *,
        account_type: str,
        email: str,
        password_hash: str,
        personal_info: dict,
        company_info: dict,
    ) -> Account:
        """Insert a new account; the unique email constraint is the final duplicate guard."""
        account = Account(
            account_type=account_type,
            email=email,
            password=password_hash,
            personal_info=personal_info,
            company_info=company_info,
            reset_password_token=None,
            reset_password_expire=None,
        )
        with self._session("create_account") as db:
            db.add(account)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                # Lost a check-then-insert race with another registration
                raise EmailTaken() from exc
            db.refresh(account)
        return account

    def get_by_email(self, email: str) -> Optional[Account]:
        with self._session("get_by_email") as db:
            return db.query(Account).filter(Account.email == email).first()

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._session("get_account") as db:
            return db.get(Account, account_id)

    def set_reset_token(self, account_id: str, digest: str, expires_at: datetime) -> None:
        """Store a reset digest, replacing whatever reset was pending before."""
        with self._session("set_reset_token") as db:
            result = db.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(reset_password_token=digest, reset_password_expire=expires_at)
                .execution_options(synchronize_session=False)
            )
            db.commit()
            if result.rowcount != 1:
                raise NotFound()

    def find_by_reset_digest(self, digest: str, now: datetime) -> Optional[Account]:
        """Return the account holding ``digest`` if its reset window is still open."""
        with self._session("find_by_reset_digest") as db:
            return (
                db.query(Account)
                .filter(
                    Account.reset_password_token == digest,
                    Account.reset_password_expire > now,
                )
                .first()
            )

    def replace_password_with_reset(
        self, account_id: str, digest: str, now: datetime, password_hash: str
    ) -> bool:
        """Swap the password and clear the reset fields in one conditional UPDATE.

        The row only changes if it still holds ``digest`` and the window is still
        open at write time, so concurrent redemptions of one token cannot both win.
        Returns ``True`` when this call performed the redemption.
        """
        with self._session("replace_password_with_reset") as db:
            result = db.execute(
                update(Account)
                .where(
                    Account.id == account_id,
                    Account.reset_password_token == digest,
                    Account.reset_password_expire > now,
                )
                .values(
                    password=password_hash,
                    reset_password_token=None,
                    reset_password_expire=None,
                )
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return result.rowcount == 1

    def update_profile(
        self,
        account_id: str,
        *,
        personal_info: Optional[dict] = None,
        company_info: Optional[dict] = None,
    ) -> Account:
        """Merge profile changes from the profile collaborator into the stored payload."""
        with self._session("update_profile") as db:
            account = db.get(Account, account_id)
            if account is None:
                raise NotFound()
            if personal_info is not None:
                account.personal_info = merge_profile_payload(account.personal_info, personal_info)
            if company_info is not None:
                account.company_info = merge_company_payload(account.company_info, company_info)
            db.commit()
            db.refresh(account)
            return account
