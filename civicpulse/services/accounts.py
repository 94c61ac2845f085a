from datetime import datetime
import logging

import bcrypt
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from civicpulse.config import settings
from civicpulse.database import session_scope, utcnow
from civicpulse.errors import AccountNotFound, StorageUnavailable
from civicpulse.models.account import AccountEntry
from civicpulse.services.otp import EMAIL, parse_identifier

LOGGER = logging.getLogger(__name__)


def _lookup_column(identifier: str):
    key, kind = parse_identifier(identifier)
    column = AccountEntry.email if kind == EMAIL else AccountEntry.phone_number
    return column, key


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


class AccountStore:
    def exists_by_identifier(self, identifier: str) -> bool:
        column, key = _lookup_column(identifier)
        try:
            with session_scope() as session:
                result = session.execute(select(AccountEntry.id).where(column == key))
                return result.scalar_one_or_none() is not None
        except SQLAlchemyError as exc:
            LOGGER.error("Account lookup failed: %s", exc)
            raise StorageUnavailable() from exc

    def create_account(
        self, email: str | None = None, phone_number: str | None = None
    ) -> AccountEntry:
        if not email and not phone_number:
            raise ValueError("Email or phone number is required")
        email_key = parse_identifier(email)[0] if email else None
        phone_key = parse_identifier(phone_number)[0] if phone_number else None
        now = utcnow()
        try:
            with session_scope() as session:
                if email_key and session.execute(
                    select(AccountEntry).where(AccountEntry.email == email_key)
                ).scalar_one_or_none():
                    raise ValueError("Email already in use")
                if phone_key and session.execute(
                    select(AccountEntry).where(AccountEntry.phone_number == phone_key)
                ).scalar_one_or_none():
                    raise ValueError("Phone number already in use")
                entry = AccountEntry(
                    email=email_key,
                    phone_number=phone_key,
                    password_hash=None,
                    password_version=0,
                    password_changed_at=None,
                    created_at=now,
                    updated_at=now,
                )
                session.add(entry)
                session.flush()
                return entry
        except SQLAlchemyError as exc:
            LOGGER.error("Account creation failed: %s", exc)
            raise StorageUnavailable() from exc

    def ensure_seed_accounts(self) -> None:
        for field, value in (
            ("email", settings.seed_email),
            ("phone_number", settings.seed_phone),
        ):
            if not value or self.exists_by_identifier(value):
                continue
            self.create_account(**{field: value})
            LOGGER.info("Seeded account %s", value)

    def password_version(self, identifier: str) -> int:
        column, key = _lookup_column(identifier)
        try:
            with session_scope() as session:
                version = session.execute(
                    select(AccountEntry.password_version).where(column == key)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            LOGGER.error("Account lookup failed: %s", exc)
            raise StorageUnavailable() from exc
        if version is None:
            raise AccountNotFound()
        return version

    def reset_password(
        self,
        identifier: str,
        password: str,
        expected_version: int,
        now: datetime | None = None,
    ) -> bool:
        """Store a new password if the account is still at ``expected_version``.

        The version check and the write are one conditional UPDATE, so of
        several resets presented with the same version exactly one returns
        ``True``. Returns ``False`` when the version has already moved on.
        """
        column, key = _lookup_column(identifier)
        now = now or utcnow()
        password_hash = hash_password(password)
        try:
            with session_scope() as session:
                result = session.execute(
                    update(AccountEntry)
                    .where(column == key, AccountEntry.password_version == expected_version)
                    .values(
                        password_hash=password_hash,
                        password_version=AccountEntry.password_version + 1,
                        password_changed_at=now,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount > 0:
                    return True
                exists = session.execute(
                    select(AccountEntry.id).where(column == key)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            LOGGER.error("Password update failed: %s", exc)
            raise StorageUnavailable() from exc
        if exists is None:
            raise AccountNotFound()
        LOGGER.info("Stale password reset for %s rejected", key)
        return False


account_store = AccountStore()
