from dataclasses import dataclass
from datetime import datetime
import logging
import re
import secrets

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from civicpulse.config import settings
from civicpulse.database import as_utc, session_scope, utcnow
from civicpulse.errors import InvalidIdentifier, StorageUnavailable
from civicpulse.models.otp import OtpEntry

LOGGER = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s().-]+$")

EMAIL = "email"
PHONE = "phone"


@dataclass(frozen=True)
class OtpRecord:
    id: int
    identifier: str
    code: str
    expires_at: datetime
    created_at: datetime


def generate_code(length: int | None = None) -> str:
    length = settings.otp_length if length is None else length
    value = secrets.randbelow(10**length)
    return str(value).zfill(length)


def parse_identifier(identifier: str | None) -> tuple[str, str]:
    """Return ``(normalized, kind)`` for an email address or phone number.

    Emails are trimmed and lower-cased, phone numbers reduced to their
    digits. Anything else raises :class:`InvalidIdentifier`.
    """
    cleaned = (identifier or "").strip()
    if not cleaned:
        raise InvalidIdentifier("Email or phone required")
    if "@" in cleaned:
        if not EMAIL_PATTERN.match(cleaned):
            raise InvalidIdentifier("Invalid email address")
        return cleaned.lower(), EMAIL
    if not PHONE_PATTERN.match(cleaned):
        raise InvalidIdentifier("Invalid phone number")
    digits = re.sub(r"\D", "", cleaned)
    if len(digits) < 10 or len(digits) > 15:
        raise InvalidIdentifier("Phone number must have 10 to 15 digits")
    return digits, PHONE


def _to_record(entry: OtpEntry) -> OtpRecord:
    return OtpRecord(
        id=entry.id,
        identifier=entry.identifier,
        code=entry.code,
        expires_at=as_utc(entry.expires_at),
        created_at=as_utc(entry.created_at),
    )


class OtpStore:
    """Persistent map from a normalized identifier to its one outstanding code."""

    def put(
        self,
        identifier: str,
        code: str,
        expires_at: datetime,
        now: datetime | None = None,
    ) -> OtpRecord:
        now = now or utcnow()
        # A concurrent issuer may win the unique constraint; one retry makes
        # this call the last writer.
        for attempt in range(2):
            try:
                with session_scope() as session:
                    session.execute(delete(OtpEntry).where(OtpEntry.expires_at <= now))
                    session.execute(
                        delete(OtpEntry).where(OtpEntry.identifier == identifier)
                    )
                    entry = OtpEntry(
                        identifier=identifier,
                        code=code,
                        expires_at=expires_at,
                        created_at=now,
                    )
                    session.add(entry)
                    session.flush()
                    record = _to_record(entry)
                return record
            except IntegrityError as exc:
                if attempt:
                    LOGGER.error("OTP upsert for %s lost twice", identifier)
                    raise StorageUnavailable() from exc
                LOGGER.info("Concurrent OTP issuance for %s, retrying", identifier)
            except SQLAlchemyError as exc:
                LOGGER.error("OTP store write failed: %s", exc)
                raise StorageUnavailable() from exc
        raise StorageUnavailable()

    def find_by_identifier_and_code(
        self, identifier: str, code: str
    ) -> OtpRecord | None:
        try:
            with session_scope() as session:
                entry = session.execute(
                    select(OtpEntry).where(
                        OtpEntry.identifier == identifier,
                        OtpEntry.code == code,
                    )
                ).scalar_one_or_none()
                if entry is None:
                    return None
                return _to_record(entry)
        except SQLAlchemyError as exc:
            LOGGER.error("OTP store read failed: %s", exc)
            raise StorageUnavailable() from exc

    def delete_by_id(self, record_id: int) -> bool:
        """Delete one record and report whether this call removed it.

        Of several concurrent callers only one gets ``True``; that is the
        claim verification relies on.
        """
        try:
            with session_scope() as session:
                result = session.execute(
                    delete(OtpEntry)
                    .where(OtpEntry.id == record_id)
                    .execution_options(synchronize_session=False)
                )
                return result.rowcount > 0
        except SQLAlchemyError as exc:
            LOGGER.error("OTP store delete failed: %s", exc)
            raise StorageUnavailable() from exc

    def purge_expired(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        try:
            with session_scope() as session:
                result = session.execute(
                    delete(OtpEntry)
                    .where(OtpEntry.expires_at <= now)
                    .execution_options(synchronize_session=False)
                )
                return result.rowcount
        except SQLAlchemyError as exc:
            LOGGER.error("OTP store purge failed: %s", exc)
            raise StorageUnavailable() from exc


otp_store = OtpStore()
