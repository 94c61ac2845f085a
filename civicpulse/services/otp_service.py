from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import Callable, Optional

from civicpulse.config import settings
from civicpulse.database import utcnow
from civicpulse.errors import (
    AccountNotFound,
    InvalidIdentifier,
    InvalidOrExpiredCode,
)
from civicpulse.services.accounts import AccountStore, account_store
from civicpulse.services.delivery import EMAIL, DeliveryDispatcher, dispatcher
from civicpulse.services.otp import (
    OtpStore,
    generate_code,
    otp_store,
    parse_identifier,
)
from civicpulse.services.sms import SMS, WHATSAPP

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedOtp:
    identifier: str
    channel: str
    expires_at: datetime
    # None when the request was absorbed for an unknown account.
    code: Optional[str] = None


def _resolve_channel(kind: str, channel: Optional[str]) -> str:
    if kind == EMAIL:
        if channel not in (None, EMAIL):
            raise InvalidIdentifier(f"Channel {channel!r} needs a phone number")
        return EMAIL
    if channel is None:
        return WHATSAPP
    if channel not in (SMS, WHATSAPP):
        raise InvalidIdentifier(f"Channel {channel!r} needs an email address")
    return channel


class OtpService:
    """Issues codes and verifies them, one live code per identifier.

    Issuing replaces whatever code the identifier had. Verifying consumes
    the code: the stored record is claimed by a conditional delete, so of
    several concurrent verifications with the same code only one succeeds.
    """

    def __init__(
        self,
        store: OtpStore,
        accounts: AccountStore,
        delivery: DeliveryDispatcher,
        ttl_seconds: int,
        code_length: int,
        conceal_unknown_accounts: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._accounts = accounts
        self._delivery = delivery
        self._ttl_seconds = ttl_seconds
        self._code_length = code_length
        self._conceal_unknown_accounts = conceal_unknown_accounts
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def request_otp(self, identifier: str, channel: Optional[str] = None) -> IssuedOtp:
        normalized, kind = parse_identifier(identifier)
        channel = _resolve_channel(kind, channel)
        now = self._clock()
        expires_at = now + timedelta(seconds=self._ttl_seconds)

        if not self._accounts.exists_by_identifier(normalized):
            if self._conceal_unknown_accounts:
                LOGGER.info("OTP requested for unknown account, not issued")
                return IssuedOtp(normalized, channel, expires_at)
            raise AccountNotFound()

        code = generate_code(self._code_length)
        record = self._store.put(normalized, code, expires_at, now=now)
        # The record stays stored if delivery fails; a new request replaces it.
        self._delivery.send(normalized, channel, record.code)
        LOGGER.info("OTP issued for %s via %s", normalized, channel)
        return IssuedOtp(normalized, channel, record.expires_at, record.code)

    def verify_otp(self, identifier: str, code: str) -> str:
        """Consume ``code`` for ``identifier`` and return the normalized identifier."""
        try:
            normalized, _ = parse_identifier(identifier)
        except InvalidIdentifier as exc:
            raise InvalidOrExpiredCode() from exc
        clean_code = (code or "").strip()

        record = self._store.find_by_identifier_and_code(normalized, clean_code)
        if record is None:
            raise InvalidOrExpiredCode()
        if self._clock() >= record.expires_at:
            self._store.delete_by_id(record.id)
            raise InvalidOrExpiredCode()
        if not self._store.delete_by_id(record.id):
            LOGGER.info("OTP for %s already consumed", normalized)
            raise InvalidOrExpiredCode()
        LOGGER.info("OTP verified for %s", normalized)
        return normalized


otp_service = OtpService(
    otp_store,
    account_store,
    dispatcher,
    ttl_seconds=settings.otp_ttl_seconds,
    code_length=settings.otp_length,
    conceal_unknown_accounts=settings.otp_conceal_unknown_accounts,
)
