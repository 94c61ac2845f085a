from __future__ import annotations

import base64
import json
import logging
import re
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from civicpulse.config import settings

LOGGER = logging.getLogger(__name__)

SMS = "sms"
WHATSAPP = "whatsapp"


class SmsSendError(RuntimeError):
    pass


def send_otp_sms(to_phone: str, code: str, channel: str = SMS) -> None:
    account_sid = settings.twilio_account_sid
    auth_token = settings.twilio_auth_token
    from_phone = settings.twilio_phone_number
    if channel == WHATSAPP and settings.twilio_whatsapp_number:
        from_phone = settings.twilio_whatsapp_number
    if not account_sid or not auth_token or not from_phone:
        raise SmsSendError("Twilio is not configured")

    to_number = normalize_e164(to_phone)
    from_number = normalize_e164(from_phone)
    fields = build_message_fields(to_number, from_number, code, channel)
    LOGGER.info("Sending OTP via %s to=%s", channel, to_number)
    endpoint = (
        f"https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"
    )
    payload = urlencode(fields).encode("utf-8")
    token = base64.b64encode(f"{account_sid}:{auth_token}".encode("utf-8")).decode(
        "ascii"
    )
    request = Request(
        endpoint,
        data=payload,
        headers={
            "Authorization": f"Basic {token}",
            "Content-Type": "application/x-www-form-urlencoded",
        },
        method="POST",
    )
    try:
        with urlopen(request, timeout=settings.delivery_timeout_seconds) as response:
            response.read()
    except HTTPError as exc:
        error_body = exc.read().decode("utf-8", errors="replace")
        LOGGER.error(
            "Twilio API error to=%s channel=%s response=%s",
            to_number,
            channel,
            error_body,
        )
        raise SmsSendError(f"Failed to send OTP via {channel}") from exc
    except URLError as exc:
        raise SmsSendError("Failed to reach Twilio API") from exc
    except TimeoutError as exc:
        raise SmsSendError("Twilio API timed out") from exc


def build_message_fields(
    to_number: str, from_number: str, code: str, channel: str
) -> dict[str, str]:
    if channel != WHATSAPP:
        return {"To": to_number, "From": from_number, "Body": _build_body(code)}
    fields = {"To": f"whatsapp:{to_number}", "From": f"whatsapp:{from_number}"}
    if settings.twilio_content_sid:
        fields["ContentSid"] = settings.twilio_content_sid
        fields["ContentVariables"] = json.dumps({"1": code})
    else:
        fields["Body"] = _build_body(code)
    return fields


def normalize_e164(phone_number: str) -> str:
    raw = phone_number.strip()
    if raw.startswith("whatsapp:"):
        raw = raw[len("whatsapp:"):]
    digits = re.sub(r"\D", "", raw)
    if not digits:
        raise SmsSendError("Phone number is missing")
    if len(digits) == 10:
        default_code = re.sub(r"\D", "", settings.default_country_code)
        if not default_code:
            raise SmsSendError("Default country code is not configured")
        digits = f"{default_code}{digits}"
    if len(digits) < 10 or len(digits) > 15:
        raise SmsSendError("Phone number must include a valid country code")
    return f"+{digits}"


def _build_body(code: str) -> str:
    minutes = max(1, settings.otp_ttl_seconds // 60)
    return (
        f"Your CivicPulse OTP code is {code}."
        f" It expires in {minutes} minute(s)."
    )
