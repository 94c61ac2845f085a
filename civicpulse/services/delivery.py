import logging

from civicpulse.errors import DeliveryFailed
from civicpulse.services.email import EmailSendError, send_otp_email
from civicpulse.services.sms import SMS, WHATSAPP, SmsSendError, send_otp_sms

LOGGER = logging.getLogger(__name__)

EMAIL = "email"


class DeliveryDispatcher:
    """Hands a generated code to the email or Twilio transport."""

    def send(self, identifier: str, channel: str, code: str) -> None:
        try:
            if channel == EMAIL:
                send_otp_email(identifier, code)
            elif channel in (SMS, WHATSAPP):
                send_otp_sms(identifier, code, channel)
            else:
                raise DeliveryFailed(f"Unsupported channel {channel!r}")
        except (EmailSendError, SmsSendError) as exc:
            LOGGER.warning("OTP delivery via %s failed: %s", channel, exc)
            raise DeliveryFailed(str(exc)) from exc


dispatcher = DeliveryDispatcher()
