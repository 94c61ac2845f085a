import logging

from fastapi import APIRouter, HTTPException, status

from civicpulse.config import settings
from civicpulse.schemas.contact import ContactRequest
from civicpulse.schemas.tokens import OkResponse
from civicpulse.services.email import EmailSendError, send_email

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/contact", tags=["contact"])


def build_contact_email(payload: ContactRequest) -> tuple[str, str]:
    subject = " ".join(payload.subject.split())
    body = f"Name: {payload.name}\nEmail: {payload.email}\n\n{payload.message}"
    return f"[CivicPulse Contact] {subject}", body


@router.post("", response_model=OkResponse, response_model_exclude_none=True)
def submit_contact(payload: ContactRequest) -> OkResponse:
    recipient = settings.contact_recipient
    if not recipient:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Contact inbox is not configured",
        )
    subject, body = build_contact_email(payload)
    try:
        send_email(recipient, subject, body, reply_to=payload.email)
    except EmailSendError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    LOGGER.info("Contact message relayed from %s", payload.email)
    return OkResponse()
