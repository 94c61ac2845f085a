from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from civicpulse.config import settings
from civicpulse.errors import OtpError
from civicpulse.schemas.otp import (
    LegacyOtpRequest,
    LegacyOtpVerifyRequest,
    OtpRequest,
    OtpResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
)
from civicpulse.schemas.tokens import OkResponse, PasswordResetRequest
from civicpulse.services.accounts import AccountStore, account_store
from civicpulse.services.otp_service import OtpService, otp_service
from civicpulse.services.tokens import (
    TokenError,
    create_reset_token,
    decode_reset_token,
    reset_tokens_enabled,
)

router = APIRouter(prefix="/auth", tags=["auth"])
legacy_router = APIRouter(tags=["auth"])


def get_otp_service() -> OtpService:
    return otp_service


def get_account_store() -> AccountStore:
    return account_store


def _http_error(exc: OtpError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def _issue(service: OtpService, identifier: str, channel: Optional[str]) -> OtpResponse:
    try:
        issued = service.request_otp(identifier, channel)
    except OtpError as exc:
        raise _http_error(exc) from exc
    return OtpResponse(
        message="OTP sent",
        expires_in_seconds=service.ttl_seconds,
        otp=issued.code if settings.otp_debug else None,
    )


def _verify(
    service: OtpService, accounts: AccountStore, identifier: str, code: str
) -> OtpVerifyResponse:
    try:
        normalized = service.verify_otp(identifier, code)
    except OtpError as exc:
        raise _http_error(exc) from exc
    reset_token = None
    if reset_tokens_enabled():
        try:
            version = accounts.password_version(normalized)
            reset_token = create_reset_token(normalized, version)
        except OtpError as exc:
            raise _http_error(exc) from exc
        except TokenError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=str(exc),
            ) from exc
    return OtpVerifyResponse(message="OTP verified", reset_token=reset_token)


@router.post("/otp/request", response_model=OtpResponse, response_model_exclude_none=True)
def request_otp(
    payload: OtpRequest, service: OtpService = Depends(get_otp_service)
) -> OtpResponse:
    return _issue(service, payload.identifier, payload.channel)


@router.post(
    "/otp/verify", response_model=OtpVerifyResponse, response_model_exclude_none=True
)
def verify_otp(
    payload: OtpVerifyRequest,
    service: OtpService = Depends(get_otp_service),
    accounts: AccountStore = Depends(get_account_store),
) -> OtpVerifyResponse:
    return _verify(service, accounts, payload.identifier, payload.code)


@router.post("/password/reset", response_model=OkResponse, response_model_exclude_none=True)
def reset_password(
    payload: PasswordResetRequest,
    accounts: AccountStore = Depends(get_account_store),
) -> OkResponse:
    if not reset_tokens_enabled():
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="JWT secret is not configured",
        )
    try:
        token_data = decode_reset_token(payload.reset_token)
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    try:
        updated = accounts.reset_password(
            token_data.identifier, payload.new_password, token_data.version
        )
    except OtpError as exc:
        raise _http_error(exc) from exc
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Reset token has already been used",
        )
    return OkResponse(message="Password updated")


# Paths served by the earlier standalone OTP server. Its clients read
# ``error`` on failure and ``success`` otherwise.
def _legacy_response(handler: Callable[[], BaseModel]) -> JSONResponse:
    try:
        result = handler()
    except HTTPException as exc:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    body = result.model_dump(exclude_none=True)
    body.pop("ok", None)
    return JSONResponse(content={"success": True, **body})


@legacy_router.post("/request-otp")
def legacy_request_otp(
    payload: LegacyOtpRequest, service: OtpService = Depends(get_otp_service)
) -> JSONResponse:
    identifier = payload.email or payload.phone or ""
    return _legacy_response(lambda: _issue(service, identifier, None))


@legacy_router.post("/verify-otp")
def legacy_verify_otp(
    payload: LegacyOtpVerifyRequest,
    service: OtpService = Depends(get_otp_service),
    accounts: AccountStore = Depends(get_account_store),
) -> JSONResponse:
    return _legacy_response(
        lambda: _verify(service, accounts, payload.identifier, payload.otp)
    )
