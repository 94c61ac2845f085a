from typing import Literal, Optional

from pydantic import BaseModel, Field

Channel = Literal["email", "sms", "whatsapp"]


class OtpRequest(BaseModel):
    identifier: str = Field(default="", max_length=255)
    channel: Optional[Channel] = None


class OtpResponse(BaseModel):
    ok: bool = True
    message: str
    expires_in_seconds: int
    otp: Optional[str] = None


class OtpVerifyRequest(BaseModel):
    identifier: str = Field(default="", max_length=255)
    code: str = Field(default="", max_length=32)


class OtpVerifyResponse(BaseModel):
    ok: bool = True
    message: str
    reset_token: Optional[str] = None


class LegacyOtpRequest(BaseModel):
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)


class LegacyOtpVerifyRequest(BaseModel):
    identifier: str = Field(default="", max_length=255)
    otp: str = Field(default="", max_length=32)
