from typing import Optional

from pydantic import BaseModel, Field, field_validator

# bcrypt only looks at the first 72 bytes and rejects longer input.
BCRYPT_MAX_BYTES = 72


class PasswordResetRequest(BaseModel):
    reset_token: str = Field(min_length=10, max_length=2048)
    new_password: str = Field(min_length=8, max_length=BCRYPT_MAX_BYTES)

    @field_validator("new_password")
    @classmethod
    def validate_password_bytes(cls, value: str) -> str:
        if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
        return value


class OkResponse(BaseModel):
    ok: bool = True
    message: Optional[str] = None
