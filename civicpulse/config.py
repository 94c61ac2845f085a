import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str, default: str = "") -> tuple[str, ...]:
    raw_value = os.getenv(name, default)
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./civicpulse.db")
    storage_timeout_seconds: int = int(os.getenv("STORAGE_TIMEOUT_SECONDS", "5"))
    delivery_timeout_seconds: int = int(os.getenv("DELIVERY_TIMEOUT_SECONDS", "10"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    cors_origins: tuple[str, ...] = _env_list(
        "CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    )
    otp_length: int = int(os.getenv("OTP_LENGTH", "6"))
    otp_ttl_seconds: int = int(os.getenv("OTP_TTL_SECONDS", "300"))
    otp_debug: bool = _env_bool("OTP_DEBUG", False)
    otp_conceal_unknown_accounts: bool = _env_bool(
        "OTP_CONCEAL_UNKNOWN_ACCOUNTS", False
    )
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    jwt_algorithm: str = os.getenv("ALGORITHM", "HS256")
    reset_token_expire_minutes: int = int(
        os.getenv("RESET_TOKEN_EXPIRE_MINUTES", "15")
    )
    smtp_host: str = os.getenv("SMTP_HOST", "")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_username: str = os.getenv("SMTP_USERNAME", "")
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    smtp_use_ssl: bool = _env_bool("SMTP_USE_SSL", False)
    otp_email_sender: str = (
        os.getenv("OTP_EMAIL_SENDER")
        or os.getenv("SMTP_USERNAME")
        or os.getenv("FROM_EMAIL", "")
    )
    otp_email_subject: str = os.getenv("OTP_EMAIL_SUBJECT", "Your CivicPulse OTP")
    contact_recipient: str = os.getenv("CONTACT_RECIPIENT", "")
    twilio_account_sid: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    twilio_auth_token: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    twilio_phone_number: str = os.getenv(
        "TWILIO_PHONE_NUMBER", os.getenv("PHONE_NUMBER", "")
    )
    twilio_whatsapp_number: str = os.getenv("TWILIO_WHATSAPP_NUMBER", "")
    twilio_content_sid: str = os.getenv("TWILIO_CONTENT_SID", "")
    default_country_code: str = os.getenv("DEFAULT_COUNTRY_CODE", "+91")
    seed_email: str = os.getenv("SEED_EMAIL", "").strip().lower()
    seed_phone: str = os.getenv("SEED_PHONE", "").strip()


settings = Settings()
