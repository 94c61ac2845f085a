import os
import tempfile
from datetime import datetime, timedelta, timezone

_TEST_DIR = tempfile.mkdtemp(prefix="civicpulse-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR}/test.db"
os.environ["JWT_SECRET"] = "test-secret-0123456789-abcdefghijklmnopqrstuvwxyz"
os.environ["OTP_DEBUG"] = "false"
os.environ["OTP_CONCEAL_UNKNOWN_ACCOUNTS"] = "false"
os.environ["SMTP_HOST"] = "smtp.example.test"
os.environ["SMTP_USERNAME"] = "mailer@example.test"
os.environ["SMTP_PASSWORD"] = "app-password"
os.environ["OTP_EMAIL_SENDER"] = "mailer@example.test"
os.environ["CONTACT_RECIPIENT"] = "inbox@example.test"
os.environ["TWILIO_ACCOUNT_SID"] = "AC123"
os.environ["TWILIO_AUTH_TOKEN"] = "twilio-token"
os.environ["TWILIO_PHONE_NUMBER"] = "+15550001111"
os.environ["TWILIO_WHATSAPP_NUMBER"] = "+14155238886"
os.environ["DEFAULT_COUNTRY_CODE"] = "+91"

import pytest
from fastapi.testclient import TestClient

from civicpulse.database import Base, engine, init_db
from civicpulse.errors import DeliveryFailed
from civicpulse.main import app
from civicpulse.routers.auth import get_otp_service
from civicpulse.services.accounts import account_store
from civicpulse.services.otp import otp_store
from civicpulse.services.otp_service import OtpService


class FakeDispatcher:
    def __init__(self) -> None:
        self.sent = []
        self.failure = None

    def send(self, identifier: str, channel: str, code: str) -> None:
        if self.failure:
            raise DeliveryFailed(self.failure)
        self.sent.append((identifier, channel, code))

    @property
    def last_code(self) -> str:
        return self.sent[-1][2]


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def database():
    init_db()
    yield
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def delivery():
    return FakeDispatcher()


@pytest.fixture
def service(clock, delivery):
    return OtpService(
        otp_store,
        account_store,
        delivery,
        ttl_seconds=300,
        code_length=6,
        clock=clock,
    )


@pytest.fixture
def account():
    return account_store.create_account(email="user@example.com")


@pytest.fixture
def phone_account():
    return account_store.create_account(phone_number="98765 43210")


@pytest.fixture
def client(service):
    app.dependency_overrides[get_otp_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
