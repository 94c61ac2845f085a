from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from civicpulse.config import settings


def _build_database_url(raw_url: str) -> str:
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return raw_url


def _engine_options(url: str, timeout_seconds: int) -> dict:
    if url.startswith("sqlite"):
        # Lock waits are bounded by the sqlite busy timeout.
        return {
            "pool_pre_ping": True,
            "connect_args": {"check_same_thread": False, "timeout": timeout_seconds},
        }
    connect_args = {}
    if url.startswith("postgresql"):
        timeout_ms = timeout_seconds * 1000
        connect_args = {
            "connect_timeout": timeout_seconds,
            "options": f"-c statement_timeout={timeout_ms} -c lock_timeout={timeout_ms}",
        }
    return {
        "pool_pre_ping": True,
        "pool_timeout": timeout_seconds,
        "connect_args": connect_args,
    }


DATABASE_URL = _build_database_url(settings.database_url)
engine = create_engine(
    DATABASE_URL, **_engine_options(DATABASE_URL, settings.storage_timeout_seconds)
)
SessionLocal = sessionmaker(
    bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
)
Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def init_db() -> None:
    if not DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not configured")
    from civicpulse.models import account as _account  # noqa: F401
    from civicpulse.models import notification as _notification  # noqa: F401
    from civicpulse.models import otp as _otp  # noqa: F401

    Base.metadata.create_all(bind=engine)
    inspector = inspect(engine)
    if "accounts" in inspector.get_table_names():
        columns = {column["name"] for column in inspector.get_columns("accounts")}
        if "password_version" not in columns:
            with engine.begin() as connection:
                connection.execute(
                    text(
                        "ALTER TABLE accounts ADD COLUMN "
                        "password_version INTEGER NOT NULL DEFAULT 0"
                    )
                )


def ping() -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))


@contextmanager
def session_scope():
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
