from sqlalchemy import Column, DateTime, Integer, String

from civicpulse.database import Base


class AccountEntry(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=True, unique=True)
    phone_number = Column(String(15), nullable=True, unique=True)
    password_hash = Column(String(128), nullable=True)
    # Bumped on every password change; reset tokens carry the value they were issued against.
    password_version = Column(Integer, nullable=False, default=0)
    password_changed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
