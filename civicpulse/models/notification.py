from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from civicpulse.database import Base


class NotificationEntry(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    kind = Column(String(16), nullable=False, default="info")
    status = Column(String(16), nullable=False, default="unread")
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_notifications_created_at", "created_at"),)
