import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from civicpulse.database import as_utc, session_scope, utcnow
from civicpulse.errors import StorageUnavailable
from civicpulse.models.notification import NotificationEntry
from civicpulse.schemas.notifications import NotificationCreate, NotificationResponse

LOGGER = logging.getLogger(__name__)

READ = "read"
UNREAD = "unread"


class NotificationStore:
    def list_notifications(self) -> list[NotificationResponse]:
        try:
            with session_scope() as session:
                result = session.execute(
                    select(NotificationEntry).order_by(
                        NotificationEntry.created_at.desc(), NotificationEntry.id.desc()
                    )
                )
                return [self._to_response(entry) for entry in result.scalars().all()]
        except SQLAlchemyError as exc:
            LOGGER.error("Notification read failed: %s", exc)
            raise StorageUnavailable() from exc

    def create_notification(self, payload: NotificationCreate) -> NotificationResponse:
        try:
            with session_scope() as session:
                entry = NotificationEntry(
                    title=payload.title,
                    description=payload.description,
                    kind=payload.kind,
                    status=UNREAD,
                    created_at=utcnow(),
                )
                session.add(entry)
                session.flush()
                return self._to_response(entry)
        except SQLAlchemyError as exc:
            LOGGER.error("Notification write failed: %s", exc)
            raise StorageUnavailable() from exc

    def set_status(self, notification_id: int, status: str) -> bool:
        try:
            with session_scope() as session:
                result = session.execute(
                    update(NotificationEntry)
                    .where(NotificationEntry.id == notification_id)
                    .values(status=status)
                )
                return result.rowcount > 0
        except SQLAlchemyError as exc:
            LOGGER.error("Notification update failed: %s", exc)
            raise StorageUnavailable() from exc

    def mark_all_read(self) -> int:
        try:
            with session_scope() as session:
                result = session.execute(
                    update(NotificationEntry)
                    .where(NotificationEntry.status != READ)
                    .values(status=READ)
                )
                LOGGER.info("Marked %d notifications as read", result.rowcount)
                return result.rowcount
        except SQLAlchemyError as exc:
            LOGGER.error("Notification update failed: %s", exc)
            raise StorageUnavailable() from exc

    def _to_response(self, entry: NotificationEntry) -> NotificationResponse:
        return NotificationResponse(
            id=entry.id,
            title=entry.title,
            description=entry.description,
            kind=entry.kind,
            status=entry.status,
            created_at=as_utc(entry.created_at),
        )


notification_store = NotificationStore()
