from fastapi import APIRouter, Depends, HTTPException, status

from civicpulse.errors import StorageUnavailable
from civicpulse.schemas.notifications import (
    NotificationCreate,
    NotificationResponse,
    NotificationUpdateResponse,
)
from civicpulse.schemas.tokens import OkResponse
from civicpulse.services.notifications import (
    READ,
    UNREAD,
    NotificationStore,
    notification_store,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_store() -> NotificationStore:
    return notification_store


def _unavailable(exc: StorageUnavailable) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def _set_status(store: NotificationStore, notification_id: int, value: str) -> OkResponse:
    try:
        updated = store.set_status(notification_id, value)
    except StorageUnavailable as exc:
        raise _unavailable(exc) from exc
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found"
        )
    return OkResponse()


@router.get("", response_model=list[NotificationResponse])
def list_notifications(
    store: NotificationStore = Depends(get_notification_store),
) -> list[NotificationResponse]:
    try:
        return store.list_notifications()
    except StorageUnavailable as exc:
        raise _unavailable(exc) from exc


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
def create_notification(
    payload: NotificationCreate,
    store: NotificationStore = Depends(get_notification_store),
) -> NotificationResponse:
    try:
        return store.create_notification(payload)
    except StorageUnavailable as exc:
        raise _unavailable(exc) from exc


@router.post("/readall", response_model=NotificationUpdateResponse)
def mark_all_read(
    store: NotificationStore = Depends(get_notification_store),
) -> NotificationUpdateResponse:
    try:
        updated = store.mark_all_read()
    except StorageUnavailable as exc:
        raise _unavailable(exc) from exc
    return NotificationUpdateResponse(updated=updated)


@router.post("/{notification_id}/read", response_model=OkResponse, response_model_exclude_none=True)
def mark_read(
    notification_id: int, store: NotificationStore = Depends(get_notification_store)
) -> OkResponse:
    return _set_status(store, notification_id, READ)


@router.post("/{notification_id}/unread", response_model=OkResponse, response_model_exclude_none=True)
def mark_unread(
    notification_id: int, store: NotificationStore = Depends(get_notification_store)
) -> OkResponse:
    return _set_status(store, notification_id, UNREAD)
