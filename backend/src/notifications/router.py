"""Notification endpoints: in-app inbox and realtime WebSocket.

WebSocket clients connect to ``/ws/notifications?token=<JWT>`` and receive
JSON payloads as notifications are committed. Text frames sent by the
client are treated as keep-alive pings and answered with ``{"event": "pong"}``.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from auth.dependencies import CurrentUser, user_id_from_token
from database import get_db, get_db_session
from domain.notifications.ports import ConnectionRegistryPort
from models.notification import Notification
from models.user import User
from .registry import get_connection_registry
from .schemas import NotificationResponse, NotificationListResponse, MarkAllReadResponse
from .service import mark_read, mark_all_read

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])
ws_router = APIRouter(tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    current_user: CurrentUser,
    db: Session = Depends(get_db),
    unread_only: bool = Query(False, description="Only return unread notifications"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """List the current user's notifications, newest first."""
    query = db.query(Notification).filter(Notification.recipient_id == current_user.id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))

    total = query.count()
    unread_count = (
        db.query(Notification)
        .filter(Notification.recipient_id == current_user.id, Notification.is_read.is_(False))
        .count()
    )
    notifications = (
        query.order_by(Notification.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        unread_count=unread_count,
        page=page,
        per_page=per_page,
    )


@router.patch("/read-all", response_model=MarkAllReadResponse)
def read_all_notifications(current_user: CurrentUser, db: Session = Depends(get_db)):
    updated = mark_all_read(db, current_user)
    db.commit()
    return MarkAllReadResponse(updated=updated)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def read_notification(notification_id: UUID, current_user: CurrentUser, db: Session = Depends(get_db)):
    notification = mark_read(db, current_user, notification_id)
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    db.commit()
    db.refresh(notification)
    return NotificationResponse.model_validate(notification)


def _authenticate_websocket(token: str):
    """Resolve the token to an active user id, or None."""
    try:
        user_id = user_id_from_token(token)
    except HTTPException:
        return None

    with get_db_session() as db:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None or not user.is_active:
            return None
        return user.id


@ws_router.websocket("/ws/notifications")
async def notifications_websocket(
    websocket: WebSocket,
    token: str = Query(...),
    registry: ConnectionRegistryPort = Depends(get_connection_registry),
):
    user_id = _authenticate_websocket(token)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await registry.register(user_id, websocket)
    await websocket.send_json({"event": "connected", "user_id": str(user_id)})

    try:
        while True:
            await websocket.receive_text()
            await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        logger.info(f"Realtime connection closed: user_id={user_id}")
    finally:
        await registry.unregister(user_id, websocket)
