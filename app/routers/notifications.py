"""
ExecBoard - In-app notifications for the signed-in user.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from datetime import datetime

from ..auth.dependencies import get_current_session
from ..auth.schemas import SessionUser
from ..database import get_db
from ..errors import NotFound, ValidationFailed
from ..models import Notification
from ..rate_limit import RateLimit
from ..responses import success_response
from ..schemas import NotificationListQuery, NotificationResponse, NotificationUpdate
from ..validation import validate_payload

router = APIRouter()


def _unread_count(db: Session, user_id: int) -> int:
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.read == False,
    ).count()


@router.get("/notifications", dependencies=[Depends(RateLimit("rl:notifications", 60, 60))])
def list_notifications(
    request: Request,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    filters = validate_payload(NotificationListQuery, request.query_params)

    query = db.query(Notification).filter(Notification.user_id == session.id)
    if filters.unread is True:
        query = query.filter(Notification.read == False)
    elif filters.unread is False:
        query = query.filter(Notification.read == True)

    notifications = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(filters.limit)
        .all()
    )
    return success_response({
        "notifications": [NotificationResponse.model_validate(n).model_dump() for n in notifications],
        "unreadCount": _unread_count(db, session.id),
    })


@router.patch("/notifications", dependencies=[Depends(RateLimit("rl:notifications", 60, 60))])
def mark_notifications_read(
    update: NotificationUpdate,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    """Mark every notification read (``mark_all``) or a single one (``notification_id``)."""
    now = datetime.utcnow()

    if update.mark_all:
        count = db.query(Notification).filter(
            Notification.user_id == session.id,
            Notification.read == False,
        ).update({"read": True, "read_at": now}, synchronize_session=False)
        db.commit()
        return success_response({"updated": count}, "All notifications marked as read")

    if update.notification_id is None:
        raise ValidationFailed("Either mark_all or notification_id must be provided")

    notification = db.query(Notification).filter(
        Notification.id == update.notification_id,
        Notification.user_id == session.id,
    ).first()
    if not notification:
        raise NotFound("Notification not found")

    if not notification.read:
        notification.read = True
        notification.read_at = now
        db.commit()
    return success_response({"updated": 1}, "Notification marked as read")
