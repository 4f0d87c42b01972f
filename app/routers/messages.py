"""
ExecBoard - Direct messages between users.

Messages may be tied to an application, in which case only that
application's candidate and the employer owning its job may write about it.
Replies point at their parent through parent_message_id.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session
from datetime import datetime
import logging

from ..auth.dependencies import get_current_session
from ..auth.models import User
from ..auth.schemas import SessionUser
from ..database import get_db
from ..errors import Forbidden, NotFound
from ..models import Application, Message
from ..query_helpers import get_or_404
from ..rate_limit import RateLimit
from ..responses import created_response, success_response
from ..schemas import MessageCreate, MessageFolder, MessageListQuery, MessageReadUpdate, MessageResponse
from ..services.notifications import notify_new_message
from ..validation import validate_payload

logger = logging.getLogger("execboard.messages")
router = APIRouter()


def display_name(user: User) -> str:
    if user.candidate_profile and user.candidate_profile.full_name:
        return user.candidate_profile.full_name
    if user.employer_profile and user.employer_profile.org_name:
        return user.employer_profile.org_name
    return user.email


def serialize_message(message: Message) -> dict:
    data = MessageResponse.model_validate(message).model_dump()
    data["sender_name"] = display_name(message.sender) if message.sender else None
    data["recipient_name"] = display_name(message.recipient) if message.recipient else None
    return data


def _application_participants(application: Application) -> set:
    participants = {application.candidate.user_id}
    if application.job and application.job.employer:
        participants.add(application.job.employer.user_id)
    return participants


def _unread_count(db: Session, user_id: int) -> int:
    return db.query(Message).filter(Message.recipient_id == user_id, Message.read == False).count()


@router.get("/messages", dependencies=[Depends(RateLimit("rl:api"))])
def list_messages(
    request: Request,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    """Inbox or sent folder, newest first, with the caller's unread count."""
    query_params = validate_payload(MessageListQuery, request.query_params)

    query = db.query(Message)
    if query_params.folder == MessageFolder.SENT:
        query = query.filter(Message.sender_id == session.id)
    else:
        query = query.filter(Message.recipient_id == session.id)
    if query_params.application_id is not None:
        query = query.filter(Message.application_id == query_params.application_id)

    messages = query.order_by(Message.created_at.desc(), Message.id.desc()).limit(query_params.limit).all()
    return success_response({
        "messages": [serialize_message(m) for m in messages],
        "unreadCount": _unread_count(db, session.id),
    })


@router.post("/messages", status_code=201, dependencies=[Depends(RateLimit("rl:messages", 30, 60))])
def send_message(
    message_data: MessageCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    """Send a message; the recipient is notified once it is stored."""
    recipient = db.query(User).filter(User.id == message_data.recipient_id).first()
    if not recipient:
        raise NotFound("Recipient not found")

    if message_data.application_id is not None:
        application = get_or_404(db, Application, message_data.application_id, "Application")
        if session.id not in _application_participants(application):
            raise Forbidden("You are not a participant in this application")

    if message_data.parent_message_id is not None:
        parent = get_or_404(db, Message, message_data.parent_message_id, "Parent message")
        if session.id not in (parent.sender_id, parent.recipient_id):
            raise Forbidden()

    message = Message(
        sender_id=session.id,
        recipient_id=recipient.id,
        application_id=message_data.application_id,
        parent_message_id=message_data.parent_message_id,
        message_type=message_data.message_type.value,
        subject=message_data.subject,
        body=message_data.body,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info(f"User {session.id} sent message {message.id} to user {recipient.id}")

    notify_new_message(
        db, background_tasks, recipient.id, message.id,
        display_name(message.sender), message.subject,
    )

    return created_response({"messageId": message.id}, "Message sent")


@router.get("/messages/{message_id}", dependencies=[Depends(RateLimit("rl:api"))])
def get_message(
    message_id: int,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    """A message with its replies. Opening it as the recipient marks it read."""
    message = get_or_404(db, Message, message_id, "Message")
    if session.id not in (message.sender_id, message.recipient_id):
        raise Forbidden()

    if message.recipient_id == session.id and not message.read:
        message.read = True
        message.read_at = datetime.utcnow()
        db.commit()
        db.refresh(message)

    data = serialize_message(message)
    data["replies"] = [serialize_message(reply) for reply in message.replies]
    return success_response(data)


@router.patch("/messages/{message_id}", dependencies=[Depends(RateLimit("rl:messages", 30, 60))])
def update_message_read(
    message_id: int,
    update: MessageReadUpdate,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    message = get_or_404(db, Message, message_id, "Message")
    if message.recipient_id != session.id:
        raise Forbidden("Only the recipient can change the read status")

    message.read = update.read
    message.read_at = datetime.utcnow() if update.read else None
    db.commit()
    db.refresh(message)
    return success_response(serialize_message(message))
