from typing import List, Optional
import uuid
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from community.core.exceptions import WriteError
from community.modules.support.models.support_message import SupportMessage
from community.modules.support.schemas.support import SupportForm

logger = logging.getLogger(__name__)

def submit_support_message(db: Session, form: SupportForm) -> SupportMessage:
    """Store a validated support message with status "new" """
    message = SupportMessage(
        id=str(uuid.uuid4()),
        name=form.name,
        email=form.email,
        message=form.message,
        status="new",
    )
    db.add(message)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise WriteError("Could not send message") from e
    db.refresh(message)
    logger.info(f"Support message {message.id} received from {form.email}")
    return message

def get_support_message(db: Session, message_id: str) -> Optional[SupportMessage]:
    return db.query(SupportMessage).filter(SupportMessage.id == message_id).first()

def list_support_messages(db: Session, skip: int = 0, limit: int = 100) -> List[SupportMessage]:
    """Newest first"""
    return (
        db.query(SupportMessage)
        .order_by(SupportMessage.created_at.desc(), SupportMessage.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )

def set_status(db: Session, message: SupportMessage, status: str) -> SupportMessage:
    message.status = status
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise WriteError("Could not update message") from e
    db.refresh(message)
    return message
