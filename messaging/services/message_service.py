"""
services/message_service.py — Sender-side message lifecycle

Composing drafts, addressing them, and moving them through
unsent → queued → sent. Also the sender's own hide/unhide.

Business Rules:
- A sender only sees and acts on their own messages
- queue/deliver need at least one recipient; illegal transitions raise
  MessageStateError and leave the message unchanged
- Hiding a message only affects the sender's mailbox; recipient rows keep
  their own visibility

Called by: routers/messages.py
Depends on: models, database.write_unit
"""

from loguru import logger
from sqlalchemy.orm import Session

from ..database import write_unit
from ..exceptions import MessageNotFoundError
from ..models import Message
from ..models.addressable import address_of


def get_message(db: Session, sender, message_id: int) -> Message:
    sender_type, sender_id = address_of(sender)
    message = (
        db.query(Message)
        .filter(
            Message.id == message_id,
            Message.sender_type == sender_type,
            Message.sender_id == sender_id,
        )
        .first()
    )
    if message is None:
        raise MessageNotFoundError(message_id)
    return message


def compose(
    db: Session,
    sender,
    subject: str = "",
    body: str = "",
    to=(),
    cc=(),
    bcc=(),
    deliver: bool = False,
) -> Message:
    """Create and persist a new message.

    With deliver=True the message is sent in the same write unit; a
    MessageStateError rolls the whole compose back, nothing is stored.
    """
    message = Message(subject=subject, body=body, sender=sender)
    for kind, receivers in (("to", to), ("cc", cc), ("bcc", bcc)):
        if receivers:
            message.set_receivers(kind, receivers)
    if not deliver:
        return save_draft(db, message)

    with write_unit(db):
        db.add(message)
        message.deliver()
    logger.info(
        "Composed and delivered message {} from {}:{} to {} recipients",
        message.id, message.sender_type, message.sender_id, len(message.recipients),
    )
    return message


def save_draft(db: Session, message: Message) -> Message:
    """Persist a draft built in memory (e.g. by services/composer.py)."""
    with write_unit(db):
        db.add(message)
    logger.info(
        "Saved draft {} from {}:{} with {} recipients",
        message.id, message.sender_type, message.sender_id, len(message.recipients),
    )
    return message


def queue(db: Session, message: Message) -> Message:
    with write_unit(db):
        message.queue()
    logger.info("Message {} queued", message.id)
    return message


def deliver(db: Session, message: Message) -> Message:
    with write_unit(db):
        message.deliver()
    logger.info("Message {} delivered to {} recipients", message.id, len(message.recipients))
    return message


def hide(db: Session, message: Message) -> bool:
    with write_unit(db):
        changed = message.hide()
    return changed


def unhide(db: Session, message: Message) -> bool:
    with write_unit(db):
        changed = message.unhide()
    return changed
