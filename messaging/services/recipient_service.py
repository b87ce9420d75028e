"""
services/recipient_service.py — Single-record recipient transitions

Guarded, per-row state changes (view, hide, unhide, archive, spam) and
recipient creation/removal with position management. Thread-wide changes
live in services/thread_propagator.py.

Business Rules:
- A receiver can only act on their own recipient rows; anything else is
  RecipientNotFoundError
- view() on an unsent message is a silent deny: no change, no error
- Adding a recipient locks the message row before reading the highest
  position, so concurrent adds never hand out the same position
- Removing a recipient renumbers its kind in the same transaction

Called by: routers/messages.py
Depends on: models, database.write_unit
"""

from loguru import logger
from sqlalchemy.orm import Session

from ..database import write_unit
from ..exceptions import MessageNotFoundError, RecipientNotFoundError
from ..models import Message, MessageRecipient
from ..models.addressable import address_of


def get_recipient(db: Session, receiver, recipient_id: int) -> MessageRecipient:
    """Return the receiver's own recipient row, hidden or not."""
    receiver_type, receiver_id = address_of(receiver)
    recipient = (
        db.query(MessageRecipient)
        .filter(
            MessageRecipient.id == recipient_id,
            MessageRecipient.receiver_type == receiver_type,
            MessageRecipient.receiver_id == receiver_id,
        )
        .first()
    )
    if recipient is None:
        raise RecipientNotFoundError(recipient_id)
    return recipient


def _transition(db: Session, recipient: MessageRecipient, event: str) -> bool:
    with write_unit(db):
        changed = getattr(recipient, event)()
    if changed:
        logger.debug("Recipient {} {}", recipient.id, event)
    return changed


def view(db: Session, recipient: MessageRecipient) -> bool:
    """Mark the row read. Returns False when denied or already read."""
    if not recipient.message.is_sent:
        logger.debug(
            "View denied for recipient {}: message {} is {}",
            recipient.id, recipient.message_id, recipient.message.state,
        )
        return False
    return _transition(db, recipient, "view")


def hide(db: Session, recipient: MessageRecipient) -> bool:
    return _transition(db, recipient, "hide")


def unhide(db: Session, recipient: MessageRecipient) -> bool:
    return _transition(db, recipient, "unhide")


def archive(db: Session, recipient: MessageRecipient) -> bool:
    return _transition(db, recipient, "archive")


def mark_spam(db: Session, recipient: MessageRecipient) -> bool:
    return _transition(db, recipient, "mark_spam")


# ── Recipient creation / removal ─────────────────────────────────────


def _lock_message(db: Session, message_id: int) -> Message:
    message = (
        db.query(Message)
        .filter(Message.id == message_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if message is None:
        raise MessageNotFoundError(message_id)
    return message


def add_recipient(db: Session, message_id: int, receiver, kind: str = "to") -> MessageRecipient:
    """Address an existing message to one more receiver."""
    with write_unit(db):
        message = _lock_message(db, message_id)
        recipient = message.add_recipient(receiver, kind)
        db.flush()
    logger.info(
        "Message {} gained {} recipient {}:{} at position {}",
        message_id, kind, recipient.receiver_type, recipient.receiver_id, recipient.position,
    )
    return recipient


def remove_recipient(db: Session, recipient: MessageRecipient) -> None:
    """Delete one recipient row and compact the positions of its kind."""
    recipient_id, message_id, kind = recipient.id, recipient.message_id, recipient.kind
    with write_unit(db):
        message = _lock_message(db, message_id)
        message.remove_recipient(recipient)
    logger.info("Removed {} recipient {} from message {}", kind, recipient_id, message_id)
