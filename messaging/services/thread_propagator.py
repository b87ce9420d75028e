"""
services/thread_propagator.py — Thread-wide bulk state changes

Applies one action to every recipient row a receiver has in a thread
(the anchor and all replies) with a single UPDATE statement.

This is a bulk administrative operation. It writes the state columns
directly and does NOT go through MessageRecipient.view() and friends:
"read" marks rows read even when their message is still unsent. Use
services/recipient_service.py for guarded single-record transitions.

Business Rules:
- archive → label = archived, spam → label = spam
- delete  → hidden_at = now (rows are never removed)
- read / unread → state = read / unread
- Only rows of the acting receiver are touched, other receivers keep
  their own state
- Unknown actions are a logged no-op (returns 0)
- Select + UPDATE run in one write unit, so concurrent readers see the
  whole thread before or after the change, never half of it
- With settings.legacy_reply_thread_archive, any action requested from a
  reply is applied as archive (historical update_thread behavior)

Called by: routers/messages.py
Depends on: services/thread_resolver.py, database.write_unit, config
"""

from enum import Enum

from loguru import logger
from sqlalchemy.orm import Session

from ..config import settings
from ..database import utcnow, write_unit
from ..models import Label, MessageRecipient, ReadState
from .thread_resolver import anchor_of, thread_message_ids


class ThreadAction(str, Enum):
    ARCHIVE = "archive"
    DELETE = "delete"
    READ = "read"
    SPAM = "spam"
    UNREAD = "unread"


def _values_for(action: ThreadAction) -> dict:
    if action is ThreadAction.ARCHIVE:
        return {"label": Label.ARCHIVED.value}
    if action is ThreadAction.DELETE:
        return {"hidden_at": utcnow()}
    if action is ThreadAction.READ:
        return {"state": ReadState.READ.value}
    if action is ThreadAction.SPAM:
        return {"label": Label.SPAM.value}
    return {"state": ReadState.UNREAD.value}


def apply_to_thread(db: Session, recipient: MessageRecipient, action) -> int:
    """Apply ``action`` to all of the receiver's rows in the thread.

    Returns the number of recipient rows updated.
    """
    try:
        action = ThreadAction(action)
    except ValueError:
        logger.warning("Ignoring unknown thread action {!r} for recipient {}", action, recipient.id)
        return 0

    message = recipient.message
    anchor_id = anchor_of(message)
    if message.original_message_id is not None and settings.legacy_reply_thread_archive:
        logger.debug("Legacy reply thread mode: {} applied as archive", action.value)
        action = ThreadAction.ARCHIVE

    with write_unit(db):
        message_ids = thread_message_ids(db, anchor_id)
        count = (
            db.query(MessageRecipient)
            .filter(
                MessageRecipient.message_id.in_(message_ids),
                MessageRecipient.receiver_type == recipient.receiver_type,
                MessageRecipient.receiver_id == recipient.receiver_id,
            )
            .update(_values_for(action), synchronize_session="fetch")
        )

    logger.info(
        "Thread {} {}: {} rows across {} messages for {}:{}",
        anchor_id, action.value, count, len(message_ids),
        recipient.receiver_type, recipient.receiver_id,
    )
    return count


def archive_thread(db: Session, recipient: MessageRecipient) -> int:
    return apply_to_thread(db, recipient, ThreadAction.ARCHIVE)


def delete_thread(db: Session, recipient: MessageRecipient) -> int:
    return apply_to_thread(db, recipient, ThreadAction.DELETE)


def read_thread(db: Session, recipient: MessageRecipient) -> int:
    return apply_to_thread(db, recipient, ThreadAction.READ)


def spam_thread(db: Session, recipient: MessageRecipient) -> int:
    return apply_to_thread(db, recipient, ThreadAction.SPAM)


def unread_thread(db: Session, recipient: MessageRecipient) -> int:
    return apply_to_thread(db, recipient, ThreadAction.UNREAD)
