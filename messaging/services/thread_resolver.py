"""
services/thread_resolver.py — Thread anchor resolution

A thread is its anchor (the first message of a reply chain) plus every
message whose original_message_id points at the anchor. Replies always
reference the anchor directly, so one level of lookup is enough.

Business Rules:
- anchor_of(m) is m.original_message_id when set, else m.id
- thread_message_ids() always contains the anchor itself, never empty
- Read-only: nothing here writes to the session

Called by: services/thread_propagator.py, services/inbox_service.py,
           services/composer.py
Depends on: models
"""

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..models import Message


def anchor_of(message: Message) -> int:
    """Return the id of the message that anchors ``message``'s thread."""
    if message.original_message_id is not None:
        return message.original_message_id
    if message.original_message is not None:
        return message.original_message.id
    return message.id


def anchor_message(message: Message) -> Message:
    """Like anchor_of(), but returns the anchor Message itself."""
    return message.original_message or message


def thread_key():
    """SQL expression grouping messages by their thread anchor."""
    return func.coalesce(Message.original_message_id, Message.id)


def thread_filter(anchor_id: int):
    """SQL predicate matching every message of the thread anchored at anchor_id."""
    return or_(Message.id == anchor_id, Message.original_message_id == anchor_id)


def thread_message_ids(db: Session, anchor_id: int) -> set[int]:
    """Ids of the anchor and all of its replies."""
    rows = db.query(Message.id).filter(Message.original_message_id == anchor_id).all()
    return {anchor_id} | {row.id for row in rows}


def thread_messages(db: Session, anchor_id: int) -> list[Message]:
    """Every message in the thread, oldest first."""
    return (
        db.query(Message)
        .filter(thread_filter(anchor_id))
        .order_by(Message.created_at, Message.id)
        .all()
    )
