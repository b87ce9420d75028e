"""
services/inbox_service.py — Mailbox views for senders and receivers

Query shapes behind the inbox: drafts and sent items for a sender,
received rows for a receiver, and "latest message per thread" listings.
Functions return SQLAlchemy queries so callers can page them; show_thread
returns a list.

Business Rules:
- Received = recipient row visible (hidden_at IS NULL) and message sent
- Unlabeled = received with label IS NULL; labeled = archived or spam
- sent_messages covers queued AND sent; the per-thread listings only ever
  see messages whose state is exactly sent
- Threads are grouped by COALESCE(original_message_id, messages.id); the
  newest row of each group wins
- show_thread() never raises: unknown or foreign recipient ids give []

Called by: routers/messages.py
Depends on: models, services/thread_resolver.py
"""

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ..models import Label, Message, MessageRecipient, MessageState, ReadState
from ..models.addressable import address_of
from .thread_resolver import anchor_of, thread_filter, thread_key

_NEWEST_FIRST = (Message.created_at.desc(), MessageRecipient.id.desc())


# ── Sender side ──────────────────────────────────────────────────────


def messages(db: Session, sender) -> Query:
    """The sender's own visible messages, any state, newest first."""
    sender_type, sender_id = address_of(sender)
    return (
        db.query(Message)
        .filter(
            Message.sender_type == sender_type,
            Message.sender_id == sender_id,
            Message.hidden_at.is_(None),
        )
        .order_by(Message.created_at.desc(), Message.id.desc())
    )


def unsent_messages(db: Session, sender) -> Query:
    """Drafts: messages still in the unsent state."""
    return messages(db, sender).filter(Message.state == MessageState.UNSENT.value)


def sent_messages(db: Session, sender) -> Query:
    """Messages that have left the drafts folder (queued or sent)."""
    return messages(db, sender).filter(
        Message.state.in_([MessageState.QUEUED.value, MessageState.SENT.value])
    )


# ── Receiver side ────────────────────────────────────────────────────


def received_messages(db: Session, receiver) -> Query:
    receiver_type, receiver_id = address_of(receiver)
    return (
        db.query(MessageRecipient)
        .join(MessageRecipient.message)
        .filter(
            MessageRecipient.receiver_type == receiver_type,
            MessageRecipient.receiver_id == receiver_id,
            MessageRecipient.hidden_at.is_(None),
            Message.state == MessageState.SENT.value,
        )
        .order_by(*_NEWEST_FIRST)
    )


def unlabeled_messages(db: Session, receiver) -> Query:
    return received_messages(db, receiver).filter(MessageRecipient.label.is_(None))


def labeled_messages(db: Session, receiver, label=None) -> Query:
    """Received rows carrying a label; narrowed to one label when given."""
    q = received_messages(db, receiver).filter(MessageRecipient.label.isnot(None))
    if label is not None:
        q = q.filter(MessageRecipient.label == Label(label).value)
    return q


def _last_per_thread(db: Session, q: Query) -> Query:
    """Keep only the newest row of each thread in ``q``."""
    ranked = (
        q.order_by(None)
        .with_entities(
            MessageRecipient.id.label("recipient_id"),
            func.row_number()
            .over(partition_by=thread_key(), order_by=_NEWEST_FIRST)
            .label("thread_rank"),
        )
        .subquery()
    )
    return (
        db.query(MessageRecipient)
        .join(MessageRecipient.message)
        .join(ranked, ranked.c.recipient_id == MessageRecipient.id)
        .filter(ranked.c.thread_rank == 1)
        .order_by(*_NEWEST_FIRST)
    )


def last_message_per_thread(db: Session, receiver) -> Query:
    """The most recent unlabeled message of each thread."""
    return _last_per_thread(db, unlabeled_messages(db, receiver))


def last_unread_message_per_thread(db: Session, receiver) -> Query:
    """The most recent unread, unlabeled message of each thread."""
    q = unlabeled_messages(db, receiver).filter(
        MessageRecipient.state == ReadState.UNREAD.value
    )
    return _last_per_thread(db, q)


def last_sent_message_per_thread(db: Session, receiver) -> Query:
    """The most recent unlabeled message of each thread sent by the receiver."""
    sender_type, sender_id = address_of(receiver)
    q = unlabeled_messages(db, receiver).filter(
        Message.sender_type == sender_type,
        Message.sender_id == sender_id,
    )
    return _last_per_thread(db, q)


def last_archived_message_per_thread(db: Session, receiver) -> Query:
    return _last_per_thread(db, labeled_messages(db, receiver, Label.ARCHIVED))


def show_thread(db: Session, receiver, recipient_id: int, label_filter=None) -> list[MessageRecipient]:
    """Every row of the receiver's thread that matches ``label_filter``.

    label_filter "archived" or "spam" selects rows with that label; any
    other value (including None / "none") selects unlabeled rows.
    """
    recipient = (
        received_messages(db, receiver)
        .filter(MessageRecipient.id == recipient_id)
        .first()
    )
    if recipient is None:
        return []

    anchor_id = anchor_of(recipient.message)
    label = getattr(label_filter, "value", label_filter)
    if label in (Label.ARCHIVED.value, Label.SPAM.value):
        q = labeled_messages(db, receiver, label)
    else:
        q = unlabeled_messages(db, receiver)
    return q.filter(thread_filter(anchor_id)).all()
