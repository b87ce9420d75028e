"""
models/messages.py — Messages and per-recipient message state

A Message is composed once by a sender and fans out into one
MessageRecipient row per (receiver, kind). Each recipient row is that
receiver's private view of the message: read-state, visibility and label
live on the recipient, the unsent → queued → sent lifecycle lives on the
message.

Business Rules:
- Receivers and senders are polymorphic: stored as (type, id) pairs and
  resolved through models/addressable.py
- position is dense and 1-based per (message_id, kind); removing a
  recipient renumbers the survivors of that kind
- Recipients must be added/removed through Message.add_recipient /
  Message.remove_recipient so positions stay contiguous
- view() only marks read once the message is sent; every other
  transition is unconditional
- original_message_id always points at the first message of a thread,
  never at another reply

Called by: services/*, routers/messages.py
Depends on: models/states.py, models/addressable.py, database.UTCDateTime
"""

from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import object_session, relationship

from ..database import UTCDateTime, utcnow
from ..exceptions import MessageStateError
from .addressable import address_of, resolve
from .base import Base
from .states import RECIPIENT_KINDS, Label, MessageState, ReadState, Visibility


class Message(Base):
    """A composed message. Visible to its sender until hidden."""

    __tablename__ = "messages"
    id = Column(Integer, primary_key=True)
    subject = Column(String(255))
    body = Column(Text)
    sender_type = Column(String(50), nullable=False)
    sender_id = Column(Integer, nullable=False)
    state = Column(String(20), nullable=False, default=MessageState.UNSENT.value)
    hidden_at = Column(UTCDateTime)
    original_message_id = Column(
        Integer, ForeignKey("messages.id", ondelete="SET NULL"), index=True
    )
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    original_message = relationship("Message", remote_side=[id])
    recipients = relationship(
        "MessageRecipient",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by=lambda: [MessageRecipient.kind, MessageRecipient.position],
    )

    __table_args__ = (
        Index("ix_messages_sender_state", "sender_type", "sender_id", "state"),
    )

    def __init__(self, sender=None, **kwargs):
        super().__init__(**kwargs)
        if self.state is None:
            self.state = MessageState.UNSENT.value
        if sender is not None:
            self.sender = sender

    def __repr__(self):
        return f"<Message {self.id} state={self.state} anchor={self.original_message_id}>"

    # ── Sender ──────────────────────────────────────────────────────

    @property
    def sender(self):
        cached = self.__dict__.get("_sender")
        if cached is not None:
            return cached
        return resolve(object_session(self), self.sender_type, self.sender_id)

    @sender.setter
    def sender(self, entity):
        self.sender_type, self.sender_id = address_of(entity) or (None, None)
        self.__dict__["_sender"] = entity

    # ── Lifecycle ───────────────────────────────────────────────────

    @property
    def message_state(self) -> MessageState:
        return MessageState(self.state)

    @property
    def is_sent(self) -> bool:
        return self.message_state is MessageState.SENT

    def queue(self) -> None:
        """Mark the message as queued for delivery."""
        if not self.message_state.can_queue():
            raise MessageStateError("queue", self.state)
        if not self.recipients:
            raise MessageStateError("queue", self.state, "no recipients")
        self.state = MessageState.QUEUED.value

    def deliver(self) -> None:
        """Mark the message as sent. Recipients can view it from now on."""
        if not self.message_state.can_deliver():
            raise MessageStateError("deliver", self.state)
        if not self.recipients:
            raise MessageStateError("deliver", self.state, "no recipients")
        self.state = MessageState.SENT.value

    @property
    def visibility(self) -> Visibility:
        return Visibility(self.hidden_at)

    def hide(self) -> bool:
        """Hide the message from the sender's own mailbox."""
        new = self.visibility.hide(utcnow())
        changed = new != self.visibility
        self.hidden_at = new.hidden_at
        return changed

    def unhide(self) -> bool:
        changed = self.visibility.is_hidden
        self.hidden_at = None
        return changed

    # ── Addressing ──────────────────────────────────────────────────

    def recipients_of(self, kind: str) -> list["MessageRecipient"]:
        return sorted(
            (r for r in self.recipients if r.kind == kind),
            key=lambda r: r.position or 0,
        )

    def receivers_of(self, kind: str) -> list:
        return [r.receiver for r in self.recipients_of(kind)]

    @property
    def to(self) -> list:
        return self.receivers_of("to")

    @property
    def cc(self) -> list:
        return self.receivers_of("cc")

    @property
    def bcc(self) -> list:
        return self.receivers_of("bcc")

    def add_recipient(self, receiver, kind: str = "to") -> "MessageRecipient":
        """Address the message to one more receiver.

        The new row takes the next position for its kind. Callers writing
        to an already persisted message must hold the message row lock
        (see services/recipient_service.add_recipient).
        """
        if kind not in RECIPIENT_KINDS:
            raise ValueError(f"Unknown recipient kind: {kind!r}")
        last = max((r.position or 0 for r in self.recipients if r.kind == kind), default=0)
        recipient = MessageRecipient(kind=kind, receiver=receiver)
        recipient.position = last + 1
        self.recipients.append(recipient)
        return recipient

    def remove_recipient(self, recipient: "MessageRecipient") -> None:
        """Drop one recipient and close the gap in its kind's positions."""
        self.recipients.remove(recipient)
        for position, sibling in enumerate(self.recipients_of(recipient.kind), start=1):
            sibling.position = position

    def set_receivers(self, kind: str, receivers) -> list:
        """Make ``receivers`` the exact receiver list for ``kind``.

        Receivers already on the message keep their row (and state);
        missing ones are added, dropped ones are removed. Duplicates in
        ``receivers`` are ignored.
        """
        wanted = []
        seen = set()
        for receiver in receivers:
            if isinstance(receiver, MessageRecipient):
                receiver = receiver.receiver
            addr = address_of(receiver)
            if addr is None or addr in seen:
                continue
            seen.add(addr)
            wanted.append(receiver)

        current = {r.receiver_address: r for r in self.recipients_of(kind)}
        for addr, recipient in current.items():
            if addr not in seen:
                self.remove_recipient(recipient)
        for receiver in wanted:
            if address_of(receiver) not in current:
                self.add_recipient(receiver, kind)
        return self.receivers_of(kind)


class MessageRecipient(Base):
    """One receiver's view of a message (to, cc or bcc)."""

    __tablename__ = "message_recipients"
    id = Column(Integer, primary_key=True)
    message_id = Column(
        Integer, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False
    )
    receiver_type = Column(String(50), nullable=False)
    receiver_id = Column(Integer, nullable=False)
    kind = Column(String(3), nullable=False)  # to | cc | bcc
    position = Column(Integer)
    state = Column(String(20), nullable=False, default=ReadState.UNREAD.value)
    hidden_at = Column(UTCDateTime)
    label = Column(String(20))  # NULL | archived | spam

    message = relationship("Message", back_populates="recipients")

    __table_args__ = (
        Index("ix_message_recipients_position", "message_id", "kind", "position"),
        Index("ix_message_recipients_receiver", "receiver_type", "receiver_id", "message_id"),
    )

    def __init__(self, receiver=None, **kwargs):
        super().__init__(**kwargs)
        if self.state is None:
            self.state = ReadState.UNREAD.value
        if receiver is not None:
            self.receiver = receiver

    def __repr__(self):
        return (
            f"<MessageRecipient {self.id} msg={self.message_id} {self.kind}#{self.position} "
            f"{self.state} label={self.label} hidden={self.hidden_at is not None}>"
        )

    # ── Receiver ────────────────────────────────────────────────────

    @property
    def receiver(self):
        cached = self.__dict__.get("_receiver")
        if cached is not None:
            return cached
        return resolve(object_session(self), self.receiver_type, self.receiver_id)

    @receiver.setter
    def receiver(self, entity):
        self.receiver_type, self.receiver_id = address_of(entity) or (None, None)
        self.__dict__["_receiver"] = entity

    @property
    def receiver_address(self) -> tuple[str, int]:
        return (self.receiver_type, self.receiver_id)

    # ── Message delegates ───────────────────────────────────────────

    @property
    def subject(self):
        return self.message.subject

    @property
    def body(self):
        return self.message.body

    @property
    def sender(self):
        return self.message.sender

    @property
    def to(self) -> list:
        return self.message.to

    @property
    def cc(self) -> list:
        return self.message.cc

    @property
    def bcc(self) -> list:
        return self.message.bcc

    @property
    def created_at(self):
        return self.message.created_at

    # ── State fields ────────────────────────────────────────────────

    @property
    def read_state(self) -> ReadState:
        return ReadState(self.state)

    @property
    def visibility(self) -> Visibility:
        return Visibility(self.hidden_at)

    @property
    def current_label(self) -> Label | None:
        return Label(self.label) if self.label else None

    # ── Guarded single-record transitions ───────────────────────────
    # Each returns True when the field changed. Re-applying a transition
    # that is already at its target value is a no-op.

    def view(self) -> bool:
        """Mark as read. Denied (no change) until the message is sent."""
        new = self.read_state.view(self.message.is_sent)
        if new is self.read_state:
            return False
        self.state = new.value
        return True

    def hide(self) -> bool:
        new = self.visibility.hide(utcnow())
        if new == self.visibility:
            return False
        self.hidden_at = new.hidden_at
        return True

    def unhide(self) -> bool:
        if not self.visibility.is_hidden:
            return False
        self.hidden_at = self.visibility.unhide().hidden_at
        return True

    def archive(self) -> bool:
        return self._relabel(Label.archive(self.current_label))

    def mark_spam(self) -> bool:
        return self._relabel(Label.spam(self.current_label))

    def _relabel(self, new: Label) -> bool:
        if new is self.current_label:
            return False
        self.label = new.value
        return True
