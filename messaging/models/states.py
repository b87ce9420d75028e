"""
models/states.py — State value types for messages and recipients

A recipient row carries three orthogonal state fields (read-state,
visibility, label). Each is modeled as its own small value type with a
pure transition function, so one event only ever touches one field and a
row can be read AND hidden AND archived at the same time.

Business Rules:
- ReadState: unread → read only when the owning message has been sent.
  A denied view leaves the value unchanged (never raises).
- Visibility: hide/unhide are unconditional; hidden carries the time of
  the transition. Hiding an already hidden row keeps the first timestamp.
- Label: archive/spam from any value, including each other. There is no
  transition back to "no label".
- MessageState: unsent → queued → sent, owned by the message.

Called by: models/messages.py
Depends on: nothing
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ReadState(str, Enum):
    UNREAD = "unread"
    READ = "read"

    def view(self, message_sent: bool) -> "ReadState":
        """Mark as read, guarded by the message having been sent."""
        if self is ReadState.UNREAD and message_sent:
            return ReadState.READ
        return self


class Label(str, Enum):
    """Recipient label. A row with no label stores NULL (None)."""

    ARCHIVED = "archived"
    SPAM = "spam"

    @staticmethod
    def archive(current: "Label | None") -> "Label":
        return Label.ARCHIVED

    @staticmethod
    def spam(current: "Label | None") -> "Label":
        return Label.SPAM


@dataclass(frozen=True)
class Visibility:
    """visible (hidden_at is None) or hidden(at=hidden_at)."""

    hidden_at: datetime | None = None

    @property
    def is_hidden(self) -> bool:
        return self.hidden_at is not None

    def hide(self, now: datetime) -> "Visibility":
        if self.is_hidden:
            return self
        return Visibility(hidden_at=now)

    def unhide(self) -> "Visibility":
        return VISIBLE


VISIBLE = Visibility()


class MessageState(str, Enum):
    UNSENT = "unsent"
    QUEUED = "queued"
    SENT = "sent"

    def can_queue(self) -> bool:
        return self is MessageState.UNSENT

    def can_deliver(self) -> bool:
        return self in (MessageState.UNSENT, MessageState.QUEUED)


RECIPIENT_KINDS = ("to", "cc", "bcc")
