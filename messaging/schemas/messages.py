"""
schemas/messages.py — Pydantic models for message and inbox endpoints

Business Rules:
- Senders and receivers travel as AddressRef {type, id}; type defaults
  to "User"
- RecipientOut is one receiver's view: message fields plus that row's
  own read-state, label and visibility
- thread_id is the thread anchor, COALESCE(original_message_id, id)

Called by: routers/messages.py
Depends on: pydantic
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class AddressRef(BaseModel):
    type: str = "User"
    id: int


class ComposeRequest(BaseModel):
    subject: str = Field(default="", max_length=255)
    body: str = ""
    to: list[AddressRef] = Field(default_factory=list)
    cc: list[AddressRef] = Field(default_factory=list)
    bcc: list[AddressRef] = Field(default_factory=list)
    deliver: bool = False


class AddRecipientRequest(BaseModel):
    receiver: AddressRef
    kind: str = Field(default="to", pattern="^(to|cc|bcc)$")


class MessageOut(BaseModel):
    id: int
    subject: str | None = None
    body: str | None = None
    state: str
    sender: AddressRef | None = None
    original_message_id: int | None = None
    to: list[AddressRef] = Field(default_factory=list)
    cc: list[AddressRef] = Field(default_factory=list)
    bcc: list[AddressRef] = Field(default_factory=list)
    created_at: datetime | None = None


class MessageListResponse(BaseModel):
    messages: list[MessageOut] = Field(default_factory=list)
    total: int = 0


class RecipientOut(BaseModel):
    id: int
    message_id: int
    thread_id: int
    kind: str
    position: int | None = None
    state: str
    label: str | None = None
    hidden: bool = False
    subject: str | None = None
    body: str | None = None
    sender: AddressRef | None = None
    created_at: datetime | None = None


class RecipientListResponse(BaseModel):
    recipients: list[RecipientOut] = Field(default_factory=list)
    total: int = 0


class InboxView(str, Enum):
    ALL = "all"
    UNREAD = "unread"
    SENT = "sent"
    ARCHIVED = "archived"


class RecipientEvent(str, Enum):
    VIEW = "view"
    HIDE = "hide"
    UNHIDE = "unhide"
    ARCHIVE = "archive"
    SPAM = "spam"


class TransitionResponse(BaseModel):
    ok: bool = True
    changed: bool = False
    recipient: RecipientOut


class ThreadActionResponse(BaseModel):
    ok: bool = True
    action: str
    updated: int = 0
