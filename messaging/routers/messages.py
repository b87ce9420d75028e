"""
routers/messages.py — Compose, mailbox and thread action endpoints

Thin HTTP layer over services/. The logged-in user is the sender for
/api/messages and the receiver for /api/inbox.

Business Rules:
- All endpoints require a logged-in user (require_user)
- Foreign or unknown ids are 404 (RecipientNotFoundError /
  MessageNotFoundError handlers in main.py)
- Illegal lifecycle transitions are 409 (MessageStateError)
- Single-record actions report whether anything changed; a denied view
  on an unsent message is {"changed": false}, not an error
- Thread actions return how many recipient rows were updated
- Forward / reply / reply-all save a new unsent draft

Called by: main.py (router mount)
Depends on: services/*, schemas/messages.py, dependencies.py
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..dependencies import require_user
from ..models import Message, MessageRecipient, User
from ..models.addressable import resolve
from ..schemas.messages import (
    AddRecipientRequest,
    AddressRef,
    ComposeRequest,
    InboxView,
    MessageListResponse,
    MessageOut,
    RecipientEvent,
    RecipientListResponse,
    RecipientOut,
    ThreadActionResponse,
    TransitionResponse,
)
from ..services import (
    composer,
    inbox_service,
    message_service,
    recipient_service,
    thread_propagator,
)
from ..services.thread_propagator import ThreadAction
from ..services.thread_resolver import anchor_of

router = APIRouter(tags=["messages"])


# ── Serialization ────────────────────────────────────────────────────


def _ref(type_: str | None, id_: int | None) -> AddressRef | None:
    if type_ is None or id_ is None:
        return None
    return AddressRef(type=type_, id=id_)


def _message_out(message: Message) -> MessageOut:
    def refs(kind):
        return [_ref(r.receiver_type, r.receiver_id) for r in message.recipients_of(kind)]

    return MessageOut(
        id=message.id,
        subject=message.subject,
        body=message.body,
        state=message.state,
        sender=_ref(message.sender_type, message.sender_id),
        original_message_id=message.original_message_id,
        to=refs("to"),
        cc=refs("cc"),
        bcc=refs("bcc"),
        created_at=message.created_at,
    )


def _recipient_out(recipient: MessageRecipient) -> RecipientOut:
    message = recipient.message
    return RecipientOut(
        id=recipient.id,
        message_id=recipient.message_id,
        thread_id=anchor_of(message),
        kind=recipient.kind,
        position=recipient.position,
        state=recipient.state,
        label=recipient.label,
        hidden=recipient.hidden_at is not None,
        subject=message.subject,
        body=message.body,
        sender=_ref(message.sender_type, message.sender_id),
        created_at=message.created_at,
    )


def _resolve_refs(db: Session, refs: list[AddressRef]) -> list:
    entities = []
    for ref in refs:
        entity = resolve(db, ref.type, ref.id)
        if entity is None:
            raise HTTPException(404, f"Receiver {ref.type}:{ref.id} not found")
        entities.append(entity)
    return entities


def _page(q, limit: int, offset: int):
    return q.limit(limit).offset(offset).all(), q.count()


# ── Sender: drafts and sent items ────────────────────────────────────


@router.get("/api/messages/unsent", response_model=MessageListResponse)
async def list_unsent(
    limit: int = Query(settings.inbox_page_size, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rows, total = _page(inbox_service.unsent_messages(db, user), limit, offset)
    return MessageListResponse(messages=[_message_out(m) for m in rows], total=total)


@router.get("/api/messages/sent", response_model=MessageListResponse)
async def list_sent(
    limit: int = Query(settings.inbox_page_size, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rows, total = _page(inbox_service.sent_messages(db, user), limit, offset)
    return MessageListResponse(messages=[_message_out(m) for m in rows], total=total)


@router.post("/api/messages", response_model=MessageOut)
async def compose_message(
    payload: ComposeRequest,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    message = message_service.compose(
        db,
        user,
        subject=payload.subject,
        body=payload.body,
        to=_resolve_refs(db, payload.to),
        cc=_resolve_refs(db, payload.cc),
        bcc=_resolve_refs(db, payload.bcc),
        deliver=payload.deliver,
    )
    return _message_out(message)


@router.get("/api/messages/{message_id}", response_model=MessageOut)
async def get_message(
    message_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return _message_out(message_service.get_message(db, user, message_id))


@router.post("/api/messages/{message_id}/recipients", response_model=MessageOut)
async def add_recipient(
    message_id: int,
    payload: AddRecipientRequest,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    message = message_service.get_message(db, user, message_id)
    (receiver,) = _resolve_refs(db, [payload.receiver])
    recipient_service.add_recipient(db, message.id, receiver, payload.kind)
    return _message_out(message)


@router.post("/api/messages/{message_id}/queue", response_model=MessageOut)
async def queue_message(
    message_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    message = message_service.get_message(db, user, message_id)
    return _message_out(message_service.queue(db, message))


@router.post("/api/messages/{message_id}/deliver", response_model=MessageOut)
async def deliver_message(
    message_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    message = message_service.get_message(db, user, message_id)
    return _message_out(message_service.deliver(db, message))


@router.delete("/api/messages/{message_id}")
async def hide_message(
    message_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Remove a message from the sender's own mailbox (soft hide)."""
    message = message_service.get_message(db, user, message_id)
    changed = message_service.hide(db, message)
    return {"ok": True, "changed": changed}


# ── Receiver: inbox listings ─────────────────────────────────────────

_INBOX_VIEWS = {
    InboxView.ALL: inbox_service.last_message_per_thread,
    InboxView.UNREAD: inbox_service.last_unread_message_per_thread,
    InboxView.SENT: inbox_service.last_sent_message_per_thread,
    InboxView.ARCHIVED: inbox_service.last_archived_message_per_thread,
}


@router.get("/api/inbox", response_model=RecipientListResponse)
async def list_inbox(
    view: InboxView = InboxView.ALL,
    limit: int = Query(settings.inbox_page_size, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Latest message of each thread for the selected view."""
    rows, total = _page(_INBOX_VIEWS[view](db, user), limit, offset)
    return RecipientListResponse(recipients=[_recipient_out(r) for r in rows], total=total)


@router.get("/api/inbox/{recipient_id}/thread", response_model=RecipientListResponse)
async def show_thread(
    recipient_id: int,
    label: str = "none",
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rows = inbox_service.show_thread(db, user, recipient_id, label)
    return RecipientListResponse(recipients=[_recipient_out(r) for r in rows], total=len(rows))


# ── Receiver: thread-wide actions ────────────────────────────────────


@router.post("/api/inbox/{recipient_id}/thread/{action}", response_model=ThreadActionResponse)
async def thread_action(
    recipient_id: int,
    action: ThreadAction,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipient = recipient_service.get_recipient(db, user, recipient_id)
    updated = thread_propagator.apply_to_thread(db, recipient, action)
    return ThreadActionResponse(action=action.value, updated=updated)


# ── Receiver: drafts from a received message ─────────────────────────

_DRAFT_BUILDERS = {
    "forward": composer.forward,
    "reply": composer.reply,
    "reply-all": composer.reply_to_all,
}


@router.post("/api/inbox/{recipient_id}/forward", response_model=MessageOut)
async def forward_message(
    recipient_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return _save_draft_from(db, user, recipient_id, "forward")


@router.post("/api/inbox/{recipient_id}/reply", response_model=MessageOut)
async def reply_message(
    recipient_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return _save_draft_from(db, user, recipient_id, "reply")


@router.post("/api/inbox/{recipient_id}/reply-all", response_model=MessageOut)
async def reply_all_message(
    recipient_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return _save_draft_from(db, user, recipient_id, "reply-all")


def _save_draft_from(db: Session, user: User, recipient_id: int, how: str) -> MessageOut:
    recipient = recipient_service.get_recipient(db, user, recipient_id)
    draft = _DRAFT_BUILDERS[how](recipient)
    message = message_service.save_draft(db, draft)
    logger.info("User {} built {} draft {} from recipient {}", user.id, how, message.id, recipient_id)
    return _message_out(message)


# ── Receiver: single-record actions ──────────────────────────────────
# Declared last: {event} would otherwise shadow the routes above.

_RECIPIENT_EVENTS = {
    RecipientEvent.VIEW: recipient_service.view,
    RecipientEvent.HIDE: recipient_service.hide,
    RecipientEvent.UNHIDE: recipient_service.unhide,
    RecipientEvent.ARCHIVE: recipient_service.archive,
    RecipientEvent.SPAM: recipient_service.mark_spam,
}


@router.post("/api/inbox/{recipient_id}/{event}", response_model=TransitionResponse)
async def recipient_event(
    recipient_id: int,
    event: RecipientEvent,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipient = recipient_service.get_recipient(db, user, recipient_id)
    changed = _RECIPIENT_EVENTS[event](db, recipient)
    return TransitionResponse(changed=changed, recipient=_recipient_out(recipient))
