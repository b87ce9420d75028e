"""
services/composer.py — Forward / reply / reply-all drafts

Builds new, unsent Message objects from a receiver's view of a message.
These are pure object-graph builders: nothing is added to the session
and nothing is validated here. Persist with message_service.save_draft().

Business Rules:
- The new message's sender is always the acting receiver
- Subject and body are copied as-is
- forward: no recipients, no thread anchor (starts a new thread)
- reply: to = [original sender], anchored to the thread's first message
- reply_to_all: to = original to + original sender (deduplicated),
  cc/bcc = original cc/bcc minus the acting receiver
- Replies always anchor to the first message, so original_message never
  has an original_message of its own

Called by: routers/messages.py
Depends on: models, services/thread_resolver.py
"""

from ..models import Message, MessageRecipient
from ..models.addressable import address_of
from .thread_resolver import anchor_message


def _copy(recipient: MessageRecipient) -> Message:
    return Message(
        subject=recipient.subject,
        body=recipient.body,
        sender=recipient.receiver,
    )


def forward(recipient: MessageRecipient) -> Message:
    """New draft with the same subject and body, addressed to nobody yet."""
    return _copy(recipient)


def reply(recipient: MessageRecipient) -> Message:
    """New draft addressed to the original sender, in the same thread."""
    message = _copy(recipient)
    message.set_receivers("to", [recipient.sender])
    _anchor(message, recipient.message)
    return message


def reply_to_all(recipient: MessageRecipient) -> Message:
    """Reply to the sender and everyone on to/cc/bcc except yourself."""
    me = recipient.receiver_address
    message = _copy(recipient)
    message.set_receivers("to", recipient.to + [recipient.sender])
    message.set_receivers("cc", [r for r in recipient.cc if address_of(r) != me])
    message.set_receivers("bcc", [r for r in recipient.bcc if address_of(r) != me])
    _anchor(message, recipient.message)
    return message


def _anchor(draft: Message, replied_to: Message) -> None:
    anchor = anchor_message(replied_to)
    draft.original_message = anchor
    draft.original_message_id = anchor.id
