"""Database models — re-exports all models.

Import from here:  from messaging.models import Message, MessageRecipient, ...
Or from submodules: from messaging.models.messages import Message
"""

from .base import Base  # noqa: F401

# Senders & receivers
from .addressable import Addressable  # noqa: F401
from .auth import User  # noqa: F401

# Messages & per-recipient state
from .messages import Message, MessageRecipient  # noqa: F401
from .states import (  # noqa: F401
    RECIPIENT_KINDS,
    Label,
    MessageState,
    ReadState,
    Visibility,
)
