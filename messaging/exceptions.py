"""Domain exceptions and their FastAPI handlers.

Services raise these; routers never catch them. main.py registers the
handlers so every failure surfaces as a single ErrorResponse body.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from .schemas.errors import ErrorResponse


class RecipientNotFoundError(Exception):
    """Raised when a recipient id does not resolve for the current receiver.

    Args:
        recipient_id: The id that was looked up.
    """

    def __init__(self, recipient_id: int):
        self.recipient_id = recipient_id
        super().__init__(f"Recipient {recipient_id} not found")


class MessageNotFoundError(Exception):
    """Raised when a message id does not resolve for the current sender."""

    def __init__(self, message_id: int):
        self.message_id = message_id
        super().__init__(f"Message {message_id} not found")


class MessageStateError(Exception):
    """Raised when a message lifecycle event is not allowed from its state.

    Args:
        event: The event that was attempted (queue, deliver).
        state: The message state at the time of the attempt.
        reason: Optional extra detail, e.g. "no recipients".
    """

    def __init__(self, event: str, state: str, reason: str = ""):
        self.event = event
        self.state = state
        self.reason = reason
        detail = f"Cannot {event} a message in state '{state}'"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail)


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=str(exc), status_code=status_code).model_dump(),
    )


async def not_found_handler(request: Request, exc: Exception):
    """Map RecipientNotFoundError / MessageNotFoundError to 404."""
    return _error(status.HTTP_404_NOT_FOUND, exc)


async def message_state_handler(request: Request, exc: MessageStateError):
    """Map MessageStateError to 409 Conflict."""
    return _error(status.HTTP_409_CONFLICT, exc)
