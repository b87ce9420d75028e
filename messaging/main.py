"""
Messaging API — per-recipient message state and threads.

Mounts the messages router, wires the domain exception handlers and the
session middleware. Schema is managed by Alembic, never at startup.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from . import __version__
from .config import settings
from .exceptions import (
    MessageNotFoundError,
    MessageStateError,
    RecipientNotFoundError,
    message_state_handler,
    not_found_handler,
)
from .logging_config import setup_logging
from .routers import messages
from .schemas.errors import ErrorResponse

setup_logging()

app = FastAPI(title="Messaging", version=__version__)
app.add_middleware(SessionMiddleware, secret_key=settings.secret_key)

app.add_exception_handler(RecipientNotFoundError, not_found_handler)
app.add_exception_handler(MessageNotFoundError, not_found_handler)
app.add_exception_handler(MessageStateError, message_state_handler)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail), status_code=exc.status_code).model_dump(),
    )


app.include_router(messages.router)


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}
