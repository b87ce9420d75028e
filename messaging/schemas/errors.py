"""
schemas/errors.py — Structured error response model

Shared by the domain exception handlers in exceptions.py and the
HTTPException handler in main.py.
"""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    status_code: int
    detail: list | None = None
