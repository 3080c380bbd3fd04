"""
Structured outcome returned when an operation fails.
Callers branch on error.kind, not on the message text.
"""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    kind: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail
