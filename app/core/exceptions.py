"""HTTP-facing application errors.

Raised from route handlers and converted to JSON by the handler
registered in ``app.main``. The body always carries an ``error`` key.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    status_code: int = 500
    default_message: str = "Internal proxy error"

    def __init__(self, message: str | None = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_content(self) -> dict:
        return {"error": self.message, **self.extra}


class BadRequestError(AppError):
    status_code = 400
    default_message = "Bad request"


class PayloadTooLargeError(AppError):
    status_code = 413
    default_message = "Request body too large"


class UpstreamError(AppError):
    """The Gemini dispatch ended in a failure Outcome."""

    status_code = 500
    default_message = "Gemini API error"
