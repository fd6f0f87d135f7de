"""
Error taxonomy shared by repositories, services and routes.

Every error carries the HTTP status it maps to; the application registers a
single handler that renders ``{"error": ..., "details": ...}``.
"""

from __future__ import annotations

from typing import Any, Optional


class PortfolioError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_dict(self) -> dict:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(PortfolioError):
    status_code = 400
    default_message = "Invalid request format"


class NotFound(PortfolioError):
    status_code = 404
    default_message = "Not found"


class Unauthenticated(PortfolioError):
    status_code = 401
    default_message = "Authentication required"


class InvalidToken(PortfolioError):
    status_code = 401
    default_message = "Invalid or expired token"


class InvalidCredentials(PortfolioError):
    status_code = 401
    default_message = "Invalid credentials"


class RateLimited(PortfolioError):
    status_code = 429
    default_message = "Too many login attempts. Please try again later."


class Conflict(PortfolioError):
    status_code = 409
    default_message = "Conflict"


class InternalError(PortfolioError):
    status_code = 500
    default_message = "Internal server error"


def wrap(context: str, exc: Exception) -> InternalError:
    """Wrap a store or filesystem failure with context for the response body."""
    return InternalError(context, details=f"{context}: {exc}")
