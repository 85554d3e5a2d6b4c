# Overview: Error taxonomy shared by services and routes.

"""
Domain errors.

Services raise these; routes render them into the response envelope using
``status_code``. The core never retries a domain error.
"""

from __future__ import annotations


class JimpitanError(Exception):
    """Base class for errors the HTTP boundary knows how to render."""
    status_code = 500

    def __init__(self, message: str, details: dict | list | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(JimpitanError):
    """400-level input problem."""
    status_code = 400


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


class NotFoundError(JimpitanError):
    """Referenced entity is absent or already soft-deleted."""
    status_code = 404


class ForbiddenError(JimpitanError):
    """Role or ownership rule violated."""
    status_code = 403


class AuthError(JimpitanError):
    """Authentication failure."""
    status_code = 401


class InvalidCredentialsError(AuthError):
    pass


class MissingTokenError(AuthError):
    pass


class InvalidTokenError(AuthError):
    pass


class TokenExpiredError(AuthError):
    pass


class StorageError(JimpitanError):
    """Backing store failure. Surfaced as 5xx."""
    status_code = 500


class AllFailedError(JimpitanError):
    """Every item of a non-empty bulk request failed."""
    status_code = 422
