# Overview: Domain error taxonomy shared by services and routes.

"""
Every service raises a subclass of ShopError. Routes translate them with

    return jsonify({"error": str(e), **e.details}), e.status_code

Anything that is not a ShopError is a bug and becomes a logged 500.
"""

from __future__ import annotations


class ShopError(Exception):
    """Base class for errors that map to an HTTP response."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(ShopError):
    """400-level input problem. Never retried automatically."""
    status_code = 400


class InvalidStateError(ShopError):
    """Lifecycle transition not allowed from the entity's current state."""
    status_code = 400


class NotFoundError(ShopError):
    """Unknown id."""
    status_code = 404


class ConflictError(ShopError):
    """409-level conflict (item unavailable, duplicate serial). Refresh before retrying."""
    status_code = 409
    retryable = False


class TransientStoreConflict(ConflictError):
    """Concurrent transactions kept colliding after the bounded retries ran out."""
    retryable = True


class ExternalServiceError(ShopError):
    """Payment processor unreachable or rejected the request."""
    status_code = 502
