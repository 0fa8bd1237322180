"""Error taxonomy for the gateway.

Every error that should reach the caller derives from ``GatewayError`` and
carries the HTTP status it maps to.  The route turns these into
``{"error": message}`` bodies; anything else becomes a generic 500.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for errors surfaced to the caller."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ClientError(GatewayError):
    """Missing or invalid request data.  Never retried."""

    status_code = 400


class AuthorizationError(GatewayError):
    """Admin secret mismatch."""

    status_code = 401


class UpstreamFailure(GatewayError):
    """The generation service failed or returned nothing usable."""

    status_code = 500


class PersistenceFailure(GatewayError):
    """A store read or write failed."""

    status_code = 500
