"""Portal error types.

Every error maps to one HTTP status and renders as ``{"error": message}``.
"""

from __future__ import annotations

from typing import Any


class PortalError(Exception):
    """Base error for all portal exceptions."""

    code: str = "internal_error"
    message: str = "An internal error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.__class__.message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        """Render the uniform error body."""
        return {"error": self.message}


class ValidationError(PortalError):
    """Malformed input or an unresolvable referenced resource (400)."""

    code = "validation_error"
    message = "Validation error"
    status_code = 400


class ForbiddenError(PortalError):
    """Permission denied (403)."""

    code = "forbidden"
    message = "unauthorised"
    status_code = 403


class AuthenticationRequiredError(ForbiddenError):
    """No verifiable credentials on the request (403)."""

    code = "authentication_required"
    message = "authentication required"


class NotFoundError(PortalError):
    """Resource not found (404)."""

    code = "not_found"
    message = "Resource not found"
    status_code = 404


class UpstreamError(PortalError):
    """Kubernetes API or permission backend failure (500).

    The upstream message is passed through to the caller.
    """

    code = "upstream_error"
    message = "Upstream request failed"
    status_code = 500

    def __init__(
        self,
        message: str | None = None,
        *,
        upstream_status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.upstream_status = upstream_status

    @property
    def not_found(self) -> bool:
        return self.upstream_status == 404
