"""Identity resolution.

Turns inbound request credentials into a portal Identity. Resolution
fails closed: a request without verifiable credentials never reaches a
permission check.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from devportal.errors import AuthenticationRequiredError

if TYPE_CHECKING:
    from fastapi import Request

    from devportal.config import SecurityConfig

logger = structlog.get_logger()


@dataclass(frozen=True)
class Identity:
    """Resolved caller: user entity ref plus group entity refs."""

    user_entity_ref: str
    groups: tuple[str, ...] = field(default_factory=tuple)

    @property
    def user_name(self) -> str:
        """Last path segment of the entity ref (user:default/alice -> alice)."""
        return self.user_entity_ref.rsplit("/", 1)[-1]

    @property
    def subjects(self) -> tuple[str, ...]:
        return (self.user_entity_ref, *self.groups)


class IdentityResolver:
    """Resolve an Identity from a request.

    Resolution order:
    1. Bearer token matched against configured static tokens
    2. Identity headers, only when trust_identity_headers is enabled
    3. Otherwise authentication is required
    """

    def __init__(self, config: "SecurityConfig") -> None:
        self._config = config

    def resolve(self, request: "Request") -> Identity:
        auth_header = request.headers.get("Authorization")

        # 1. Bearer token provided
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header[7:]
            for credential in self._config.tokens:
                if hmac.compare_digest(token.encode(), credential.token.encode()):
                    logger.debug("auth.success", source="token", user=credential.user)
                    return Identity(credential.user, tuple(credential.groups))
            raise AuthenticationRequiredError("invalid credentials")

        # 2. Proxy-supplied identity headers
        if self._config.trust_identity_headers:
            user = request.headers.get(self._config.user_header)
            if user:
                raw_groups = request.headers.get(self._config.groups_header, "")
                groups = tuple(g.strip() for g in raw_groups.split(",") if g.strip())
                logger.debug("auth.success", source="headers", user=user)
                return Identity(user.strip(), groups)

        # 3. Nothing verifiable
        raise AuthenticationRequiredError()
