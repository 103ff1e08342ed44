"""Authorization resolver.

Ownership-scoped actions follow a two-tier cascade:

1. ``kuadrant.<resource>.<action>.all`` ALLOW -> allowed, no ownership
   lookup is performed.
2. ``kuadrant.<resource>.<action>.own`` DENY -> denied ("unauthorised").
3. Otherwise the owner is looked up fresh from the authoritative resource
   and compared to the caller's user entity ref.

The cascade is split in two so bulk paths can resolve the scope once per
batch and run only the ownership check per item.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable

import structlog

from devportal.drivers.base import APIPRODUCTS
from devportal.errors import ForbiddenError, PortalError, ValidationError
from devportal.models import APIProduct
from devportal.services.permissions import Decision, permission_name

if TYPE_CHECKING:
    from devportal.drivers.base import ResourceGateway
    from devportal.services.identity import Identity
    from devportal.services.permissions import PermissionService

logger = structlog.get_logger()

OwnerLookup = Callable[[], Awaitable[str | None]]


class Scope(str, Enum):
    ALL = "all"
    OWN = "own"


@dataclass(frozen=True)
class AuthorizationResult:
    """Outcome of an authorization decision.

    ``input_error`` marks a denial caused by an unresolvable referenced
    resource rather than by missing rights.
    """

    allowed: bool
    scope: Scope | None = None
    reason: str | None = None
    input_error: bool = False

    @classmethod
    def allow(cls, scope: Scope) -> "AuthorizationResult":
        return cls(allowed=True, scope=scope)

    @classmethod
    def deny(cls, reason: str, *, input_error: bool = False) -> "AuthorizationResult":
        return cls(allowed=False, reason=reason, input_error=input_error)

    def raise_for_denial(self) -> None:
        if self.allowed:
            return
        if self.input_error:
            raise ValidationError(self.reason)
        raise ForbiddenError(self.reason)


def known_owner(owner: str | None) -> OwnerLookup:
    """Owner lookup for a resource that has already been fetched."""

    async def lookup() -> str | None:
        return owner

    return lookup


def product_owner_lookup(
    gateway: "ResourceGateway",
    namespace: str,
    name: str | None,
    annotation: str,
) -> OwnerLookup:
    """Owner lookup that fetches the APIProduct fresh."""

    async def lookup() -> str | None:
        if not name:
            raise ValidationError("apiProductRef.name is required in APIKey spec")
        raw = await gateway.get(APIPRODUCTS, namespace, name)
        return APIProduct.model_validate(raw).owner(annotation)

    return lookup


class Authorizer:
    """Per-request authorization bound to one caller."""

    def __init__(self, identity: "Identity", permissions: "PermissionService") -> None:
        self._identity = identity
        self._permissions = permissions
        self._log = logger.bind(component="authorizer", user=identity.user_entity_ref)

    @property
    def identity(self) -> "Identity":
        return self._identity

    async def allows(self, permission: str, resource_ref: str | None = None) -> bool:
        decision = await self._permissions.authorize(self._identity, permission, resource_ref)
        return decision == Decision.ALLOW

    async def require(
        self,
        permission: str,
        resource_ref: str | None = None,
        *,
        message: str | None = None,
    ) -> None:
        """Raise ForbiddenError unless the permission is granted."""
        if not await self.allows(permission, resource_ref):
            self._log.info("authz.denied", permission=permission, resource_ref=resource_ref)
            raise ForbiddenError(message)

    async def resolve_scope(self, resource: str, action: str) -> Scope:
        """Resolve ALL or OWN for an ownership-scoped action.

        Raises:
            ForbiddenError: neither variant is granted
        """
        if await self.allows(permission_name(resource, action, Scope.ALL.value)):
            return Scope.ALL
        if await self.allows(permission_name(resource, action, Scope.OWN.value)):
            return Scope.OWN

        self._log.info("authz.denied", resource=resource, action=action)
        raise ForbiddenError()

    async def check_ownership(
        self,
        scope: Scope,
        owner_lookup: OwnerLookup,
        deny_message: str,
    ) -> AuthorizationResult:
        """Verify ownership for OWN scope. Never raises."""
        if scope is Scope.ALL:
            return AuthorizationResult.allow(scope)

        try:
            owner = await owner_lookup()
        except PortalError as e:
            return AuthorizationResult.deny(e.message, input_error=True)

        # No owner annotation means no "own" caller can match
        if owner is None or owner != self._identity.user_entity_ref:
            self._log.info("authz.not_owner", owner=owner)
            return AuthorizationResult.deny(deny_message)

        return AuthorizationResult.allow(scope)

    async def authorize(
        self,
        resource: str,
        action: str,
        owner_lookup: OwnerLookup,
        deny_message: str,
    ) -> AuthorizationResult:
        try:
            scope = await self.resolve_scope(resource, action)
        except ForbiddenError as e:
            return AuthorizationResult.deny(e.message)
        return await self.check_ownership(scope, owner_lookup, deny_message)
