"""Portal services layer."""

from devportal.services.authorization import AuthorizationResult, Authorizer, Scope
from devportal.services.identity import Identity, IdentityResolver
from devportal.services.permissions import (
    Decision,
    PermissionService,
    PolicyPermissionService,
    RemotePermissionService,
)

__all__ = [
    "AuthorizationResult",
    "Authorizer",
    "Decision",
    "Identity",
    "IdentityResolver",
    "PermissionService",
    "PolicyPermissionService",
    "RemotePermissionService",
    "Scope",
]
