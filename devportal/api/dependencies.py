"""FastAPI dependencies for the portal API.

Provides dependency injection for:
- Resource gateway
- Identity resolution (authentication)
- Permission decisions and the per-request Authorizer
- Catalog refresher
- Managers
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from devportal.config import get_settings
from devportal.drivers.base import ResourceGateway
from devportal.drivers.k8s import K8sGateway
from devportal.managers import (
    APIKeyManager,
    APIProductManager,
    PlanPolicyManager,
    SecretDisclosureManager,
)
from devportal.services.authorization import Authorizer
from devportal.services.catalog import CatalogRefresher, NoopCatalogRefresher
from devportal.services.http import get_http_client
from devportal.services.identity import Identity, IdentityResolver
from devportal.services.permissions import (
    PermissionService,
    PolicyPermissionService,
    RemotePermissionService,
)


@lru_cache
def get_gateway() -> ResourceGateway:
    """Get cached gateway instance.

    Uses lru_cache to share one Kubernetes API client across requests.
    """
    return K8sGateway(get_settings().kubernetes)


@lru_cache
def get_identity_resolver() -> IdentityResolver:
    return IdentityResolver(get_settings().security)


@lru_cache
def _policy_permission_service() -> PolicyPermissionService:
    return PolicyPermissionService(get_settings().permissions.policy)


def get_permission_service() -> PermissionService:
    """Get the configured permission decision service."""
    permissions = get_settings().permissions
    if permissions.mode == "remote":
        # Bound to the shared client of the running app
        return RemotePermissionService(permissions.remote, get_http_client())
    return _policy_permission_service()


def get_catalog_refresher(request: Request) -> CatalogRefresher:
    """Get the refresher installed on app.state by the lifespan."""
    refresher = getattr(request.app.state, "catalog_refresher", None)
    return refresher or NoopCatalogRefresher()


def authenticate(
    request: Request,
    resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)],
) -> Identity:
    """Authenticate request and return the caller identity.

    Raises:
        AuthenticationRequiredError: no verifiable credentials
    """
    return resolver.resolve(request)


# Type aliases for cleaner dependency injection
GatewayDep = Annotated[ResourceGateway, Depends(get_gateway)]
PermissionServiceDep = Annotated[PermissionService, Depends(get_permission_service)]
CatalogRefresherDep = Annotated[CatalogRefresher, Depends(get_catalog_refresher)]
AuthDep = Annotated[Identity, Depends(authenticate)]


def get_authorizer(identity: AuthDep, permissions: PermissionServiceDep) -> Authorizer:
    return Authorizer(identity, permissions)


AuthorizerDep = Annotated[Authorizer, Depends(get_authorizer)]


async def get_apiproduct_manager(
    gateway: GatewayDep,
    authorizer: AuthorizerDep,
    catalog: CatalogRefresherDep,
) -> APIProductManager:
    """Get APIProductManager with injected dependencies."""
    return APIProductManager(gateway, authorizer, catalog, get_settings().kubernetes)


async def get_apikey_manager(
    gateway: GatewayDep,
    authorizer: AuthorizerDep,
) -> APIKeyManager:
    """Get APIKeyManager with injected dependencies."""
    return APIKeyManager(gateway, authorizer, get_settings().kubernetes)


async def get_secret_manager(
    gateway: GatewayDep,
    authorizer: AuthorizerDep,
) -> SecretDisclosureManager:
    return SecretDisclosureManager(gateway, authorizer, get_settings().kubernetes)


async def get_planpolicy_manager(
    gateway: GatewayDep,
    authorizer: AuthorizerDep,
) -> PlanPolicyManager:
    return PlanPolicyManager(gateway, authorizer)


APIProductManagerDep = Annotated[APIProductManager, Depends(get_apiproduct_manager)]
APIKeyManagerDep = Annotated[APIKeyManager, Depends(get_apikey_manager)]
SecretManagerDep = Annotated[SecretDisclosureManager, Depends(get_secret_manager)]
PlanPolicyManagerDep = Annotated[PlanPolicyManager, Depends(get_planpolicy_manager)]
