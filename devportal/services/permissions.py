"""Permission catalog and permission decision services.

Permissions are named ``kuadrant.<resource>.<action>`` with ``.own`` and
``.all`` variants for actions that are scoped by ownership. A
PermissionService answers ALLOW or DENY for one permission and an
optional resource reference (``<kind>:<namespace>/<name>``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING

import httpx
import structlog

from devportal.errors import UpstreamError

if TYPE_CHECKING:
    from devportal.config import PolicyConfig, RemotePermissionConfig
    from devportal.services.identity import Identity

logger = structlog.get_logger()


class Decision(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


@dataclass(frozen=True)
class Permission:
    """A permission as advertised to RBAC tooling."""

    name: str
    action: str
    title: str
    resource_type: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "name": self.name,
            "title": self.title,
            "attributes": {"action": self.action},
        }
        if self.resource_type:
            data["resourceType"] = self.resource_type
        return data


def permission_name(resource: str, action: str, scope: str | None = None) -> str:
    """Build ``kuadrant.<resource>.<action>[.<scope>]``."""
    name = f"kuadrant.{resource}.{action}"
    return f"{name}.{scope}" if scope else name


def _scoped(resource: str, action: str, title: str) -> list[Permission]:
    return [
        Permission(permission_name(resource, action, "own"), action, f"{title} (own)"),
        Permission(permission_name(resource, action, "all"), action, f"{title} (all)"),
    ]


PERMISSIONS: tuple[Permission, ...] = (
    Permission("kuadrant.planpolicy.create", "create", "Create PlanPolicy"),
    Permission("kuadrant.planpolicy.read", "read", "Read PlanPolicy"),
    Permission("kuadrant.planpolicy.update", "update", "Update PlanPolicy"),
    Permission("kuadrant.planpolicy.delete", "delete", "Delete PlanPolicy"),
    Permission("kuadrant.planpolicy.list", "read", "List PlanPolicy"),
    Permission("kuadrant.apiproduct.create", "create", "Create APIProduct"),
    *_scoped("apiproduct", "read", "Read APIProduct"),
    *_scoped("apiproduct", "update", "Update APIProduct"),
    *_scoped("apiproduct", "delete", "Delete APIProduct"),
    Permission("kuadrant.apiproduct.list", "read", "List APIProduct"),
    Permission(
        "kuadrant.apikey.create",
        "create",
        "Request API access",
        resource_type="apiproduct",
    ),
    *_scoped("apikey", "read", "Read APIKey"),
    *_scoped("apikey", "update", "Update APIKey"),
    *_scoped("apikey", "delete", "Delete APIKey"),
)


class PermissionService(ABC):
    """Answers ALLOW/DENY for a caller, a permission and a resource ref."""

    @abstractmethod
    async def authorize(
        self,
        identity: "Identity",
        permission: str,
        resource_ref: str | None = None,
    ) -> Decision:
        ...


class PolicyPermissionService(PermissionService):
    """In-process role policy from configuration.

    A caller holds a grant when any of its subjects (user ref or group
    refs) is bound to a role containing it. Grant permissions accept
    shell-style wildcards. A grant that lists resources only matches when
    a resource ref is supplied and matches one of them.
    """

    def __init__(self, config: "PolicyConfig") -> None:
        self._config = config
        self._log = logger.bind(service="policy_permissions")

    def _roles_for(self, identity: "Identity") -> set[str]:
        subjects = set(identity.subjects)
        return {b.role for b in self._config.bindings if b.subject in subjects}

    async def authorize(
        self,
        identity: "Identity",
        permission: str,
        resource_ref: str | None = None,
    ) -> Decision:
        for role in self._roles_for(identity):
            for grant in self._config.roles.get(role, []):
                if not fnmatchcase(permission, grant.permission):
                    continue
                if grant.resources is None:
                    return Decision.ALLOW
                if resource_ref is not None and any(
                    fnmatchcase(resource_ref, pattern) for pattern in grant.resources
                ):
                    return Decision.ALLOW

        self._log.debug(
            "permission.denied",
            user=identity.user_entity_ref,
            permission=permission,
            resource_ref=resource_ref,
        )
        return Decision.DENY


class RemotePermissionService(PermissionService):
    """Delegates decisions to an external permission endpoint.

    Failures are not retried and surface as UpstreamError.
    """

    def __init__(
        self,
        config: "RemotePermissionConfig",
        client: httpx.AsyncClient,
    ) -> None:
        if not config.url:
            raise ValueError("permissions.remote.url is required in remote mode")
        self._url = config.url
        self._timeout = config.timeout_seconds
        self._client = client
        self._log = logger.bind(service="remote_permissions")

    async def authorize(
        self,
        identity: "Identity",
        permission: str,
        resource_ref: str | None = None,
    ) -> Decision:
        payload = {
            "permission": permission,
            "resourceRef": resource_ref,
            "user": identity.user_entity_ref,
            "groups": list(identity.groups),
        }
        try:
            response = await self._client.post(self._url, json=payload, timeout=self._timeout)
            response.raise_for_status()
            result = response.json().get("result")
        except (httpx.HTTPError, ValueError) as e:
            self._log.error("permission.remote.failed", permission=permission, error=str(e))
            raise UpstreamError(f"permission check failed: {e}") from e

        return Decision.ALLOW if result == Decision.ALLOW.value else Decision.DENY
