"""Resource gateway base class - infrastructure abstraction.

The gateway is responsible ONLY for talking to the Kubernetes API.
It does NOT handle:
- Authentication or authorization
- Retry/circuit-breaker
- Caching
- Response shaping

Every call is a single round trip. Failures raise UpstreamError carrying
the upstream message and HTTP status.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ResourceType:
    """Custom resource coordinates (group, version, plural)."""

    group: str
    version: str
    plural: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"


APIPRODUCTS = ResourceType("devportal.kuadrant.io", "v1alpha1", "apiproducts")
APIKEYS = ResourceType("devportal.kuadrant.io", "v1alpha1", "apikeys")
PLANPOLICIES = ResourceType("extensions.kuadrant.io", "v1alpha1", "planpolicies")
HTTPROUTES = ResourceType("gateway.networking.k8s.io", "v1", "httproutes")


class ResourceGateway(ABC):
    """Abstract gateway over a Kubernetes-compatible API.

    Resources and lists are plain JSON dicts as returned by the API server.
    """

    @abstractmethod
    async def list(
        self, rtype: ResourceType, namespace: str | None = None
    ) -> dict[str, Any]:
        """List custom resources, cluster-wide when namespace is None."""
        ...

    @abstractmethod
    async def get(self, rtype: ResourceType, namespace: str, name: str) -> dict[str, Any]:
        """Get a namespaced custom resource."""
        ...

    @abstractmethod
    async def create(
        self, rtype: ResourceType, namespace: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        """Create a namespaced custom resource."""
        ...

    @abstractmethod
    async def patch(
        self,
        rtype: ResourceType,
        namespace: str,
        name: str,
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        """Apply a JSON merge patch to a custom resource."""
        ...

    @abstractmethod
    async def patch_status(
        self,
        rtype: ResourceType,
        namespace: str,
        name: str,
        status: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge ``status`` into the status subresource."""
        ...

    @abstractmethod
    async def delete(self, rtype: ResourceType, namespace: str, name: str) -> None:
        """Delete a custom resource."""
        ...

    # Secrets

    @abstractmethod
    async def get_secret(self, namespace: str, name: str) -> dict[str, Any]:
        ...

    @abstractmethod
    async def list_secrets(self, namespace: str) -> dict[str, Any]:
        ...

    @abstractmethod
    async def create_secret(self, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        ...

    @abstractmethod
    async def delete_secret(self, namespace: str, name: str) -> None:
        ...

    async def close(self) -> None:
        """Release underlying connections."""
        return None
