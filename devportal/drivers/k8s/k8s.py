"""Kubernetes gateway implementation using kubernetes-asyncio.

Custom resources go through CustomObjectsApi, Secrets through CoreV1Api.
Secrets come back as V1Secret models and are sanitized to plain dicts so
callers see the same JSON shape for every resource kind.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import structlog
from kubernetes_asyncio import client, config
from kubernetes_asyncio.client import ApiClient, ApiException

from devportal.drivers.base import ResourceGateway, ResourceType
from devportal.errors import UpstreamError

if TYPE_CHECKING:
    from devportal.config import KubernetesConfig

logger = structlog.get_logger()


def _reason(exc: ApiException) -> str:
    """Upstream message from the Status body, else the HTTP reason."""
    if exc.body:
        try:
            status = json.loads(exc.body)
        except (TypeError, ValueError):
            status = None
        if isinstance(status, dict) and status.get("message"):
            return status["message"]
    return exc.reason or str(exc.status)


class K8sGateway(ResourceGateway):
    """ResourceGateway backed by the Kubernetes API server."""

    def __init__(self, k8s_config: "KubernetesConfig") -> None:
        self._kubeconfig = k8s_config.kubeconfig
        self._context = k8s_config.context

        self._log = logger.bind(gateway="k8s")
        self._api_client: ApiClient | None = None
        self._config_loaded = False

    async def _ensure_config(self) -> None:
        """Load Kubernetes configuration once."""
        if self._config_loaded:
            return

        if self._kubeconfig:
            await config.load_kube_config(
                config_file=self._kubeconfig,
                context=self._context,
            )
            self._log.info("k8s.config.loaded", source="kubeconfig", path=self._kubeconfig)
        else:
            config.load_incluster_config()
            self._log.info("k8s.config.loaded", source="incluster")

        self._config_loaded = True

    async def _get_api_client(self) -> ApiClient:
        """Get or create the API client."""
        await self._ensure_config()
        if self._api_client is None:
            self._api_client = ApiClient()
        return self._api_client

    async def _custom_api(self) -> client.CustomObjectsApi:
        return client.CustomObjectsApi(await self._get_api_client())

    async def _core_api(self) -> client.CoreV1Api:
        return client.CoreV1Api(await self._get_api_client())

    async def close(self) -> None:
        """Close the API client."""
        if self._api_client is not None:
            await self._api_client.close()
            self._api_client = None

    # Custom resources

    async def list(
        self, rtype: ResourceType, namespace: str | None = None
    ) -> dict[str, Any]:
        api = await self._custom_api()
        self._log.debug("k8s.list", plural=rtype.plural, namespace=namespace)

        try:
            if namespace:
                return await api.list_namespaced_custom_object(
                    rtype.group, rtype.version, namespace, rtype.plural
                )
            return await api.list_cluster_custom_object(
                rtype.group, rtype.version, rtype.plural
            )
        except ApiException as e:
            raise UpstreamError(
                f"failed to list {rtype.plural}: {_reason(e)}",
                upstream_status=e.status,
            ) from e

    async def get(self, rtype: ResourceType, namespace: str, name: str) -> dict[str, Any]:
        api = await self._custom_api()
        self._log.debug("k8s.get", plural=rtype.plural, namespace=namespace, name=name)

        try:
            return await api.get_namespaced_custom_object(
                rtype.group, rtype.version, namespace, rtype.plural, name
            )
        except ApiException as e:
            raise UpstreamError(
                f"failed to get {rtype.plural}/{name}: {_reason(e)}",
                upstream_status=e.status,
            ) from e

    async def create(
        self, rtype: ResourceType, namespace: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        api = await self._custom_api()
        self._log.info(
            "k8s.create",
            plural=rtype.plural,
            namespace=namespace,
            name=body.get("metadata", {}).get("name"),
        )

        try:
            return await api.create_namespaced_custom_object(
                rtype.group, rtype.version, namespace, rtype.plural, body
            )
        except ApiException as e:
            raise UpstreamError(
                f"failed to create {rtype.plural}: {_reason(e)}",
                upstream_status=e.status,
            ) from e

    async def patch(
        self,
        rtype: ResourceType,
        namespace: str,
        name: str,
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        api = await self._custom_api()
        self._log.info("k8s.patch", plural=rtype.plural, namespace=namespace, name=name)

        try:
            # A dict body is sent as application/merge-patch+json
            return await api.patch_namespaced_custom_object(
                rtype.group, rtype.version, namespace, rtype.plural, name, patch
            )
        except ApiException as e:
            raise UpstreamError(
                f"failed to patch {rtype.plural}/{name}: {_reason(e)}",
                upstream_status=e.status,
            ) from e

    async def patch_status(
        self,
        rtype: ResourceType,
        namespace: str,
        name: str,
        status: dict[str, Any],
    ) -> dict[str, Any]:
        api = await self._custom_api()
        self._log.info(
            "k8s.patch_status",
            plural=rtype.plural,
            namespace=namespace,
            name=name,
            fields=sorted(status),
        )

        try:
            return await api.patch_namespaced_custom_object_status(
                rtype.group,
                rtype.version,
                namespace,
                rtype.plural,
                name,
                {"status": status},
            )
        except ApiException as e:
            raise UpstreamError(
                f"failed to patch {rtype.plural}/{name} status: {_reason(e)}",
                upstream_status=e.status,
            ) from e

    async def delete(self, rtype: ResourceType, namespace: str, name: str) -> None:
        api = await self._custom_api()
        self._log.info("k8s.delete", plural=rtype.plural, namespace=namespace, name=name)

        try:
            await api.delete_namespaced_custom_object(
                rtype.group, rtype.version, namespace, rtype.plural, name
            )
        except ApiException as e:
            raise UpstreamError(
                f"failed to delete {rtype.plural}/{name}: {_reason(e)}",
                upstream_status=e.status,
            ) from e

    # Secrets

    async def get_secret(self, namespace: str, name: str) -> dict[str, Any]:
        api_client = await self._get_api_client()
        v1 = client.CoreV1Api(api_client)

        try:
            secret = await v1.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            raise UpstreamError(
                f"failed to get secret: {_reason(e)}",
                upstream_status=e.status,
            ) from e
        return api_client.sanitize_for_serialization(secret)

    async def list_secrets(self, namespace: str) -> dict[str, Any]:
        api_client = await self._get_api_client()
        v1 = client.CoreV1Api(api_client)

        try:
            secrets = await v1.list_namespaced_secret(namespace=namespace)
        except ApiException as e:
            raise UpstreamError(
                f"failed to list secrets: {_reason(e)}",
                upstream_status=e.status,
            ) from e
        return {"items": api_client.sanitize_for_serialization(secrets.items or [])}

    async def create_secret(self, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        api_client = await self._get_api_client()
        v1 = client.CoreV1Api(api_client)
        self._log.info(
            "k8s.create_secret",
            namespace=namespace,
            name=body.get("metadata", {}).get("name"),
        )

        try:
            created = await v1.create_namespaced_secret(namespace=namespace, body=body)
        except ApiException as e:
            raise UpstreamError(
                f"failed to create secret: {_reason(e)}",
                upstream_status=e.status,
            ) from e
        return api_client.sanitize_for_serialization(created)

    async def delete_secret(self, namespace: str, name: str) -> None:
        v1 = await self._core_api()
        self._log.info("k8s.delete_secret", namespace=namespace, name=name)

        try:
            await v1.delete_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            raise UpstreamError(
                f"failed to delete secret: {_reason(e)}",
                upstream_status=e.status,
            ) from e
