"""APIProduct catalog provider.

Lists APIProducts, keeps the Published ones that carry an owner
annotation and submits them as catalog API entities in one full
replacement mutation.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx
import structlog
from pydantic import ValidationError as ModelValidationError

from devportal.drivers.base import APIPRODUCTS
from devportal.errors import PortalError
from devportal.models import APIProduct
from devportal.services.catalog.refresher import CatalogRefresher

if TYPE_CHECKING:
    from devportal.config import CatalogConfig, KubernetesConfig
    from devportal.drivers.base import ResourceGateway

logger = structlog.get_logger()

DEFAULT_LIFECYCLE = "production"


class APIProductCatalogProvider(CatalogRefresher):
    def __init__(
        self,
        gateway: "ResourceGateway",
        client: httpx.AsyncClient,
        config: "CatalogConfig",
        k8s_config: "KubernetesConfig",
    ) -> None:
        if not config.url:
            raise ValueError("catalog.url is required when catalog sync is enabled")
        self._gateway = gateway
        self._client = client
        self._url = config.url
        self._token = config.token
        self._owner_annotation = k8s_config.owner_annotation
        self._lifecycle_label = k8s_config.lifecycle_label
        self._log = logger.bind(component="catalog_provider")

        # Request-triggered and scheduled refreshes must not interleave
        self._lock = asyncio.Lock()

    def to_entity(self, product: APIProduct) -> dict[str, Any] | None:
        """Convert an APIProduct to a catalog API entity, or None if unowned."""
        meta = product.metadata
        namespace = meta.namespace or "default"
        owner = product.owner(self._owner_annotation)
        if not owner:
            self._log.warning(
                "catalog.entity.skipped",
                namespace=namespace,
                name=meta.name,
                reason="no_owner",
            )
            return None

        display_name = product.spec.display_name or meta.name
        description = product.spec.description or f"api product: {display_name}"
        location = f"kuadrant:{namespace}/{meta.name}"

        return {
            "apiVersion": "backstage.io/v1alpha1",
            "kind": "API",
            "metadata": {
                "name": meta.name,
                "namespace": "default",
                "title": display_name,
                "description": description,
                "annotations": {
                    "backstage.io/managed-by-location": location,
                    "backstage.io/managed-by-origin-location": location,
                    "kuadrant.io/namespace": namespace,
                    "kuadrant.io/apiproduct": meta.name,
                },
                "tags": [*product.spec.tags, "kuadrant", "apiproduct"],
            },
            "spec": {
                "type": "openapi",
                "lifecycle": meta.label(self._lifecycle_label) or DEFAULT_LIFECYCLE,
                "owner": owner,
                "system": namespace,
            },
        }

    async def refresh(self) -> None:
        async with self._lock:
            try:
                await self._sync()
            except (PortalError, httpx.HTTPError) as e:
                self._log.error("catalog.refresh.failed", error=str(e))
            except Exception as e:
                self._log.exception("catalog.refresh.failed", error=str(e))

    async def _sync(self) -> None:
        data = await self._gateway.list(APIPRODUCTS)
        products = []
        for item in data.get("items") or []:
            try:
                products.append(APIProduct.model_validate(item))
            except ModelValidationError as e:
                metadata = item.get("metadata") or {}
                self._log.warning(
                    "catalog.entity.invalid",
                    namespace=metadata.get("namespace"),
                    name=metadata.get("name"),
                    error=str(e),
                )
        published = [p for p in products if p.is_published]

        entities = []
        for product in published:
            entity = self.to_entity(product)
            if entity is not None:
                entities.append(entity)

        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        response = await self._client.post(
            self._url,
            json={"entities": entities},
            headers=headers,
        )
        response.raise_for_status()

        self._log.info(
            "catalog.refresh.complete",
            total=len(products),
            drafts_excluded=len(products) - len(published),
            synced=len(entities),
        )
