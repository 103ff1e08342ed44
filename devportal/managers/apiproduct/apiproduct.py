"""APIProductManager - APIProduct listing, CRUD and cascading delete."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

import structlog

from devportal.drivers.base import APIKEYS, APIPRODUCTS
from devportal.errors import PortalError, ValidationError
from devportal.models import APIKey, APIProduct, APIProductPatch, PublishStatus
from devportal.services.authorization import known_owner, product_owner_lookup
from devportal.services.permissions import permission_name

if TYPE_CHECKING:
    from devportal.config import KubernetesConfig
    from devportal.drivers.base import ResourceGateway
    from devportal.services.authorization import Authorizer
    from devportal.services.catalog import CatalogRefresher

logger = structlog.get_logger()

RETIRED = "retired"


class APIProductManager:
    """Manages APIProducts on behalf of one authorized caller."""

    def __init__(
        self,
        gateway: "ResourceGateway",
        authorizer: "Authorizer",
        catalog: "CatalogRefresher",
        k8s_config: "KubernetesConfig",
    ) -> None:
        self._gateway = gateway
        self._authz = authorizer
        self._catalog = catalog
        self._owner_annotation = k8s_config.owner_annotation
        self._lifecycle_label = k8s_config.lifecycle_label
        self._log = logger.bind(manager="apiproduct")

    @property
    def _user(self) -> str:
        return self._authz.identity.user_entity_ref

    def _owner_of(self, item: dict[str, Any]) -> str | None:
        return (item.get("metadata", {}).get("annotations") or {}).get(self._owner_annotation)

    async def list(self) -> dict[str, Any]:
        """List APIProducts visible to the caller.

        read.all sees everything, read.own only products it owns. Callers
        that can neither create nor update products see Published only.
        """
        await self._authz.require(permission_name("apiproduct", "list"))

        data = await self._gateway.list(APIPRODUCTS)
        items = data.get("items") or []

        if not await self._authz.allows(permission_name("apiproduct", "read", "all")):
            await self._authz.require(permission_name("apiproduct", "read", "own"))
            items = [item for item in items if self._owner_of(item) == self._user]

        if not await self._can_see_drafts():
            items = [
                item
                for item in items
                if item.get("spec", {}).get("publishStatus") == PublishStatus.PUBLISHED.value
            ]

        return {**data, "items": items}

    async def _can_see_drafts(self) -> bool:
        for permission in (
            permission_name("apiproduct", "create"),
            permission_name("apiproduct", "update", "own"),
            permission_name("apiproduct", "update", "all"),
        ):
            if await self._authz.allows(permission):
                return True
        return False

    async def get(self, namespace: str, name: str) -> dict[str, Any]:
        scope = await self._authz.resolve_scope("apiproduct", "read")
        data = await self._gateway.get(APIPRODUCTS, namespace, name)

        result = await self._authz.check_ownership(
            scope,
            known_owner(self._owner_of(data)),
            "you can only read your own api products",
        )
        result.raise_for_denial()
        return data

    async def create(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create an APIProduct owned by the caller.

        The namespace is taken from spec.targetRef and the owner annotation
        is always stamped from the caller identity.
        """
        await self._authz.require(permission_name("apiproduct", "create"))

        product = copy.deepcopy(body)
        metadata = product.get("metadata")
        if not isinstance(metadata, dict) or not metadata.get("name"):
            raise ValidationError("metadata.name is required")

        target_ref = (product.get("spec") or {}).get("targetRef") or {}
        if not (target_ref.get("name") and target_ref.get("kind") and target_ref.get("namespace")):
            raise ValidationError("targetRef with name, kind, and namespace is required")

        # APIProduct lives in the same namespace as its HTTPRoute
        namespace = target_ref["namespace"]
        metadata["namespace"] = namespace
        annotations = metadata.get("annotations") or {}
        annotations[self._owner_annotation] = self._user
        metadata["annotations"] = annotations
        product.setdefault("apiVersion", APIPRODUCTS.api_version)
        product.setdefault("kind", "APIProduct")

        self._log.info(
            "apiproduct.create", namespace=namespace, name=metadata["name"], owner=self._user
        )
        created = await self._gateway.create(APIPRODUCTS, namespace, product)

        await self._catalog.refresh()
        return created

    async def patch(self, namespace: str, name: str, patch: APIProductPatch) -> dict[str, Any]:
        """Apply an allow-listed patch.

        Lifecycle rules:
        - publishStatus=Published is rejected while the product is retired
        - retiring a Published product first downgrades it to Draft
        """
        result = await self._authz.authorize(
            "apiproduct",
            "update",
            product_owner_lookup(self._gateway, namespace, name, self._owner_annotation),
            "you can only update your own api products",
        )
        result.raise_for_denial()

        body = patch.to_patch()
        metadata = body.get("metadata") or {}
        annotations = metadata.get("annotations")
        if annotations is not None and self._owner_annotation in annotations:
            self._log.info("apiproduct.patch.owner_stripped", namespace=namespace, name=name)
            del annotations[self._owner_annotation]

        publish_status = (body.get("spec") or {}).get("publishStatus")
        new_lifecycle = (metadata.get("labels") or {}).get(self._lifecycle_label)

        if publish_status == PublishStatus.PUBLISHED.value:
            lifecycle = new_lifecycle
            if lifecycle is None:
                current = await self._fetch(namespace, name)
                lifecycle = current.metadata.label(self._lifecycle_label)
            if lifecycle == RETIRED:
                raise ValidationError("cannot publish an api product with lifecycle 'retired'")

        if new_lifecycle == RETIRED and publish_status is None:
            current = await self._fetch(namespace, name)
            if current.is_published:
                self._log.info("apiproduct.patch.retire_unpublish", namespace=namespace, name=name)
                await self._gateway.patch(
                    APIPRODUCTS,
                    namespace,
                    name,
                    {"spec": {"publishStatus": PublishStatus.DRAFT.value}},
                )

        updated = await self._gateway.patch(APIPRODUCTS, namespace, name, body)

        await self._catalog.refresh()
        return updated

    async def _fetch(self, namespace: str, name: str) -> APIProduct:
        return APIProduct.model_validate(await self._gateway.get(APIPRODUCTS, namespace, name))

    async def delete(self, namespace: str, name: str) -> None:
        """Delete an APIProduct and, best effort, the APIKeys that reference it.

        APIKey deletion failures are logged and never block the product
        deletion. Secrets are garbage collected via owner references.
        """
        result = await self._authz.authorize(
            "apiproduct",
            "delete",
            product_owner_lookup(self._gateway, namespace, name, self._owner_annotation),
            "you can only delete your own api products",
        )
        result.raise_for_denial()

        await self._delete_keys(namespace, name)
        await self._gateway.delete(APIPRODUCTS, namespace, name)
        self._log.info("apiproduct.deleted", namespace=namespace, name=name)

        await self._catalog.refresh()

    async def _delete_keys(self, namespace: str, product_name: str) -> None:
        try:
            data = await self._gateway.list(APIKEYS, namespace)
        except PortalError as e:
            self._log.warning(
                "apiproduct.delete.cascade_list_failed", namespace=namespace, error=str(e)
            )
            data = {"items": []}

        keys = [APIKey.model_validate(item) for item in data.get("items") or []]
        related = [key for key in keys if key.api_product_name == product_name]
        self._log.info(
            "apiproduct.delete.cascade",
            namespace=namespace,
            name=product_name,
            apikeys=len(related),
        )

        failures = []
        for key in related:
            try:
                await self._gateway.delete(APIKEYS, namespace, key.metadata.name)
            except PortalError as e:
                failures.append({"name": key.metadata.name, "error": str(e)})

        if failures:
            self._log.warning(
                "apiproduct.delete.cascade_failures",
                namespace=namespace,
                name=product_name,
                failed=len(failures),
                failures=failures,
            )
