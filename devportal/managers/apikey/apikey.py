"""APIKeyManager - access requests, reviews and bulk reviews.

Review decisions (approve/reject) are authorized against the owner of the
APIProduct a key references. Reading, editing and deleting a key are
authorized against the key's requester.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog

from devportal.drivers.base import APIKEYS, APIPRODUCTS
from devportal.errors import ForbiddenError, ValidationError
from devportal.models import AccessRequest, APIKey, APIKeyPatch, KeyPhase
from devportal.services.authorization import Scope, known_owner, product_owner_lookup
from devportal.services.permissions import permission_name

if TYPE_CHECKING:
    from devportal.config import KubernetesConfig
    from devportal.drivers.base import ResourceGateway
    from devportal.models import ResourceRef
    from devportal.services.authorization import Authorizer

logger = structlog.get_logger()

_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9-]")

_REVIEW_VERBS = {
    KeyPhase.APPROVED: "approve",
    KeyPhase.REJECTED: "reject",
}


def request_name(user_name: str, product_name: str) -> str:
    """Kubernetes-safe APIKey name: ``<user>-<product>-<8 hex chars>``."""
    raw = f"{user_name}-{product_name}-{secrets.token_hex(4)}"
    return _UNSAFE_NAME_CHARS.sub("-", raw.lower())


def _product_ref_name(item: dict[str, Any]) -> str | None:
    return ((item.get("spec") or {}).get("apiProductRef") or {}).get("name")


def _phase(item: dict[str, Any]) -> str:
    return (item.get("status") or {}).get("phase") or KeyPhase.PENDING.value


@dataclass
class BulkItemResult:
    """Outcome of one item in a bulk review."""

    namespace: str
    name: str
    success: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "namespace": self.namespace,
            "name": self.name,
            "success": self.success,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


class APIKeyManager:
    """Manages APIKey requests on behalf of one authorized caller."""

    def __init__(
        self,
        gateway: "ResourceGateway",
        authorizer: "Authorizer",
        k8s_config: "KubernetesConfig",
    ) -> None:
        self._gateway = gateway
        self._authz = authorizer
        self._owner_annotation = k8s_config.owner_annotation
        self._log = logger.bind(manager="apikey")

    @property
    def _user(self) -> str:
        return self._authz.identity.user_entity_ref

    async def _fetch(self, namespace: str, name: str) -> tuple[dict[str, Any], APIKey]:
        data = await self._gateway.get(APIKEYS, namespace, name)
        return data, APIKey.model_validate(data)

    # Requests

    async def create_request(self, request: AccessRequest) -> dict[str, Any]:
        """Create a Pending APIKey for the caller.

        The requester is always the caller; the body cannot name one.
        """
        await self._authz.require(
            permission_name("apikey", "create"),
            resource_ref=f"apiproduct:{request.namespace}/{request.api_product_name}",
            message=f"not authorised to request access to {request.api_product_name}",
        )

        requested_by = {"userId": self._user}
        if request.user_email:
            requested_by["email"] = request.user_email

        name = request_name(self._authz.identity.user_name, request.api_product_name)
        body = {
            "apiVersion": APIKEYS.api_version,
            "kind": "APIKey",
            "metadata": {"name": name, "namespace": request.namespace},
            "spec": {
                "apiProductRef": {"name": request.api_product_name},
                "planTier": request.plan_tier,
                "useCase": request.use_case or "",
                "requestedBy": requested_by,
            },
        }

        self._log.info(
            "apikey.request.create",
            namespace=request.namespace,
            name=name,
            product=request.api_product_name,
            tier=request.plan_tier,
        )
        return await self._gateway.create(APIKEYS, request.namespace, body)

    async def list_requests(
        self,
        *,
        status: str | None = None,
        namespace: str | None = None,
    ) -> dict[str, Any]:
        """List requests for review.

        read.all sees every request, read.own only requests for APIProducts
        the caller owns. ``status`` filters on phase (absent = Pending).
        """
        scope = await self._authz.resolve_scope("apikey", "read")

        data = await self._gateway.list(APIKEYS, namespace)
        items = data.get("items") or []

        if scope is Scope.OWN:
            products = await self._gateway.list(APIPRODUCTS)
            owned = {
                item["metadata"]["name"]
                for item in products.get("items") or []
                if (item["metadata"].get("annotations") or {}).get(self._owner_annotation)
                == self._user
            }
            items = [item for item in items if _product_ref_name(item) in owned]

        if status:
            items = [item for item in items if _phase(item) == status]

        return {"items": items}

    async def my_requests(self, *, namespace: str | None = None) -> dict[str, Any]:
        """List the caller's own requests."""
        await self._authz.require(permission_name("apikey", "read", "own"))

        data = await self._gateway.list(APIKEYS, namespace)
        items = [
            item
            for item in data.get("items") or []
            if APIKey.model_validate(item).requester == self._user
        ]
        return {"items": items}

    async def get(self, namespace: str, name: str) -> dict[str, Any]:
        scope = await self._authz.resolve_scope("apikey", "read")
        data, key = await self._fetch(namespace, name)

        result = await self._authz.check_ownership(
            scope,
            known_owner(key.requester),
            "you can only read your own api keys",
        )
        result.raise_for_denial()
        return data

    async def update(self, namespace: str, name: str, patch: APIKeyPatch) -> dict[str, Any]:
        """Edit useCase/planTier of a Pending request."""
        data, key = await self._fetch(namespace, name)

        result = await self._authz.authorize(
            "apikey",
            "update",
            known_owner(key.requester),
            "you can only update your own api key requests",
        )
        result.raise_for_denial()

        if key.phase is not KeyPhase.PENDING:
            raise ForbiddenError("only pending requests can be edited")

        self._log.info("apikey.request.update", namespace=namespace, name=name)
        return await self._gateway.patch(APIKEYS, namespace, name, patch.to_patch())

    async def delete(self, namespace: str, name: str) -> None:
        """Delete a request. The Secret is garbage collected via owner refs."""
        scope = await self._authz.resolve_scope("apikey", "delete")

        if scope is Scope.OWN:
            _, key = await self._fetch(namespace, name)
            result = await self._authz.check_ownership(
                scope,
                known_owner(key.requester),
                "you can only delete your own api key requests",
            )
            result.raise_for_denial()

        await self._gateway.delete(APIKEYS, namespace, name)
        self._log.info("apikey.deleted", namespace=namespace, name=name, scope=scope.value)

    # Reviews

    def _review_status(self, phase: KeyPhase) -> dict[str, Any]:
        return {
            "phase": phase.value,
            "reviewedBy": self._user,
            "reviewedAt": datetime.now(timezone.utc).isoformat(),
        }

    async def review(self, namespace: str, name: str, phase: KeyPhase) -> None:
        """Approve or reject one request.

        The phase is not checked first: reviewing an already reviewed key
        overwrites the previous decision.
        """
        verb = _REVIEW_VERBS[phase]
        _, key = await self._fetch(namespace, name)
        if not key.api_product_name:
            raise ValidationError("apiProductRef.name is required in APIKey spec")

        result = await self._authz.authorize(
            "apikey",
            "update",
            product_owner_lookup(
                self._gateway, namespace, key.api_product_name, self._owner_annotation
            ),
            f"you can only {verb} requests for your own api products",
        )
        result.raise_for_denial()

        await self._gateway.patch_status(APIKEYS, namespace, name, self._review_status(phase))
        self._log.info(
            "apikey.reviewed",
            namespace=namespace,
            name=name,
            phase=phase.value,
            scope=result.scope.value,
        )

    async def bulk_review(
        self,
        refs: list["ResourceRef"],
        phase: KeyPhase,
    ) -> list[BulkItemResult]:
        """Approve or reject a batch of requests.

        The update scope is resolved once for the batch; a denial there
        fails the whole call. Items are then processed sequentially and
        independently, and every item yields exactly one result in input
        order.
        """
        scope = await self._authz.resolve_scope("apikey", "update")
        verb = _REVIEW_VERBS[phase]

        results: list[BulkItemResult] = []
        for ref in refs:
            try:
                await self._review_item(ref, phase, scope, verb)
            except Exception as e:
                self._log.warning(
                    "apikey.bulk.item_failed",
                    namespace=ref.namespace,
                    name=ref.name,
                    action=verb,
                    error=str(e),
                )
                results.append(BulkItemResult(ref.namespace, ref.name, False, str(e)))
            else:
                results.append(BulkItemResult(ref.namespace, ref.name, True))

        self._log.info(
            "apikey.bulk.complete",
            action=verb,
            scope=scope.value,
            total=len(results),
            failed=sum(1 for r in results if not r.success),
        )
        return results

    async def _review_item(
        self,
        ref: "ResourceRef",
        phase: KeyPhase,
        scope: Scope,
        verb: str,
    ) -> None:
        # Admins patch the status directly
        if scope is Scope.OWN:
            _, key = await self._fetch(ref.namespace, ref.name)
            if not key.api_product_name:
                raise ValidationError("APIKey has no apiProductRef.name")

            result = await self._authz.check_ownership(
                scope,
                product_owner_lookup(
                    self._gateway, ref.namespace, key.api_product_name, self._owner_annotation
                ),
                f"You can only {verb} requests for your own API products.",
            )
            result.raise_for_denial()

        await self._gateway.patch_status(
            APIKEYS, ref.namespace, ref.name, self._review_status(phase)
        )
