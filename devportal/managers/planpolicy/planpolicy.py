"""PlanPolicyManager - read-only views of plan policies and HTTPRoutes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from devportal.drivers.base import HTTPROUTES, PLANPOLICIES
from devportal.services.permissions import permission_name

if TYPE_CHECKING:
    from devportal.drivers.base import ResourceGateway
    from devportal.services.authorization import Authorizer

logger = structlog.get_logger()


def summarize_plan_policy(policy: dict[str, Any]) -> dict[str, Any]:
    """Project a PlanPolicy to what the UI needs to associate tiers."""
    metadata = policy.get("metadata") or {}
    spec = policy.get("spec") or {}

    summary: dict[str, Any] = {
        "metadata": {
            "name": metadata.get("name"),
            "namespace": metadata.get("namespace"),
        },
        "plans": [
            {
                "tier": plan.get("tier"),
                "description": plan.get("description"),
                "limits": plan.get("limits"),
            }
            for plan in spec.get("plans") or []
        ],
    }
    target_ref = spec.get("targetRef")
    if target_ref:
        summary["targetRef"] = {
            "kind": target_ref.get("kind"),
            "name": target_ref.get("name"),
            "namespace": target_ref.get("namespace"),
        }
    return summary


class PlanPolicyManager:
    def __init__(self, gateway: "ResourceGateway", authorizer: "Authorizer") -> None:
        self._gateway = gateway
        self._authz = authorizer
        self._log = logger.bind(manager="planpolicy")

    async def list(self) -> dict[str, Any]:
        await self._authz.require(permission_name("planpolicy", "list"))
        data = await self._gateway.list(PLANPOLICIES)
        return {"items": [summarize_plan_policy(p) for p in data.get("items") or []]}

    async def get(self, namespace: str, name: str) -> dict[str, Any]:
        await self._authz.require(permission_name("planpolicy", "read"))
        return await self._gateway.get(PLANPOLICIES, namespace, name)

    async def list_httproutes(self) -> dict[str, Any]:
        # Route discovery is part of publishing an APIProduct
        await self._authz.require(permission_name("apiproduct", "list"))
        return await self._gateway.list(HTTPROUTES)
