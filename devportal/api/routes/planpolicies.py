"""PlanPolicy and HTTPRoute endpoints (read-only)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from devportal.api.dependencies import PlanPolicyManagerDep

router = APIRouter()


@router.get("/planpolicies")
async def list_planpolicies(manager: PlanPolicyManagerDep) -> dict[str, Any]:
    """List plan policies (name, target and tiers only)."""
    return await manager.list()


@router.get("/planpolicies/{namespace}/{name}")
async def get_planpolicy(
    namespace: str,
    name: str,
    manager: PlanPolicyManagerDep,
) -> dict[str, Any]:
    return await manager.get(namespace, name)


@router.get("/httproutes")
async def list_httproutes(manager: PlanPolicyManagerDep) -> dict[str, Any]:
    return await manager.list_httproutes()
