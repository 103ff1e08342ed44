"""Permission catalog endpoint for RBAC tooling."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from devportal.api.dependencies import AuthDep
from devportal.services.permissions import PERMISSIONS

router = APIRouter()


@router.get("/permissions")
async def list_permissions(_identity: AuthDep) -> dict[str, Any]:
    return {"permissions": [p.to_dict() for p in PERMISSIONS]}
