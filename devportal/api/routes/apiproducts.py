"""APIProduct endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Response

from devportal.api.dependencies import APIProductManagerDep
from devportal.models import APIProductPatch

router = APIRouter()


@router.get("")
async def list_apiproducts(manager: APIProductManagerDep) -> dict[str, Any]:
    """List APIProducts visible to the caller."""
    return await manager.list()


@router.get("/{namespace}/{name}")
async def get_apiproduct(
    namespace: str,
    name: str,
    manager: APIProductManagerDep,
) -> dict[str, Any]:
    return await manager.get(namespace, name)


@router.post("", status_code=201)
async def create_apiproduct(
    manager: APIProductManagerDep,
    body: dict[str, Any] = Body(...),
) -> dict[str, Any]:
    """Create an APIProduct.

    The body is an APIProduct resource; spec.targetRef must name the
    HTTPRoute (name, kind, namespace) and decides the namespace.
    """
    return await manager.create(body)


@router.patch("/{namespace}/{name}")
async def patch_apiproduct(
    namespace: str,
    name: str,
    patch: APIProductPatch,
    manager: APIProductManagerDep,
) -> dict[str, Any]:
    return await manager.patch(namespace, name, patch)


@router.delete("/{namespace}/{name}", status_code=204)
async def delete_apiproduct(
    namespace: str,
    name: str,
    manager: APIProductManagerDep,
) -> Response:
    """Delete an APIProduct and the APIKeys that reference it."""
    await manager.delete(namespace, name)
    return Response(status_code=204)
