"""APIKey request endpoints: access requests, reviews and bulk reviews."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Response
from pydantic import BaseModel

from devportal.api.dependencies import APIKeyManagerDep
from devportal.models import (
    AccessRequest,
    APIKeyPatch,
    BulkReviewRequest,
    KeyPhase,
    ReviewRequest,
)

router = APIRouter()


class BulkItemResponse(BaseModel):
    namespace: str
    name: str
    success: bool
    error: str | None = None


class BulkReviewResponse(BaseModel):
    """Per-item outcomes, in input order."""

    results: list[BulkItemResponse]


@router.post("", status_code=201)
async def create_request(
    request: AccessRequest,
    manager: APIKeyManagerDep,
) -> dict[str, Any]:
    """Request access to an APIProduct plan tier."""
    return await manager.create_request(request)


@router.get("")
async def list_requests(
    manager: APIKeyManagerDep,
    status: str | None = Query(None, description="Filter by phase (Pending, Approved, Rejected)"),
    namespace: str | None = Query(None),
) -> dict[str, Any]:
    return await manager.list_requests(status=status, namespace=namespace)


@router.get("/my")
async def my_requests(
    manager: APIKeyManagerDep,
    namespace: str | None = Query(None),
) -> dict[str, Any]:
    return await manager.my_requests(namespace=namespace)


@router.post(
    "/bulk-approve",
    response_model=BulkReviewResponse,
    response_model_exclude_none=True,
)
async def bulk_approve(body: BulkReviewRequest, manager: APIKeyManagerDep) -> dict[str, Any]:
    """Approve many requests; always 200, inspect ``results``."""
    results = await manager.bulk_review(body.requests, KeyPhase.APPROVED)
    return {"results": [r.to_dict() for r in results]}


@router.post(
    "/bulk-reject",
    response_model=BulkReviewResponse,
    response_model_exclude_none=True,
)
async def bulk_reject(body: BulkReviewRequest, manager: APIKeyManagerDep) -> dict[str, Any]:
    """Reject many requests; always 200, inspect ``results``."""
    results = await manager.bulk_review(body.requests, KeyPhase.REJECTED)
    return {"results": [r.to_dict() for r in results]}


@router.post("/{namespace}/{name}/approve")
async def approve_request(
    namespace: str,
    name: str,
    manager: APIKeyManagerDep,
    body: ReviewRequest | None = None,
) -> dict[str, bool]:
    await manager.review(namespace, name, KeyPhase.APPROVED)
    return {"success": True}


@router.post("/{namespace}/{name}/reject", status_code=204)
async def reject_request(
    namespace: str,
    name: str,
    manager: APIKeyManagerDep,
    body: ReviewRequest | None = None,
) -> Response:
    await manager.review(namespace, name, KeyPhase.REJECTED)
    return Response(status_code=204)


@router.patch("/{namespace}/{name}")
async def update_request(
    namespace: str,
    name: str,
    patch: APIKeyPatch,
    manager: APIKeyManagerDep,
) -> dict[str, Any]:
    """Edit useCase or planTier of a Pending request."""
    return await manager.update(namespace, name, patch)


@router.delete("/{namespace}/{name}", status_code=204)
async def delete_request(
    namespace: str,
    name: str,
    manager: APIKeyManagerDep,
) -> Response:
    await manager.delete(namespace, name)
    return Response(status_code=204)
