"""APIKey read endpoints, including the show-once secret."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from devportal.api.dependencies import APIKeyManagerDep, SecretManagerDep

router = APIRouter()


class SecretResponse(BaseModel):
    api_key: str = Field(serialization_alias="apiKey")


@router.get("/{namespace}/{name}")
async def get_apikey(
    namespace: str,
    name: str,
    manager: APIKeyManagerDep,
) -> dict[str, Any]:
    return await manager.get(namespace, name)


@router.get("/{namespace}/{name}/secret")
async def read_apikey_secret(
    namespace: str,
    name: str,
    manager: SecretManagerDep,
) -> SecretResponse:
    """Return the API key value. Succeeds at most once per key."""
    value = await manager.read_once(namespace, name)
    return SecretResponse(api_key=value)
