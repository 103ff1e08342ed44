"""Request bodies accepted by the portal API.

Patch models double as allow-lists: unknown fields are dropped during
parsing and only fields the caller actually sent are forwarded.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from devportal.models.resources import ApprovalMode, PublishStatus


class _RequestModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_patch(self) -> dict[str, Any]:
        """Serialize the fields that were set as a merge patch (nulls dropped)."""
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True, mode="json")


# APIProduct


class ContactPatch(_RequestModel):
    email: str | None = None
    team: str | None = None
    slack: str | None = None


class DocumentationPatch(_RequestModel):
    docs_url: str | None = Field(default=None, alias="docsURL")
    open_api_spec: str | None = Field(default=None, alias="openAPISpec")


class APIProductSpecPatch(_RequestModel):
    display_name: str | None = None
    description: str | None = None
    version: str | None = None
    publish_status: PublishStatus | None = None
    approval_mode: ApprovalMode | None = None
    tags: list[str] | None = None
    contact: ContactPatch | None = None
    documentation: DocumentationPatch | None = None


class MetadataPatch(_RequestModel):
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None


class APIProductPatch(_RequestModel):
    """Allow-listed APIProduct update."""

    spec: APIProductSpecPatch | None = None
    metadata: MetadataPatch | None = None


# APIKey


class AccessRequest(_RequestModel):
    """Consumer request for an API key on one APIProduct plan tier."""

    api_product_name: str = Field(min_length=1)
    namespace: str = Field(min_length=1)
    plan_tier: str = Field(min_length=1)
    use_case: str | None = None
    user_email: str | None = None


class APIKeySpecPatch(_RequestModel):
    use_case: str | None = None
    plan_tier: str | None = None


class APIKeyPatch(_RequestModel):
    """Allow-listed edit of a Pending APIKey."""

    spec: APIKeySpecPatch | None = None


class ReviewRequest(_RequestModel):
    comment: str | None = None


class ResourceRef(_RequestModel):
    namespace: str
    name: str


class BulkReviewRequest(_RequestModel):
    requests: list[ResourceRef]
    comment: str | None = None
