"""Typed views over Kuadrant custom resources.

Resources travel through the gateway as raw JSON dicts. These models
validate the fields the portal reasons about and keep everything else
(``extra="allow"``) so a resource can be re-serialized unchanged.

``status`` is modelled as optional on purpose: an absent status on an
APIKey means the key is still Pending.
"""

from __future__ import annotations

import base64
import binascii
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ResourceModel(BaseModel):
    model_config = ConfigDict(
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PublishStatus(str, Enum):
    DRAFT = "Draft"
    PUBLISHED = "Published"


class ApprovalMode(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class KeyPhase(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class ObjectMeta(_ResourceModel):
    name: str
    namespace: str | None = None
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None
    creation_timestamp: str | None = None

    def annotation(self, key: str) -> str | None:
        return (self.annotations or {}).get(key)

    def label(self, key: str) -> str | None:
        return (self.labels or {}).get(key)


class TargetRef(_ResourceModel):
    name: str | None = None
    kind: str | None = None
    namespace: str | None = None
    group: str | None = None


class APIProductSpec(_ResourceModel):
    display_name: str | None = None
    description: str | None = None
    version: str | None = None
    publish_status: PublishStatus = PublishStatus.DRAFT
    approval_mode: ApprovalMode = ApprovalMode.MANUAL
    target_ref: TargetRef | None = None
    tags: list[str] = Field(default_factory=list)


class APIProductStatus(_ResourceModel):
    # Populated by the Kuadrant controller; read-only here
    discovered_plans: list[dict[str, Any]] | None = None


class APIProduct(_ResourceModel):
    """APIProduct (devportal.kuadrant.io/v1alpha1)."""

    metadata: ObjectMeta
    spec: APIProductSpec = Field(default_factory=APIProductSpec)
    status: APIProductStatus | None = None

    def owner(self, annotation: str) -> str | None:
        return self.metadata.annotation(annotation)

    @property
    def is_published(self) -> bool:
        return self.spec.publish_status == PublishStatus.PUBLISHED


class APIProductRef(_ResourceModel):
    name: str | None = None


class RequestedBy(_ResourceModel):
    user_id: str | None = None
    email: str | None = None


class SecretRef(_ResourceModel):
    name: str | None = None
    key: str | None = None


class APIKeySpec(_ResourceModel):
    api_product_ref: APIProductRef | None = None
    plan_tier: str | None = None
    use_case: str | None = None
    requested_by: RequestedBy | None = None


class APIKeyStatus(_ResourceModel):
    phase: KeyPhase | None = None
    reviewed_by: str | None = None
    reviewed_at: str | None = None
    secret_ref: SecretRef | None = None
    can_read_secret: bool | None = None


class APIKey(_ResourceModel):
    """APIKey (devportal.kuadrant.io/v1alpha1), one consumer access request."""

    metadata: ObjectMeta
    spec: APIKeySpec = Field(default_factory=APIKeySpec)
    status: APIKeyStatus | None = None

    @property
    def api_product_name(self) -> str | None:
        ref = self.spec.api_product_ref
        return ref.name if ref else None

    @property
    def requester(self) -> str | None:
        requested_by = self.spec.requested_by
        return requested_by.user_id if requested_by else None

    @property
    def phase(self) -> KeyPhase:
        if self.status is None or self.status.phase is None:
            return KeyPhase.PENDING
        return self.status.phase

    @property
    def can_read_secret(self) -> bool:
        # Only an explicit true unlocks the secret
        return self.status is not None and self.status.can_read_secret is True

    @property
    def secret_ref(self) -> SecretRef | None:
        if self.status is None:
            return None
        ref = self.status.secret_ref
        if ref is None or not ref.name or not ref.key:
            return None
        return ref


class Secret(_ResourceModel):
    """Core v1 Secret holding base64 encoded values."""

    metadata: ObjectMeta
    type: str | None = None
    data: dict[str, str] | None = None

    def decode(self, key: str) -> str | None:
        """Return the decoded value under ``key``, or None when absent."""
        raw = (self.data or {}).get(key)
        if not raw:
            return None
        try:
            return base64.b64decode(raw, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None
