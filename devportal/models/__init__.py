"""Resource models and API request bodies."""

from devportal.models.requests import (
    AccessRequest,
    APIKeyPatch,
    APIProductPatch,
    BulkReviewRequest,
    ResourceRef,
    ReviewRequest,
)
from devportal.models.resources import (
    APIKey,
    APIProduct,
    ApprovalMode,
    KeyPhase,
    ObjectMeta,
    PublishStatus,
    Secret,
)

__all__ = [
    "APIKey",
    "APIKeyPatch",
    "APIProduct",
    "APIProductPatch",
    "AccessRequest",
    "ApprovalMode",
    "BulkReviewRequest",
    "KeyPhase",
    "ObjectMeta",
    "PublishStatus",
    "ResourceRef",
    "ReviewRequest",
    "Secret",
]
