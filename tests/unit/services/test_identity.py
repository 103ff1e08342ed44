"""Unit tests for identity resolution."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi import Request

from devportal.config import SecurityConfig, TokenCredential
from devportal.errors import AuthenticationRequiredError, ForbiddenError
from devportal.services.identity import Identity, IdentityResolver


def create_mock_request(headers: dict[str, str] | None = None) -> Request:
    """Create a mock FastAPI Request with given headers."""
    mock_request = MagicMock(spec=Request)
    mock_request.headers = headers or {}
    return mock_request


def create_resolver(trust_headers: bool = False) -> IdentityResolver:
    return IdentityResolver(
        SecurityConfig(
            tokens=[
                TokenCredential(
                    token="owner-token",
                    user="user:default/owner",
                    groups=["group:default/api-owners"],
                )
            ],
            trust_identity_headers=trust_headers,
        )
    )


class TestIdentity:
    """Test Identity helpers."""

    def test_user_name_is_last_segment(self):
        """Should strip kind and namespace from the entity ref."""
        assert Identity("user:default/alice").user_name == "alice"

    def test_user_name_without_namespace(self):
        """Should return the whole ref when there is no slash."""
        assert Identity("alice").user_name == "alice"

    def test_subjects_include_groups(self):
        identity = Identity("user:default/alice", ("group:default/a",))
        assert identity.subjects == ("user:default/alice", "group:default/a")


class TestBearerToken:
    """Test static bearer token resolution."""

    def test_valid_token_resolves_user_and_groups(self):
        """Valid token maps to the configured identity."""
        request = create_mock_request({"Authorization": "Bearer owner-token"})

        identity = create_resolver().resolve(request)

        assert identity.user_entity_ref == "user:default/owner"
        assert identity.groups == ("group:default/api-owners",)

    def test_invalid_token_rejected(self):
        """Unknown token is rejected even when headers are trusted."""
        request = create_mock_request(
            {"Authorization": "Bearer wrong", "X-Portal-User": "user:default/mallory"}
        )

        with pytest.raises(AuthenticationRequiredError, match="invalid credentials"):
            create_resolver(trust_headers=True).resolve(request)

    def test_non_bearer_scheme_ignored(self):
        """Basic auth is not a recognised credential."""
        request = create_mock_request({"Authorization": "Basic dXNlcjpwYXNz"})

        with pytest.raises(AuthenticationRequiredError):
            create_resolver().resolve(request)


class TestIdentityHeaders:
    """Test proxy-supplied identity headers."""

    def test_headers_ignored_when_not_trusted(self):
        """Headers alone do not authenticate by default."""
        request = create_mock_request({"X-Portal-User": "user:default/alice"})

        with pytest.raises(AuthenticationRequiredError):
            create_resolver(trust_headers=False).resolve(request)

    def test_headers_resolve_when_trusted(self):
        """Groups header is split on commas and trimmed."""
        request = create_mock_request(
            {
                "X-Portal-User": "user:default/alice",
                "X-Portal-Groups": "group:default/api-consumers, group:default/qa,",
            }
        )

        identity = create_resolver(trust_headers=True).resolve(request)

        assert identity.user_entity_ref == "user:default/alice"
        assert identity.groups == ("group:default/api-consumers", "group:default/qa")


class TestNoCredentials:
    """Test fail-closed behaviour."""

    def test_missing_credentials_is_forbidden(self):
        """No credentials raises a 403-class error."""
        with pytest.raises(AuthenticationRequiredError) as exc_info:
            create_resolver().resolve(create_mock_request())

        assert isinstance(exc_info.value, ForbiddenError)
        assert exc_info.value.status_code == 403
        assert exc_info.value.to_dict() == {"error": "authentication required"}
