"""Unit tests for permission services."""

from __future__ import annotations

import json

import httpx
import pytest

from devportal.config import (
    PermissionGrant,
    PolicyConfig,
    RemotePermissionConfig,
    RoleBinding,
)
from devportal.errors import UpstreamError
from devportal.services.identity import Identity
from devportal.services.permissions import (
    PERMISSIONS,
    Decision,
    PolicyPermissionService,
    RemotePermissionService,
    permission_name,
)

CONSUMER = Identity("user:default/consumer", ("group:default/api-consumers",))
OWNER = Identity("user:default/owner", ("group:default/api-owners",))
ADMIN = Identity("user:default/admin", ("group:default/platform-engineers",))


class TestPermissionCatalog:
    """Test the advertised permission catalog."""

    def test_permission_name(self):
        assert permission_name("apikey", "read") == "kuadrant.apikey.read"
        assert permission_name("apikey", "read", "own") == "kuadrant.apikey.read.own"

    def test_names_are_unique(self):
        names = [p.name for p in PERMISSIONS]
        assert len(names) == len(set(names))

    def test_scoped_permissions_have_both_variants(self):
        """Every ownership-scoped action is advertised as .own and .all."""
        names = {p.name for p in PERMISSIONS}
        for resource in ("apiproduct", "apikey"):
            for action in ("read", "update", "delete"):
                assert f"kuadrant.{resource}.{action}.own" in names
                assert f"kuadrant.{resource}.{action}.all" in names

    def test_apikey_create_is_resource_permission(self):
        """Access requests are checked against an apiproduct resource ref."""
        create = next(p for p in PERMISSIONS if p.name == "kuadrant.apikey.create")
        assert create.to_dict() == {
            "name": "kuadrant.apikey.create",
            "title": "Request API access",
            "attributes": {"action": "create"},
            "resourceType": "apiproduct",
        }

    def test_basic_permission_has_no_resource_type(self):
        listing = next(p for p in PERMISSIONS if p.name == "kuadrant.apiproduct.list")
        assert "resourceType" not in listing.to_dict()


class TestPolicyPermissionService:
    """Test in-process role policy decisions."""

    @pytest.mark.asyncio
    async def test_default_consumer_grants(self):
        """Consumers can request access and read their own keys only."""
        service = PolicyPermissionService(PolicyConfig())

        assert await service.authorize(CONSUMER, "kuadrant.apikey.create") == Decision.ALLOW
        assert await service.authorize(CONSUMER, "kuadrant.apikey.read.own") == Decision.ALLOW
        assert await service.authorize(CONSUMER, "kuadrant.apikey.read.all") == Decision.DENY
        assert await service.authorize(CONSUMER, "kuadrant.apiproduct.create") == Decision.DENY

    @pytest.mark.asyncio
    async def test_default_owner_has_own_scope_only(self):
        service = PolicyPermissionService(PolicyConfig())

        assert await service.authorize(OWNER, "kuadrant.apikey.update.own") == Decision.ALLOW
        assert await service.authorize(OWNER, "kuadrant.apikey.update.all") == Decision.DENY

    @pytest.mark.asyncio
    async def test_wildcard_grant(self):
        """Platform engineers hold every kuadrant permission."""
        service = PolicyPermissionService(PolicyConfig())

        assert await service.authorize(ADMIN, "kuadrant.apikey.update.all") == Decision.ALLOW
        assert await service.authorize(ADMIN, "kuadrant.planpolicy.delete") == Decision.ALLOW
        assert await service.authorize(ADMIN, "other.thing") == Decision.DENY

    @pytest.mark.asyncio
    async def test_unbound_identity_denied(self):
        service = PolicyPermissionService(PolicyConfig())
        stranger = Identity("user:default/stranger")

        assert await service.authorize(stranger, "kuadrant.apiproduct.list") == Decision.DENY

    @pytest.mark.asyncio
    async def test_user_binding(self):
        """A role can be bound directly to a user entity ref."""
        config = PolicyConfig(
            roles={"viewer": [PermissionGrant(permission="kuadrant.apiproduct.list")]},
            bindings=[RoleBinding(subject="user:default/alice", role="viewer")],
        )
        service = PolicyPermissionService(config)

        alice = Identity("user:default/alice")
        assert await service.authorize(alice, "kuadrant.apiproduct.list") == Decision.ALLOW

    @pytest.mark.asyncio
    async def test_resource_restricted_grant(self):
        """A grant with resources matches only a supplied matching ref."""
        config = PolicyConfig(
            roles={
                "gold": [
                    PermissionGrant(
                        permission="kuadrant.apikey.create",
                        resources=["apiproduct:team-a/*"],
                    )
                ]
            },
            bindings=[RoleBinding(subject="group:default/gold", role="gold")],
        )
        service = PolicyPermissionService(config)
        caller = Identity("user:default/bob", ("group:default/gold",))

        assert (
            await service.authorize(caller, "kuadrant.apikey.create", "apiproduct:team-a/weather")
            == Decision.ALLOW
        )
        assert (
            await service.authorize(caller, "kuadrant.apikey.create", "apiproduct:team-b/weather")
            == Decision.DENY
        )
        assert await service.authorize(caller, "kuadrant.apikey.create") == Decision.DENY


def _remote(handler) -> tuple[RemotePermissionService, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    config = RemotePermissionConfig(url="http://permissions.test/authorize")
    return RemotePermissionService(config, client), client


class TestRemotePermissionService:
    """Test delegation to an external decision endpoint."""

    def test_requires_url(self):
        with pytest.raises(ValueError):
            RemotePermissionService(RemotePermissionConfig(), httpx.AsyncClient())

    @pytest.mark.asyncio
    async def test_allow_response(self):
        """Payload carries the permission, resource ref and caller."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={"result": "ALLOW"})

        service, client = _remote(handler)
        async with client:
            decision = await service.authorize(
                CONSUMER, "kuadrant.apikey.create", "apiproduct:ns/orders"
            )

        assert decision == Decision.ALLOW
        assert seen == {
            "permission": "kuadrant.apikey.create",
            "resourceRef": "apiproduct:ns/orders",
            "user": "user:default/consumer",
            "groups": ["group:default/api-consumers"],
        }

    @pytest.mark.asyncio
    async def test_unknown_result_is_deny(self):
        service, client = _remote(lambda request: httpx.Response(200, json={"result": "MAYBE"}))
        async with client:
            decision = await service.authorize(CONSUMER, "kuadrant.apiproduct.list")

        assert decision == Decision.DENY

    @pytest.mark.asyncio
    async def test_http_error_raises_upstream_error(self):
        service, client = _remote(lambda request: httpx.Response(503))
        async with client:
            with pytest.raises(UpstreamError, match="permission check failed"):
                await service.authorize(CONSUMER, "kuadrant.apiproduct.list")

    @pytest.mark.asyncio
    async def test_invalid_json_raises_upstream_error(self):
        service, client = _remote(lambda request: httpx.Response(200, content=b"not json"))
        async with client:
            with pytest.raises(UpstreamError):
                await service.authorize(CONSUMER, "kuadrant.apiproduct.list")
