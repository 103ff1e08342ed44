"""Unit tests for the APIProduct catalog provider."""

from __future__ import annotations

import json

import httpx
import pytest

from devportal.config import CatalogConfig, KubernetesConfig, Settings
from devportal.drivers.base import APIPRODUCTS
from devportal.models import APIProduct
from devportal.services.catalog import (
    APIProductCatalogProvider,
    NoopCatalogRefresher,
    init_catalog_sync,
)
from tests.fakes import FakeGateway, make_apiproduct

CATALOG_URL = "http://catalog.test/entities"


class RecordingTransport:
    """Collects posted catalog mutations."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code)

    def entities(self, index: int = -1) -> list[dict]:
        return json.loads(self.requests[index].content)["entities"]


def make_provider(gateway, transport, token=None) -> APIProductCatalogProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    return APIProductCatalogProvider(
        gateway,
        client,
        CatalogConfig(enabled=True, url=CATALOG_URL, token=token),
        KubernetesConfig(),
    )


class TestToEntity:
    """Test APIProduct to API entity conversion."""

    def test_full_entity(self):
        product = APIProduct.model_validate(
            make_apiproduct(
                "weather",
                "team-a",
                owner="user:default/owner",
                labels={"lifecycle": "experimental"},
                description="Forecasts",
                tags=["weather"],
            )
        )
        provider = make_provider(FakeGateway(), RecordingTransport())

        entity = provider.to_entity(product)

        assert entity == {
            "apiVersion": "backstage.io/v1alpha1",
            "kind": "API",
            "metadata": {
                "name": "weather",
                "namespace": "default",
                "title": "weather",
                "description": "Forecasts",
                "annotations": {
                    "backstage.io/managed-by-location": "kuadrant:team-a/weather",
                    "backstage.io/managed-by-origin-location": "kuadrant:team-a/weather",
                    "kuadrant.io/namespace": "team-a",
                    "kuadrant.io/apiproduct": "weather",
                },
                "tags": ["weather", "kuadrant", "apiproduct"],
            },
            "spec": {
                "type": "openapi",
                "lifecycle": "experimental",
                "owner": "user:default/owner",
                "system": "team-a",
            },
        }

    def test_defaults(self):
        """Missing description and lifecycle fall back to defaults."""
        product = APIProduct.model_validate(make_apiproduct("weather", owner="user:default/o"))
        provider = make_provider(FakeGateway(), RecordingTransport())

        entity = provider.to_entity(product)

        assert entity["metadata"]["description"] == "api product: weather"
        assert entity["spec"]["lifecycle"] == "production"

    def test_unowned_product_skipped(self):
        product = APIProduct.model_validate(make_apiproduct("weather"))
        provider = make_provider(FakeGateway(), RecordingTransport())

        assert provider.to_entity(product) is None


class TestRefresh:
    """Test full-replacement sync."""

    @pytest.mark.asyncio
    async def test_only_published_owned_products_synced(self):
        gateway = FakeGateway()
        gateway.add(APIPRODUCTS, make_apiproduct("a", owner="user:default/o"))
        gateway.add(
            APIPRODUCTS, make_apiproduct("b", owner="user:default/o", publish_status="Draft")
        )
        gateway.add(APIPRODUCTS, make_apiproduct("c"))
        transport = RecordingTransport()

        await make_provider(gateway, transport).refresh()

        assert [e["metadata"]["name"] for e in transport.entities()] == ["a"]
        assert transport.requests[0].url == CATALOG_URL
        assert "authorization" not in transport.requests[0].headers

    @pytest.mark.asyncio
    async def test_empty_catalog_still_posted(self):
        """An empty list removes previously synced entities."""
        transport = RecordingTransport()

        await make_provider(FakeGateway(), transport).refresh()

        assert transport.entities() == []

    @pytest.mark.asyncio
    async def test_token_sent_as_bearer(self):
        transport = RecordingTransport()

        await make_provider(FakeGateway(), transport, token="s3cret").refresh()

        assert transport.requests[0].headers["authorization"] == "Bearer s3cret"

    @pytest.mark.asyncio
    async def test_list_failure_swallowed(self):
        gateway = FakeGateway()
        gateway.fail("list", APIPRODUCTS)
        transport = RecordingTransport()

        await make_provider(gateway, transport).refresh()

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_catalog_error_swallowed(self):
        transport = RecordingTransport(status_code=502)

        await make_provider(FakeGateway(), transport).refresh()

        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_malformed_product_skipped(self):
        """A product that fails model validation does not block the others."""
        gateway = FakeGateway()
        gateway.add(APIPRODUCTS, make_apiproduct("good", owner="user:default/o"))
        gateway.add(APIPRODUCTS, make_apiproduct("bad", owner="user:default/o", tags=None))
        transport = RecordingTransport()

        await make_provider(gateway, transport).refresh()

        assert [e["metadata"]["name"] for e in transport.entities()] == ["good"]

    @pytest.mark.asyncio
    async def test_unexpected_error_swallowed(self, monkeypatch):
        gateway = FakeGateway()

        async def broken_list(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(gateway, "list", broken_list)
        transport = RecordingTransport()

        await make_provider(gateway, transport).refresh()

        assert transport.requests == []

    def test_url_required(self):
        with pytest.raises(ValueError):
            APIProductCatalogProvider(
                FakeGateway(), httpx.AsyncClient(), CatalogConfig(enabled=True), KubernetesConfig()
            )


class TestInitCatalogSync:
    """Test lifespan wiring."""

    @pytest.mark.asyncio
    async def test_disabled_returns_noop(self):
        refresher, scheduler = await init_catalog_sync(
            Settings(), FakeGateway(), httpx.AsyncClient()
        )

        assert isinstance(refresher, NoopCatalogRefresher)
        assert scheduler is None

    @pytest.mark.asyncio
    async def test_enabled_refreshes_on_startup(self):
        transport = RecordingTransport()
        client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
        settings = Settings(
            catalog=CatalogConfig(enabled=True, url=CATALOG_URL, interval_seconds=3600)
        )

        refresher, scheduler = await init_catalog_sync(settings, FakeGateway(), client)
        try:
            assert isinstance(refresher, APIProductCatalogProvider)
            assert scheduler is not None and scheduler.is_running
            assert len(transport.requests) == 1
        finally:
            await scheduler.stop()
