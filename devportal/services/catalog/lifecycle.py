"""Catalog sync wiring for the FastAPI lifespan."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import structlog

from devportal.services.catalog.provider import APIProductCatalogProvider
from devportal.services.catalog.refresher import CatalogRefresher, NoopCatalogRefresher
from devportal.services.catalog.scheduler import CatalogSyncScheduler

if TYPE_CHECKING:
    from devportal.config import Settings
    from devportal.drivers.base import ResourceGateway

logger = structlog.get_logger()


async def init_catalog_sync(
    settings: "Settings",
    gateway: "ResourceGateway",
    client: httpx.AsyncClient,
) -> tuple[CatalogRefresher, CatalogSyncScheduler | None]:
    """Build the catalog refresher and start its background loop.

    Returns the refresher for request-triggered refreshes and the
    scheduler (None when catalog sync is disabled).
    """
    catalog_config = settings.catalog

    logger.info(
        "catalog.init",
        enabled=catalog_config.enabled,
        interval_seconds=catalog_config.interval_seconds,
        run_on_startup=catalog_config.run_on_startup,
    )

    if not catalog_config.enabled:
        return NoopCatalogRefresher(), None

    provider = APIProductCatalogProvider(
        gateway=gateway,
        client=client,
        config=catalog_config,
        k8s_config=settings.kubernetes,
    )

    if catalog_config.run_on_startup:
        await provider.refresh()

    scheduler = CatalogSyncScheduler(provider, catalog_config)
    await scheduler.start()
    return provider, scheduler
