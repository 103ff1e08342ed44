"""Catalog sync of published APIProducts."""

from devportal.services.catalog.lifecycle import init_catalog_sync
from devportal.services.catalog.provider import APIProductCatalogProvider
from devportal.services.catalog.refresher import CatalogRefresher, NoopCatalogRefresher
from devportal.services.catalog.scheduler import CatalogSyncScheduler

__all__ = [
    "APIProductCatalogProvider",
    "CatalogRefresher",
    "CatalogSyncScheduler",
    "NoopCatalogRefresher",
    "init_catalog_sync",
]
