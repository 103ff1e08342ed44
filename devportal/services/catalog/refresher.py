"""Catalog refresher interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class CatalogRefresher(ABC):
    """Pushes the current set of published APIProducts into the catalog.

    Implementations must not raise from refresh(): a failed sync never
    fails the request that triggered it.
    """

    @abstractmethod
    async def refresh(self) -> None:
        ...


class NoopCatalogRefresher(CatalogRefresher):
    """Used when catalog sync is disabled."""

    async def refresh(self) -> None:
        return None
