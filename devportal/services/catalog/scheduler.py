"""Catalog sync scheduler - periodic background refresh."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from devportal.config import CatalogConfig
    from devportal.services.catalog.refresher import CatalogRefresher

logger = structlog.get_logger()


class CatalogSyncScheduler:
    """Runs a CatalogRefresher every ``interval_seconds``.

    Usage:
        scheduler = CatalogSyncScheduler(provider, settings.catalog)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(self, refresher: "CatalogRefresher", config: "CatalogConfig") -> None:
        self._refresher = refresher
        self._config = config
        self._log = logger.bind(service="catalog_scheduler")

        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            self._log.warning("catalog.scheduler.already_running")
            return

        self._running = True
        self._task = asyncio.create_task(self._background_loop())
        self._log.info(
            "catalog.scheduler.started",
            interval_seconds=self._config.interval_seconds,
        )

    async def stop(self) -> None:
        if not self._running:
            return

        self._log.info("catalog.scheduler.stopping")
        self._running = False

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self._log.info("catalog.scheduler.stopped")

    async def _background_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._config.interval_seconds)
            except asyncio.CancelledError:
                break

            try:
                await self._refresher.refresh()
            except Exception as e:
                self._log.exception("catalog.scheduler.cycle_error", error=str(e))
