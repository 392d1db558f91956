"""
Dashboard Aggregate Cache
Holds server-computed dashboard aggregates, replaced wholesale.
"""
import asyncio
import logging
from typing import Optional

from leadsync.core.config import Settings
from leadsync.core.errors import FetchError
from leadsync.domain.interfaces.crm_api import CRMApi
from leadsync.domain.models.dashboard import AggregateSnapshot

logger = logging.getLogger(__name__)


class DashboardCache:
    """
    Aggregate cache for dashboard stats and the performance rollup.

    Lead events only mark the snapshot stale; the next read() refetches.
    Aggregates are never patched from partial events.
    """

    def __init__(self, api: CRMApi, settings: Settings):
        self.api = api
        self.settings = settings
        self.snapshot: Optional[AggregateSnapshot] = None
        self.stale = True
        self.is_loading = False
        self.error: Optional[str] = None
        self.user_role: Optional[str] = None

    @property
    def include_performance(self) -> bool:
        return self.user_role in self.settings.performance_roles

    async def refresh(self) -> AggregateSnapshot:
        """
        Fetch a new snapshot.

        Performance rows are fetched only for roles listed in
        performance_roles.

        Raises:
            FetchError: The previous snapshot is kept
        """
        self.is_loading = True
        self.error = None
        try:
            if self.include_performance:
                stats, performance = await asyncio.gather(
                    self.api.get_dashboard_stats(),
                    self.api.get_performance(),
                )
            else:
                stats = await self.api.get_dashboard_stats()
                performance = []
        except FetchError as e:
            self.is_loading = False
            self.error = e.message
            raise

        self.snapshot = AggregateSnapshot(stats=stats, performance=performance)
        self.stale = False
        self.is_loading = False
        return self.snapshot

    async def read(self) -> AggregateSnapshot:
        """Return the snapshot, refreshing first if it is missing or stale."""
        if self.snapshot is None or self.stale:
            return await self.refresh()
        return self.snapshot

    def mark_stale(self) -> None:
        if not self.stale:
            logger.debug("Dashboard aggregates marked stale")
        self.stale = True

    def clear(self) -> None:
        self.snapshot = None
        self.stale = True
        self.error = None
        self.user_role = None
