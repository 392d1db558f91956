"""
Event Reconciler
Routes decoded push events to the caches that own the affected records.

Events are decoded at the transport boundary, queued, and reconciled one
at a time by a single consumer task in delivery order. A malformed event
or a failure while reconciling one event is logged and never stops the
events behind it.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from leadsync.core.errors import MalformedEventError
from leadsync.domain.models.push_events import (
    ActivityCreatedEvent,
    LeadCreatedEvent,
    LeadDeletedEvent,
    LeadUpdatedEvent,
    PushEvent,
    PushEventType,
    parse_event,
)
from leadsync.services.aggregate_cache import DashboardCache
from leadsync.services.detail_cache import LeadDetailCache
from leadsync.services.query_cache import LeadListCache
from leadsync.services.transport_session import TransportSession

logger = logging.getLogger(__name__)


class EventReconciler:
    """
    Dispatcher from push events to cache merge contracts.

    Routing (every merge is identity-matched, so redelivery is harmless):
    - lead:created   -> list window refetch, aggregates stale
    - lead:updated   -> list replace-if-present, detail replace-if-focused,
                        aggregates stale
    - lead:deleted   -> list window refetch, detail unfocus-if-focused,
                        aggregates stale
    - activity:created -> detail prepend-if-focused
    """

    def __init__(
        self,
        lead_list: LeadListCache,
        lead_detail: LeadDetailCache,
        dashboard: DashboardCache
    ):
        self.lead_list = lead_list
        self.lead_detail = lead_detail
        self.dashboard = dashboard
        self.processed_count = 0
        self.dropped_count = 0
        self.failed_count = 0
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._handlers: Dict[str, Callable[[Any], Awaitable[None]]] = {}
        self._routes = {
            PushEventType.LEAD_CREATED: self._on_lead_created,
            PushEventType.LEAD_UPDATED: self._on_lead_updated,
            PushEventType.LEAD_DELETED: self._on_lead_deleted,
            PushEventType.ACTIVITY_CREATED: self._on_activity_created,
        }

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    # ========== Wiring ==========

    def attach(self, transport: TransportSession) -> None:
        """Register for every consumed event on the transport session."""
        for event_type in PushEventType:
            event_name = event_type.value

            async def handler(data, _name=event_name):
                await self.submit(_name, data)

            self._handlers[event_name] = handler
            transport.on(event_name, handler)

    def detach(self, transport: TransportSession) -> None:
        for event_name, handler in self._handlers.items():
            transport.off(event_name, handler)
        self._handlers.clear()

    async def start(self) -> None:
        """Start the consumer task that drains the event queue."""
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run())
        logger.info("Event reconciler started")

    async def stop(self) -> None:
        """Process events already queued, then stop the consumer."""
        if not self.running:
            return
        await self._queue.put(None)
        await self._worker
        self._worker = None
        self._queue = None
        logger.info("Event reconciler stopped")

    async def drain(self) -> None:
        """Wait until every queued event has been reconciled."""
        if self._queue is not None:
            await self._queue.join()

    # ========== Intake ==========

    async def submit(self, event_name: str, data: Any) -> bool:
        """
        Decode a raw push event and queue it for reconciliation.

        Without a running consumer the event is reconciled inline.

        Returns:
            False if the event was malformed and dropped
        """
        try:
            event = parse_event(event_name, data)
        except MalformedEventError as e:
            self.dropped_count += 1
            logger.warning(f"Dropping malformed push event {event_name}: {e.message}")
            return False

        if self.running:
            self._queue.put_nowait(event)
        else:
            await self.process(event)
        return True

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                if event is None:
                    return
                await self.process(event)
            finally:
                self._queue.task_done()

    # ========== Reconciliation ==========

    async def process(self, event: PushEvent) -> None:
        """Reconcile one decoded event. Failures are isolated to this event."""
        route = self._routes.get(event.type)
        if route is None:
            self.dropped_count += 1
            logger.warning(f"No route for push event {event.type}")
            return
        try:
            await route(event)
            self.processed_count += 1
        except Exception as e:
            self.failed_count += 1
            logger.error(f"Failed to reconcile {event.type.value}: {e}", exc_info=True)

    async def _on_lead_created(self, event: LeadCreatedEvent) -> None:
        self.dashboard.mark_stale()
        await self.lead_list.apply_created(event.lead)

    async def _on_lead_updated(self, event: LeadUpdatedEvent) -> None:
        self.dashboard.mark_stale()
        self.lead_list.apply_updated(event.lead)
        self.lead_detail.apply_record_updated(event.lead)

    async def _on_lead_deleted(self, event: LeadDeletedEvent) -> None:
        self.dashboard.mark_stale()
        await self.lead_list.apply_deleted(event.lead_id)
        await self.lead_detail.apply_record_deleted(event.lead_id)

    async def _on_activity_created(self, event: ActivityCreatedEvent) -> None:
        self.lead_detail.apply_activity_created(event.activity)
