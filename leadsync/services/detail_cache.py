"""
Lead Detail Cache
Holds the single focused lead, its activity timeline, and the push
subscription for that lead.

State machine:
    UNFOCUSED --focus(id)--> LOADING(id) --fetch ok--> FOCUSED(id)
    LOADING(id) --fetch failed--> UNFOCUSED (error raised to caller)
    LOADING/FOCUSED --focus(other) or unfocus--> subscription released first
"""
import asyncio
import logging
from typing import List, Optional
from enum import Enum

from leadsync.core.config import Settings
from leadsync.core.errors import FetchError
from leadsync.domain.interfaces.crm_api import CRMApi
from leadsync.domain.models.actions import ActionKind, ActionResult
from leadsync.domain.models.activity import Activity
from leadsync.domain.models.lead import Lead
from leadsync.domain.models.pagination import PageWindow
from leadsync.services.transport_session import TransportSession

logger = logging.getLogger(__name__)


class DetailState(str, Enum):
    """Detail cache focus state"""
    UNFOCUSED = "unfocused"
    LOADING = "loading"
    FOCUSED = "focused"


class LeadDetailCache:
    """
    Detail cache for one focused lead.

    Every focus/unfocus bumps a generation counter; a fetch result is
    applied only if its generation is still current, so responses that
    arrive after the user moved on are dropped.

    Subscription changes run one at a time under a lock, and a focus that
    was superseded while waiting for it never subscribes, so at most one
    lead holds a subscription.
    """

    def __init__(
        self,
        api: CRMApi,
        settings: Settings,
        transport: Optional[TransportSession] = None
    ):
        self.api = api
        self.settings = settings
        self.transport = transport
        self.state = DetailState.UNFOCUSED
        self.focus_id: Optional[int] = None
        self.lead: Optional[Lead] = None
        self.activities: PageWindow[Activity] = self._empty_timeline()
        self.error: Optional[str] = None
        self._generation = 0
        self._transition = asyncio.Lock()

    def _empty_timeline(self) -> PageWindow[Activity]:
        return PageWindow[Activity](limit=self.settings.activity_page_limit)

    @property
    def activity_items(self) -> List[Activity]:
        return list(self.activities.items)

    def is_focused_on(self, lead_id: int) -> bool:
        return self.focus_id is not None and self.focus_id == lead_id

    # ========== Focus lifecycle ==========

    async def focus(self, lead_id: int) -> Optional[Lead]:
        """
        Focus a lead: subscribe to it and fetch the record and timeline.

        Returns:
            The fetched lead, or None if another focus/unfocus superseded
            this one before the fetch completed

        Raises:
            FetchError: Fetch failed while still current; the cache is
                back to UNFOCUSED and the subscription released
        """
        self._generation += 1
        generation = self._generation

        async with self._transition:
            if generation != self._generation:
                logger.debug(f"Focus on lead {lead_id} superseded before it started")
                return None

            previous = self.focus_id
            if previous != lead_id:
                self.lead = None
                self.activities = self._empty_timeline()
            self.focus_id = lead_id
            self.state = DetailState.LOADING
            self.error = None

            if self.transport is not None:
                if previous is not None and previous != lead_id:
                    await self.transport.unsubscribe(previous)
                await self.transport.subscribe(lead_id)

        if generation != self._generation:
            return None

        try:
            lead, activities = await asyncio.gather(
                self.api.get_lead(lead_id),
                self.api.list_activities(
                    lead_id, limit=self.settings.activity_page_limit
                ),
            )
        except FetchError as e:
            if generation != self._generation:
                logger.debug(f"Ignoring failed fetch for superseded focus on lead {lead_id}")
                return None
            await self.unfocus()
            self.error = e.message
            raise

        if generation != self._generation:
            logger.debug(f"Discarding stale detail response for lead {lead_id}")
            return None

        self.lead = lead
        self.activities = activities
        self.state = DetailState.FOCUSED
        logger.debug(f"Focused lead {lead_id} with {len(activities.items)} activities")
        return lead

    async def unfocus(self) -> None:
        """Release the subscription and clear all detail state."""
        self._generation += 1
        async with self._transition:
            await self._release()

    async def _release(self) -> None:
        previous = self.focus_id
        self.focus_id = None
        self.state = DetailState.UNFOCUSED
        self.lead = None
        self.activities = self._empty_timeline()
        self.error = None
        if previous is not None and self.transport is not None:
            await self.transport.unsubscribe(previous)

    # ========== Push merges ==========

    def apply_record_updated(self, lead: Lead) -> bool:
        """Replace the focused record; ignored for any other id."""
        if not self.is_focused_on(lead.id):
            return False
        self.lead = lead
        return True

    def apply_activity_created(self, activity: Activity) -> bool:
        """
        Prepend an activity for the focused lead; ignored for other leads.

        An activity whose id is already on the timeline is replaced in
        place instead, so redelivery never duplicates it.
        """
        if not self.is_focused_on(activity.lead_id):
            return False
        self.activities = self.activities.prepending(activity)
        return True

    async def apply_record_deleted(self, lead_id: int) -> bool:
        """The focused lead no longer exists: drop it and its subscription."""
        if not self.is_focused_on(lead_id):
            return False
        logger.info(f"Focused lead {lead_id} was deleted; unfocusing")
        await self.unfocus()
        return True

    # ========== Local mutations ==========

    async def apply_local_mutation(self, result: ActionResult) -> None:
        """Apply a confirmed action using the server's canonical values."""
        if not result.ok:
            return
        kind = result.action.kind
        if kind == ActionKind.UPDATE_LEAD and isinstance(result.record, Lead):
            self.apply_record_updated(result.record)
        elif kind == ActionKind.DELETE_LEAD and result.deleted_id is not None:
            await self.apply_record_deleted(result.deleted_id)
        elif kind == ActionKind.CREATE_ACTIVITY and isinstance(result.record, Activity):
            self.apply_activity_created(result.record)
        elif kind == ActionKind.UPDATE_ACTIVITY and isinstance(result.record, Activity):
            if self.is_focused_on(result.record.lead_id):
                self.activities = self.activities.replacing(result.record)
        elif kind == ActionKind.DELETE_ACTIVITY and result.deleted_id is not None:
            self.activities = self.activities.removing(result.deleted_id)
