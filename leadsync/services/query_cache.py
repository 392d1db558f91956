"""
Lead List Cache
Holds the current page/filter window of leads and reconciles list-level
changes against it.
"""
import logging
from typing import List, Optional

from leadsync.core.config import Settings
from leadsync.core.errors import FetchError
from leadsync.domain.interfaces.crm_api import CRMApi
from leadsync.domain.models.actions import ActionKind, ActionResult
from leadsync.domain.models.lead import Lead
from leadsync.domain.models.pagination import FilterSpec, PageWindow

logger = logging.getLogger(__name__)


class LeadListCache:
    """
    Query cache for the lead list.

    Merge rules:
    - updates replace by id and are ignored when the id is not on the
      current page
    - pushed creates/deletes invalidate the window and refetch it with the
      current filter, since insertion position depends on server-side
      sorting the client cannot reproduce
    - a response is applied only if it answers the most recent request
    """

    def __init__(self, api: CRMApi, settings: Settings):
        self.api = api
        self.settings = settings
        self.filter: Optional[FilterSpec] = None
        self.window: PageWindow[Lead] = PageWindow[Lead](limit=settings.default_page_limit)
        self.is_loading = False
        self.error: Optional[str] = None
        self._request_seq = 0

    # ========== Read access ==========

    @property
    def items(self) -> List[Lead]:
        return list(self.window.items)

    @property
    def total(self) -> int:
        return self.window.total

    @property
    def pages(self) -> int:
        return self.window.pages

    def get(self, lead_id: int) -> Optional[Lead]:
        index = self.window.index_of(lead_id)
        return None if index is None else self.window.items[index]

    # ========== Loading ==========

    async def load(self, filter_spec: Optional[FilterSpec] = None) -> PageWindow[Lead]:
        """
        Fetch a fresh window for the filter.

        Always hits the server. The filter becomes current immediately;
        the window is replaced only when this is still the latest request.

        Raises:
            FetchError: The window keeps its previous contents
        """
        if filter_spec is None:
            filter_spec = self.filter or FilterSpec(limit=self.settings.default_page_limit)

        self._request_seq += 1
        seq = self._request_seq
        self.filter = filter_spec
        self.is_loading = True
        self.error = None

        try:
            window = await self.api.list_leads(filter_spec)
        except FetchError as e:
            if seq == self._request_seq:
                self.is_loading = False
                self.error = e.message
            raise

        if seq != self._request_seq:
            logger.debug(f"Discarding superseded lead list response (request {seq})")
            return window

        self.window = window
        self.is_loading = False
        logger.debug(
            f"Loaded leads page {window.page}/{window.pages} "
            f"({len(window.items)} of {window.total})"
        )
        return window

    async def invalidate(self) -> None:
        """
        Refetch the current window.

        A no-op before the first load. Failures are logged and leave the
        window as it was.
        """
        if self.filter is None:
            return
        try:
            await self.load(self.filter)
        except FetchError as e:
            logger.error(f"Lead list refetch failed: {e.message}")

    # ========== Push merges ==========

    def apply_updated(self, lead: Lead) -> bool:
        """
        Replace the cached lead with the same id.

        Returns False (and changes nothing) when the lead is not on the
        current page.
        """
        if not self.window.contains(lead.id):
            return False
        self.window = self.window.replacing(lead)
        return True

    async def apply_created(self, lead: Lead) -> None:
        logger.debug(f"Lead {lead.id} created elsewhere; refetching list window")
        await self.invalidate()

    async def apply_deleted(self, lead_id: int) -> None:
        logger.debug(f"Lead {lead_id} deleted elsewhere; refetching list window")
        await self.invalidate()

    # ========== Local mutations ==========

    async def apply_local_mutation(self, result: ActionResult) -> None:
        """
        Apply a confirmed lead action using the server's canonical values.

        Update replaces by id, delete removes the row, create refetches.
        """
        if not result.ok:
            return
        kind = result.action.kind
        if kind == ActionKind.UPDATE_LEAD and isinstance(result.record, Lead):
            self.apply_updated(result.record)
        elif kind == ActionKind.DELETE_LEAD and result.deleted_id is not None:
            self.window = self.window.removing(result.deleted_id)
        elif kind == ActionKind.CREATE_LEAD:
            await self.invalidate()

    def clear(self) -> None:
        self._request_seq += 1
        self.filter = None
        self.window = PageWindow[Lead](limit=self.settings.default_page_limit)
        self.is_loading = False
        self.error = None
