"""
Action Pipeline
Submits create/update/delete actions and commits the server's canonical
result into the owning caches.
"""
import logging
from typing import List, Optional, Tuple, Union

from leadsync.core.errors import ActionRejected
from leadsync.domain.interfaces.crm_api import CRMApi
from leadsync.domain.models.actions import (
    Action,
    ActionKind,
    ActionResult,
    CreateActivity,
    CreateLead,
    DeleteActivity,
    DeleteLead,
    UpdateActivity,
    UpdateLead,
)
from leadsync.domain.models.activity import Activity
from leadsync.domain.models.lead import Lead
from leadsync.services.aggregate_cache import DashboardCache
from leadsync.services.detail_cache import LeadDetailCache
from leadsync.services.query_cache import LeadListCache

logger = logging.getLogger(__name__)

LEAD_ACTIONS = {ActionKind.CREATE_LEAD, ActionKind.UPDATE_LEAD, ActionKind.DELETE_LEAD}


class ActionPipeline:
    """
    Outbound mutation pipeline.

    Caches change only after the server confirms, and always with the
    record the server returned (server value wins over the proposed one).
    A rejection leaves every cache untouched and comes back as a failed
    ActionResult; nothing is retried.
    """

    def __init__(
        self,
        api: CRMApi,
        lead_list: LeadListCache,
        lead_detail: LeadDetailCache,
        dashboard: DashboardCache
    ):
        self.api = api
        self.lead_list = lead_list
        self.lead_detail = lead_detail
        self.dashboard = dashboard
        self.pending: List[Action] = []

    def is_pending(self, action: Action) -> bool:
        return any(pending is action for pending in self.pending)

    async def submit(self, action: Action) -> ActionResult:
        """
        Send an action to the server.

        Returns:
            ActionResult with the canonical record on success, or the
            ActionRejected error on failure
        """
        self.pending.append(action)
        try:
            record, deleted_id = await self._execute(action)
        except ActionRejected as e:
            logger.warning(f"{action.kind.value} rejected: {e.message}")
            return ActionResult.failure(action, e)
        finally:
            self.pending = [pending for pending in self.pending if pending is not action]

        result = ActionResult.success(action, record=record, deleted_id=deleted_id)
        await self._commit(result)
        return result

    async def _execute(
        self,
        action: Action
    ) -> Tuple[Optional[Union[Lead, Activity]], Optional[int]]:
        if isinstance(action, CreateLead):
            return await self.api.create_lead(action.data), None
        if isinstance(action, UpdateLead):
            return await self.api.update_lead(action.lead_id, action.data), None
        if isinstance(action, DeleteLead):
            await self.api.delete_lead(action.lead_id)
            return None, action.lead_id
        if isinstance(action, CreateActivity):
            return await self.api.create_activity(action.data), None
        if isinstance(action, UpdateActivity):
            return await self.api.update_activity(action.activity_id, action.data), None
        if isinstance(action, DeleteActivity):
            await self.api.delete_activity(action.activity_id)
            return None, action.activity_id
        raise ActionRejected(f"Unsupported action: {type(action).__name__}")

    async def _commit(self, result: ActionResult) -> None:
        if result.action.kind in LEAD_ACTIONS:
            await self.lead_list.apply_local_mutation(result)
            self.dashboard.mark_stale()
        await self.lead_detail.apply_local_mutation(result)
