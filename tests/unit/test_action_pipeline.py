"""
Unit tests for the action pipeline
"""
import asyncio
from decimal import Decimal

import pytest

from leadsync.core.errors import ActionRejected
from leadsync.domain.models import (
    ActivityInput,
    CreateActivity,
    CreateLead,
    DeleteActivity,
    DeleteLead,
    FilterSpec,
    LeadInput,
    LeadStatus,
    UpdateActivity,
    UpdateLead,
)


@pytest.fixture
def loaded(engine, api):
    async def _load():
        api.seed_leads(12)
        await engine.lead_list.load(FilterSpec(page=1, limit=10))
        return engine
    return _load


class TestLeadActions:
    """Tests for create/update/delete lead"""

    @pytest.mark.asyncio
    async def test_update_commits_server_values(self, loaded, api):
        """The cache holds what the server returned, not what was proposed"""
        engine = await loaded()

        def recalculate(lead):
            return lead.model_copy(update={"estimated_value": Decimal("25000.00")})

        api.on_update = recalculate
        action = UpdateLead(lead_id=3, data=LeadInput(status=LeadStatus.WON, estimated_value=Decimal("1")))

        result = await engine.actions.submit(action)

        assert result.ok is True
        assert result.record.estimated_value == Decimal("25000.00")
        cached = engine.lead_list.get(3)
        assert cached.status == LeadStatus.WON
        assert cached.estimated_value == Decimal("25000.00")

    @pytest.mark.asyncio
    async def test_rejected_update_leaves_caches_untouched(self, loaded, api):
        engine = await loaded()
        before = engine.lead_list.window.model_copy(deep=True)
        api.fail("update_lead", ActionRejected("Forbidden", status_code=403))

        result = await engine.actions.submit(UpdateLead(lead_id=3, data=LeadInput(name="Nope")))

        assert result.ok is False
        assert result.error.message == "Forbidden"
        assert result.error.status_code == 403
        assert engine.lead_list.window == before

    @pytest.mark.asyncio
    async def test_update_of_focused_lead(self, loaded):
        engine = await loaded()
        await engine.lead_detail.focus(5)

        await engine.actions.submit(UpdateLead(lead_id=5, data=LeadInput(company="Globex")))

        assert engine.lead_detail.lead.company == "Globex"

    @pytest.mark.asyncio
    async def test_delete_removes_row(self, loaded):
        engine = await loaded()
        assert engine.lead_list.get(12) is not None

        result = await engine.actions.submit(DeleteLead(lead_id=12))

        assert result.ok is True
        assert result.deleted_id == 12
        assert engine.lead_list.get(12) is None
        assert engine.lead_list.total == 11

    @pytest.mark.asyncio
    async def test_delete_of_focused_lead_unfocuses(self, loaded):
        engine = await loaded()
        await engine.lead_detail.focus(12)

        await engine.actions.submit(DeleteLead(lead_id=12))

        assert engine.lead_detail.lead is None

    @pytest.mark.asyncio
    async def test_create_refetches_window(self, loaded, api):
        engine = await loaded()

        result = await engine.actions.submit(CreateLead(data=LeadInput(name="Fresh")))

        assert result.record.id == 13
        assert engine.lead_list.items[0].name == "Fresh"
        assert api.count("list_leads") == 2

    @pytest.mark.asyncio
    async def test_lead_action_marks_aggregates_stale(self, loaded):
        engine = await loaded()
        await engine.dashboard.refresh()

        await engine.actions.submit(UpdateLead(lead_id=1, data=LeadInput(notes="call back")))

        assert engine.dashboard.stale is True


class TestActivityActions:
    """Tests for create/update/delete activity"""

    @pytest.mark.asyncio
    async def test_create_activity_prepends_on_focused_timeline(self, loaded, api, activity_factory):
        engine = await loaded()
        api.activities[1] = activity_factory(1, 4)
        await engine.lead_detail.focus(4)

        result = await engine.actions.submit(
            CreateActivity(data=ActivityInput(lead_id=4, type="Call", title="Intro call"))
        )

        assert result.ok is True
        assert engine.lead_detail.activity_items[0].title == "Intro call"
        assert engine.lead_detail.activities.total == 2

    @pytest.mark.asyncio
    async def test_update_activity_replaces_in_place(self, loaded, api, activity_factory):
        engine = await loaded()
        api.activities[1] = activity_factory(1, 4)
        api.activities[2] = activity_factory(2, 4)
        await engine.lead_detail.focus(4)

        await engine.actions.submit(UpdateActivity(activity_id=1, data=ActivityInput(title="Edited")))

        assert [a.id for a in engine.lead_detail.activity_items] == [2, 1]
        assert engine.lead_detail.activity_items[1].title == "Edited"

    @pytest.mark.asyncio
    async def test_delete_activity(self, loaded, api, activity_factory):
        engine = await loaded()
        api.activities[1] = activity_factory(1, 4)
        await engine.lead_detail.focus(4)

        await engine.actions.submit(DeleteActivity(activity_id=1))

        assert engine.lead_detail.activity_items == []
        assert engine.lead_detail.activities.total == 0


class TestPending:

    @pytest.mark.asyncio
    async def test_action_is_pending_until_confirmed(self, loaded, api):
        engine = await loaded()
        gate = api.hold("update_lead", 2)
        action = UpdateLead(lead_id=2, data=LeadInput(name="Slow"))

        task = asyncio.create_task(engine.actions.submit(action))
        await asyncio.sleep(0)
        assert engine.actions.is_pending(action) is True

        gate.set()
        await task
        assert engine.actions.is_pending(action) is False
