"""
Shared fixtures: an in-memory CRM API and a scriptable push channel.
"""
import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from leadsync.core.config import Settings
from leadsync.core.errors import ActionRejected, AuthenticationError, TransportError
from leadsync.domain.interfaces.crm_api import CRMApi
from leadsync.domain.interfaces.push_channel import PushChannel
from leadsync.domain.models.activity import Activity, ActivityInput
from leadsync.domain.models.dashboard import DashboardStats, PerformanceEntry
from leadsync.domain.models.lead import Lead, LeadInput, UserRef
from leadsync.domain.models.pagination import FilterSpec, PageWindow
from leadsync.services.sync_engine import SyncEngine
from leadsync.services.transport_session import TransportSession


def make_lead(lead_id: int, **fields) -> Lead:
    data = {
        "id": lead_id,
        "name": f"Lead {lead_id}",
        "email": f"lead{lead_id}@example.com",
        "company": "Acme",
        "status": "New",
        "estimatedValue": "1000.00",
    }
    data.update(fields)
    return Lead.model_validate(data)


def make_activity(activity_id: int, lead_id: int, **fields) -> Activity:
    data = {
        "id": activity_id,
        "leadId": lead_id,
        "type": "Note",
        "title": f"Activity {activity_id}",
    }
    data.update(fields)
    return Activity.model_validate(data)


class FakeCRMApi(CRMApi):
    """
    In-memory CRM server.

    hold(method, key) returns an asyncio.Event that the matching call
    waits on, so tests can control response ordering. fail(method, error)
    makes every later call of that method raise.
    """

    def __init__(self):
        self.leads: Dict[int, Lead] = {}
        self.activities: Dict[int, Activity] = {}
        self.calls: List[Tuple[str, Any]] = []
        self.token: Optional[str] = None
        self.role = "Admin"
        self.on_update: Optional[Callable[[Lead], Lead]] = None
        self._gates: Dict[Tuple[str, Any], asyncio.Event] = {}
        self._failures: Dict[str, Exception] = {}

    # ---- test controls ----

    def seed_leads(self, count: int) -> None:
        for lead_id in range(1, count + 1):
            self.leads[lead_id] = make_lead(lead_id)

    def hold(self, method: str, key: Any = None) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[(method, key)] = gate
        return gate

    def fail(self, method: str, error: Exception) -> None:
        self._failures[method] = error

    def recover(self, method: str) -> None:
        self._failures.pop(method, None)

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    async def _enter(self, method: str, key: Any = None) -> None:
        self.calls.append((method, key))
        gate = self._gates.get((method, key))
        if gate is not None:
            await gate.wait()
        if method in self._failures:
            raise self._failures[method]

    # ---- leads ----

    async def list_leads(self, filter_spec: FilterSpec) -> PageWindow[Lead]:
        await self._enter("list_leads", filter_spec.page)
        rows = sorted(self.leads.values(), key=lambda lead: lead.id, reverse=True)
        if filter_spec.status:
            rows = [lead for lead in rows if lead.status == filter_spec.status]
        if filter_spec.search:
            needle = filter_spec.search.lower()
            rows = [lead for lead in rows if needle in lead.name.lower()]
        start = (filter_spec.page - 1) * filter_spec.limit
        return PageWindow[Lead](
            items=rows[start:start + filter_spec.limit],
            total=len(rows),
            page=filter_spec.page,
            limit=filter_spec.limit,
        )

    async def get_lead(self, lead_id: int) -> Lead:
        await self._enter("get_lead", lead_id)
        return self.leads[lead_id]

    async def create_lead(self, data: LeadInput) -> Lead:
        await self._enter("create_lead")
        lead_id = max(self.leads, default=0) + 1
        lead = make_lead(lead_id, **data.to_payload())
        self.leads[lead_id] = lead
        return lead

    async def update_lead(self, lead_id: int, data: LeadInput) -> Lead:
        await self._enter("update_lead", lead_id)
        if lead_id not in self.leads:
            raise ActionRejected("Lead not found", status_code=404)
        merged = self.leads[lead_id].model_dump(by_alias=True, mode="json")
        merged.update(data.to_payload())
        merged["updatedAt"] = datetime.now(timezone.utc).isoformat()
        lead = Lead.model_validate(merged)
        if self.on_update:
            lead = self.on_update(lead)
        self.leads[lead_id] = lead
        return lead

    async def delete_lead(self, lead_id: int) -> None:
        await self._enter("delete_lead", lead_id)
        self.leads.pop(lead_id, None)

    # ---- activities ----

    async def list_activities(self, lead_id: int, page: int = 1, limit: int = 50) -> PageWindow[Activity]:
        await self._enter("list_activities", lead_id)
        rows = sorted(
            (a for a in self.activities.values() if a.lead_id == lead_id),
            key=lambda a: a.id,
            reverse=True,
        )
        start = (page - 1) * limit
        return PageWindow[Activity](
            items=rows[start:start + limit], total=len(rows), page=page, limit=limit
        )

    async def create_activity(self, data: ActivityInput) -> Activity:
        await self._enter("create_activity")
        activity_id = max(self.activities, default=0) + 1
        payload = data.to_payload()
        activity = make_activity(activity_id, payload.pop("leadId"), **payload)
        self.activities[activity_id] = activity
        return activity

    async def update_activity(self, activity_id: int, data: ActivityInput) -> Activity:
        await self._enter("update_activity", activity_id)
        merged = self.activities[activity_id].model_dump(by_alias=True, mode="json")
        merged.update(data.to_payload())
        activity = Activity.model_validate(merged)
        self.activities[activity_id] = activity
        return activity

    async def delete_activity(self, activity_id: int) -> None:
        await self._enter("delete_activity", activity_id)
        self.activities.pop(activity_id, None)

    # ---- dashboard ----

    async def get_dashboard_stats(self) -> DashboardStats:
        await self._enter("get_dashboard_stats")
        return DashboardStats(
            total_leads=len(self.leads),
            total_value=sum((lead.estimated_value for lead in self.leads.values()), Decimal("0")),
        )

    async def get_performance(self) -> List[PerformanceEntry]:
        await self._enter("get_performance")
        return [PerformanceEntry(user_id=1, name="Admin", total_leads=len(self.leads))]

    # ---- auth ----

    async def login(self, email: str, password: str) -> Tuple[str, UserRef]:
        await self._enter("login")
        if password != "secret":
            raise AuthenticationError("Invalid credentials", status_code=401)
        return f"token-{email}", UserRef(id=1, name="Alex", email=email, role=self.role)

    async def register(self, name, email, password, role=None) -> Tuple[str, UserRef]:
        await self._enter("register")
        return f"token-{email}", UserRef(id=2, name=name, email=email, role=role or "Sales Rep")

    async def get_current_user(self) -> UserRef:
        await self._enter("get_current_user")
        if self.token != "valid-token":
            raise AuthenticationError("Invalid token", status_code=401)
        return UserRef(id=1, name="Alex", email="alex@example.com", role=self.role)

    async def list_users(self) -> List[UserRef]:
        await self._enter("list_users")
        return [UserRef(id=1, name="Alex", role="Admin"), UserRef(id=2, name="Sam", role="Sales Rep")]

    def set_token(self, token: Optional[str]) -> None:
        self.token = token


class FakePushChannel(PushChannel):
    """
    Scriptable push channel that records emits and can simulate drops.

    Follows python-socketio ordering: the namespace is ready before the
    connect handlers run, but connected only reports True once they have
    returned. emit() yields to the event loop like a real network write.
    """

    def __init__(self, fail_connect: bool = False):
        self.fail_connect = fail_connect
        self.url: Optional[str] = None
        self.token: Optional[str] = None
        self.emitted: List[Tuple[str, Any]] = []
        self.disconnect_calls = 0
        self._connected = False
        self._ready = False
        self._handlers: Dict[str, List[Callable]] = {}
        self._connect_handlers: List[Callable] = []
        self._disconnect_handlers: List[Callable] = []
        self._error_handlers: List[Callable] = []

    async def connect(self, url: str, token: str) -> None:
        self.url = url
        self.token = token
        if self.fail_connect:
            raise TransportError(f"Could not connect to {url}")
        await self.reconnect()

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        await self.drop()

    async def emit(self, event: str, data: Any = None) -> None:
        if not self._ready:
            raise TransportError(f"Cannot emit {event}: socket not connected")
        self.emitted.append((event, data))
        await asyncio.sleep(0)

    def on(self, event: str, handler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def on_connect(self, handler) -> None:
        self._connect_handlers.append(handler)

    def on_disconnect(self, handler) -> None:
        self._disconnect_handlers.append(handler)

    def on_error(self, handler) -> None:
        self._error_handlers.append(handler)

    @property
    def connected(self) -> bool:
        return self._connected

    # ---- simulation ----

    async def _fire(self, handlers, *args) -> None:
        for handler in list(handlers):
            result = handler(*args)
            if asyncio.iscoroutine(result):
                await result

    async def deliver(self, event: str, data: Any) -> None:
        await self._fire(self._handlers.get(event, []), data)

    async def drop(self) -> None:
        self._ready = False
        self._connected = False
        await self._fire(self._disconnect_handlers)

    async def reconnect(self) -> None:
        self._ready = True
        await self._fire(self._connect_handlers)
        self._connected = True

    async def raise_error(self, error: Any) -> None:
        await self._fire(self._error_handlers, error)

    def emitted_events(self, event: str) -> List[Any]:
        return [data for name, data in self.emitted if name == event]


@pytest.fixture
def settings():
    return Settings(api_url="http://crm.test/api", _env_file=None)


@pytest.fixture
def api():
    return FakeCRMApi()


@pytest.fixture
def channels():
    return []


@pytest.fixture
def channel_factory(channels):
    def factory():
        channel = FakePushChannel()
        channels.append(channel)
        return channel
    return factory


@pytest.fixture
def transport(settings, channel_factory):
    return TransportSession(settings, channel_factory=channel_factory)


@pytest.fixture
def engine(settings, api, transport):
    return SyncEngine(settings, api, transport)


@pytest.fixture
def lead_factory():
    return make_lead


@pytest.fixture
def activity_factory():
    return make_activity


@pytest.fixture
def failing_channel_factory(channels):
    def factory():
        channel = FakePushChannel(fail_connect=True)
        channels.append(channel)
        return channel
    return factory
