"""
CRM REST Client
httpx implementation of the CRM API boundary.

Every response body is an envelope {"data": ...}; error bodies carry
{"message": "..."}.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple, Type
import httpx
from pydantic import ValidationError

from leadsync.core.config import Settings
from leadsync.core.errors import ActionRejected, AuthenticationError, FetchError, SyncError
from leadsync.domain.interfaces.crm_api import CRMApi
from leadsync.domain.models.activity import Activity, ActivityInput
from leadsync.domain.models.dashboard import DashboardStats, PerformanceEntry
from leadsync.domain.models.lead import Lead, LeadInput, UserRef
from leadsync.domain.models.pagination import FilterSpec, PageWindow

logger = logging.getLogger(__name__)


class CRMApiClient(CRMApi):
    """
    CRM API client using bearer-token auth.

    A fresh httpx.AsyncClient is opened per request; pass `transport` to
    route requests somewhere other than the network (tests use
    httpx.MockTransport).
    """

    def __init__(
        self,
        settings: Settings,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = settings.api_url.rstrip("/")
        self.timeout = settings.request_timeout
        self.activity_limit = settings.activity_page_limit
        self._token = token
        self._transport = transport

    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport
        )

    async def _request(
        self,
        method: str,
        path: str,
        error_class: Type[SyncError],
        fallback_message: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Issue one request and unwrap the {"data": ...} envelope.

        Raises:
            error_class: On transport failure or a non-2xx status
        """
        try:
            async with self._client() as client:
                response = await client.request(
                    method,
                    path,
                    params=params,
                    json=json,
                    headers=self._get_headers()
                )
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise error_class(fallback_message) from e

        if response.status_code >= 400:
            message = self._error_message(response) or fallback_message
            logger.error(f"{method} {path} returned {response.status_code}: {message}")
            raise error_class(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None

        try:
            body = response.json()
        except ValueError as e:
            raise error_class(fallback_message, status_code=response.status_code) from e

        return body.get("data") if isinstance(body, dict) else None

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            return body.get("message")
        return None

    @staticmethod
    def _parse(model, payload: Any, error_class: Type[SyncError], message: str):
        """Validate a payload, mapping schema mismatches to the caller's error type."""
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.error(f"{message}: unexpected response shape ({e.error_count()} errors)")
            raise error_class(message) from e

    # ========== Leads ==========

    async def list_leads(self, filter_spec: FilterSpec) -> PageWindow[Lead]:
        data = await self._request(
            "GET", "/leads", FetchError, "Failed to fetch leads",
            params=filter_spec.to_params()
        ) or {}
        try:
            return PageWindow[Lead].from_payload(
                data.get("leads", []),
                data.get("pagination"),
                default_page=filter_spec.page,
                default_limit=filter_spec.limit
            )
        except ValidationError as e:
            raise FetchError("Failed to fetch leads") from e

    async def get_lead(self, lead_id: int) -> Lead:
        data = await self._request("GET", f"/leads/{lead_id}", FetchError, "Failed to fetch lead") or {}
        return self._parse(Lead, data.get("lead"), FetchError, "Failed to fetch lead")

    async def create_lead(self, data: LeadInput) -> Lead:
        body = await self._request(
            "POST", "/leads", ActionRejected, "Failed to create lead",
            json=data.to_payload()
        ) or {}
        return self._parse(Lead, body.get("lead"), ActionRejected, "Failed to create lead")

    async def update_lead(self, lead_id: int, data: LeadInput) -> Lead:
        body = await self._request(
            "PUT", f"/leads/{lead_id}", ActionRejected, "Failed to update lead",
            json=data.to_payload()
        ) or {}
        return self._parse(Lead, body.get("lead"), ActionRejected, "Failed to update lead")

    async def delete_lead(self, lead_id: int) -> None:
        await self._request("DELETE", f"/leads/{lead_id}", ActionRejected, "Failed to delete lead")

    # ========== Activities ==========

    async def list_activities(
        self,
        lead_id: int,
        page: int = 1,
        limit: Optional[int] = None
    ) -> PageWindow[Activity]:
        limit = limit or self.activity_limit
        data = await self._request(
            "GET", "/activities", FetchError, "Failed to fetch activities",
            params={"leadId": lead_id, "page": page, "limit": limit}
        ) or {}
        try:
            return PageWindow[Activity].from_payload(
                data.get("activities", []),
                data.get("pagination"),
                default_page=page,
                default_limit=limit
            )
        except ValidationError as e:
            raise FetchError("Failed to fetch activities") from e

    async def create_activity(self, data: ActivityInput) -> Activity:
        body = await self._request(
            "POST", "/activities", ActionRejected, "Failed to create activity",
            json=data.to_payload()
        ) or {}
        return self._parse(Activity, body.get("activity"), ActionRejected, "Failed to create activity")

    async def update_activity(self, activity_id: int, data: ActivityInput) -> Activity:
        body = await self._request(
            "PUT", f"/activities/{activity_id}", ActionRejected, "Failed to update activity",
            json=data.to_payload()
        ) or {}
        return self._parse(Activity, body.get("activity"), ActionRejected, "Failed to update activity")

    async def delete_activity(self, activity_id: int) -> None:
        await self._request(
            "DELETE", f"/activities/{activity_id}", ActionRejected, "Failed to delete activity"
        )

    # ========== Dashboard ==========

    async def get_dashboard_stats(self) -> DashboardStats:
        data = await self._request(
            "GET", "/dashboard/stats", FetchError, "Failed to fetch dashboard stats"
        )
        return self._parse(DashboardStats, data or {}, FetchError, "Failed to fetch dashboard stats")

    async def get_performance(self) -> List[PerformanceEntry]:
        data = await self._request(
            "GET", "/dashboard/performance", FetchError, "Failed to fetch performance"
        ) or {}
        return [
            self._parse(PerformanceEntry, row, FetchError, "Failed to fetch performance")
            for row in data.get("performance", [])
        ]

    # ========== Auth ==========

    def _parse_auth(self, data: Any, message: str) -> Tuple[str, UserRef]:
        data = data or {}
        token = data.get("token")
        if not token:
            raise AuthenticationError(message)
        return token, self._parse(UserRef, data.get("user"), AuthenticationError, message)

    async def login(self, email: str, password: str) -> Tuple[str, UserRef]:
        data = await self._request(
            "POST", "/auth/login", AuthenticationError, "Login failed",
            json={"email": email, "password": password}
        )
        return self._parse_auth(data, "Login failed")

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: Optional[str] = None
    ) -> Tuple[str, UserRef]:
        payload = {"name": name, "email": email, "password": password}
        if role:
            payload["role"] = role
        data = await self._request(
            "POST", "/auth/register", AuthenticationError, "Registration failed",
            json=payload
        )
        return self._parse_auth(data, "Registration failed")

    async def get_current_user(self) -> UserRef:
        if not self._token:
            raise AuthenticationError("No token found")
        data = await self._request(
            "GET", "/auth/me", AuthenticationError, "Failed to get user"
        ) or {}
        return self._parse(UserRef, data.get("user"), AuthenticationError, "Failed to get user")

    async def list_users(self) -> List[UserRef]:
        data = await self._request("GET", "/auth/users", FetchError, "Failed to get users") or {}
        return [
            self._parse(UserRef, user, FetchError, "Failed to get users")
            for user in data.get("users", [])
        ]
