"""
CRM API Interface
Abstract REST boundary consumed by the caches and the action pipeline
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from leadsync.domain.models.activity import Activity, ActivityInput
from leadsync.domain.models.dashboard import DashboardStats, PerformanceEntry
from leadsync.domain.models.lead import Lead, LeadInput, UserRef
from leadsync.domain.models.pagination import FilterSpec, PageWindow


class CRMApi(ABC):
    """
    Abstract base class for the CRM REST API.

    Reads raise FetchError, writes raise ActionRejected and auth calls
    raise AuthenticationError. Implementations never return partial
    results.
    """

    # ========== Leads ==========

    @abstractmethod
    async def list_leads(self, filter_spec: FilterSpec) -> PageWindow[Lead]:
        """Fetch one page of leads matching the filter."""
        pass

    @abstractmethod
    async def get_lead(self, lead_id: int) -> Lead:
        """Fetch the full lead record."""
        pass

    @abstractmethod
    async def create_lead(self, data: LeadInput) -> Lead:
        """Create a lead and return the canonical record."""
        pass

    @abstractmethod
    async def update_lead(self, lead_id: int, data: LeadInput) -> Lead:
        """Update a lead and return the canonical record."""
        pass

    @abstractmethod
    async def delete_lead(self, lead_id: int) -> None:
        """Delete a lead."""
        pass

    # ========== Activities ==========

    @abstractmethod
    async def list_activities(
        self,
        lead_id: int,
        page: int = 1,
        limit: int = 50
    ) -> PageWindow[Activity]:
        """Fetch a lead's activity timeline, newest first."""
        pass

    @abstractmethod
    async def create_activity(self, data: ActivityInput) -> Activity:
        pass

    @abstractmethod
    async def update_activity(self, activity_id: int, data: ActivityInput) -> Activity:
        pass

    @abstractmethod
    async def delete_activity(self, activity_id: int) -> None:
        pass

    # ========== Dashboard ==========

    @abstractmethod
    async def get_dashboard_stats(self) -> DashboardStats:
        pass

    @abstractmethod
    async def get_performance(self) -> List[PerformanceEntry]:
        pass

    # ========== Auth ==========

    @abstractmethod
    async def login(self, email: str, password: str) -> Tuple[str, UserRef]:
        """Return (token, user)."""
        pass

    @abstractmethod
    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: Optional[str] = None
    ) -> Tuple[str, UserRef]:
        """Return (token, user)."""
        pass

    @abstractmethod
    async def get_current_user(self) -> UserRef:
        pass

    @abstractmethod
    async def list_users(self) -> List[UserRef]:
        pass

    @abstractmethod
    def set_token(self, token: Optional[str]) -> None:
        """Set (or clear) the bearer token used for subsequent requests."""
        pass
