"""
Dashboard Models
Read-only aggregates computed by the server and replaced wholesale.
"""
from pydantic import Field
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from decimal import Decimal

from leadsync.domain.models.lead import CamelModel


class DashboardStats(CamelModel):
    """Dashboard summary. Unknown server fields are kept as extras."""
    total_leads: int = 0
    total_value: Decimal = Decimal("0")
    conversion_rate: float = 0.0
    leads_by_status: Dict[str, int] = Field(default_factory=dict)
    leads_by_source: List[Dict[str, Any]] = Field(default_factory=list)
    monthly_trend: List[Dict[str, Any]] = Field(default_factory=list)
    recent_activities: List[Dict[str, Any]] = Field(default_factory=list)


class PerformanceEntry(CamelModel):
    """Per-user performance rollup row"""
    user_id: Optional[int] = None
    name: Optional[str] = None
    total_leads: int = 0
    won_leads: int = 0
    total_value: Decimal = Decimal("0")


class AggregateSnapshot(CamelModel):
    """
    Snapshot of all dashboard aggregates.

    There is no partial-update path: a new snapshot replaces the old one.
    """
    stats: DashboardStats
    performance: List[PerformanceEntry] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
