"""Domain models"""

# Records
from .lead import (
    LeadStatus,
    UserRole,
    UserRef,
    Lead,
    LeadInput,
)
from .activity import (
    ActivityType,
    Activity,
    ActivityInput,
)

# Collections and aggregates
from .pagination import (
    PageWindow,
    FilterSpec,
)
from .dashboard import (
    DashboardStats,
    PerformanceEntry,
    AggregateSnapshot,
)

# Push events
from .push_events import (
    PushEventType,
    SubscriptionEventType,
    LeadCreatedEvent,
    LeadUpdatedEvent,
    LeadDeletedEvent,
    ActivityCreatedEvent,
    PushEvent,
    parse_event,
)

# Actions
from .actions import (
    ActionKind,
    CreateLead,
    UpdateLead,
    DeleteLead,
    CreateActivity,
    UpdateActivity,
    DeleteActivity,
    Action,
    ActionResult,
)

__all__ = [
    "LeadStatus",
    "UserRole",
    "UserRef",
    "Lead",
    "LeadInput",
    "ActivityType",
    "Activity",
    "ActivityInput",
    "PageWindow",
    "FilterSpec",
    "DashboardStats",
    "PerformanceEntry",
    "AggregateSnapshot",
    "PushEventType",
    "SubscriptionEventType",
    "LeadCreatedEvent",
    "LeadUpdatedEvent",
    "LeadDeletedEvent",
    "ActivityCreatedEvent",
    "PushEvent",
    "parse_event",
    "ActionKind",
    "CreateLead",
    "UpdateLead",
    "DeleteLead",
    "CreateActivity",
    "UpdateActivity",
    "DeleteActivity",
    "Action",
    "ActionResult",
]
