"""
Push Event Schemas
Defines the named events exchanged over the socket.io push channel

Inbound events are decoded here, at the transport boundary, into a closed
set of typed events before they reach the reconciler.
"""
from pydantic import BaseModel, Field, ValidationError, model_validator
from typing import Any, Dict, Literal, Union
from datetime import datetime, timezone
from enum import Enum

from leadsync.core.errors import MalformedEventError
from leadsync.domain.models.activity import Activity
from leadsync.domain.models.lead import Lead


class PushEventType(str, Enum):
    """Inbound event names consumed by the client"""
    LEAD_CREATED = "lead:created"
    LEAD_UPDATED = "lead:updated"
    LEAD_DELETED = "lead:deleted"
    ACTIVITY_CREATED = "activity:created"


class SubscriptionEventType(str, Enum):
    """Outbound per-record interest registration"""
    LEAD_SUBSCRIBE = "lead:subscribe"
    LEAD_UNSUBSCRIBE = "lead:unsubscribe"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# LEAD EVENTS
# ============================================================================

class LeadCreatedEvent(BaseModel):
    """Another actor created a lead. Carries the full record."""
    type: Literal[PushEventType.LEAD_CREATED] = PushEventType.LEAD_CREATED
    lead: Lead
    received_at: datetime = Field(default_factory=_utcnow)


class LeadUpdatedEvent(BaseModel):
    """A lead changed. Carries the full post-update record, not a diff."""
    type: Literal[PushEventType.LEAD_UPDATED] = PushEventType.LEAD_UPDATED
    lead: Lead
    received_at: datetime = Field(default_factory=_utcnow)


class LeadDeletedEvent(BaseModel):
    """
    A lead was removed.

    The server may send {"id": n}, {"leadId": n}, {"lead": {...}} or a
    bare id; all are normalized to lead_id.
    """
    type: Literal[PushEventType.LEAD_DELETED] = PushEventType.LEAD_DELETED
    lead_id: int
    received_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="before")
    @classmethod
    def _normalize_identity(cls, data: Any) -> Any:
        if isinstance(data, dict) and "lead_id" not in data:
            lead = data.get("lead")
            if isinstance(lead, dict) and "id" in lead:
                return {**data, "lead_id": lead["id"]}
            for key in ("leadId", "id"):
                if key in data:
                    return {**data, "lead_id": data[key]}
        return data


# ============================================================================
# ACTIVITY EVENTS
# ============================================================================

class ActivityCreatedEvent(BaseModel):
    """A new activity was logged against a lead"""
    type: Literal[PushEventType.ACTIVITY_CREATED] = PushEventType.ACTIVITY_CREATED
    activity: Activity
    received_at: datetime = Field(default_factory=_utcnow)


# ============================================================================
# EVENT UTILITIES
# ============================================================================

PushEvent = Union[
    LeadCreatedEvent,
    LeadUpdatedEvent,
    LeadDeletedEvent,
    ActivityCreatedEvent,
]

# Key under which each event nests its record, when the server wraps it
_ENVELOPE_KEYS = {
    PushEventType.LEAD_CREATED: "lead",
    PushEventType.LEAD_UPDATED: "lead",
    PushEventType.ACTIVITY_CREATED: "activity",
}


def parse_event(event_name: str, data: Any) -> PushEvent:
    """
    Decode an inbound push event into its typed form

    Args:
        event_name: socket.io event name (e.g. "lead:updated")
        data: Parsed JSON payload

    Returns:
        Typed push event

    Raises:
        MalformedEventError: If the name is unknown or the payload is
            missing its identity or fails validation
    """
    event_map = {
        PushEventType.LEAD_CREATED: LeadCreatedEvent,
        PushEventType.LEAD_UPDATED: LeadUpdatedEvent,
        PushEventType.LEAD_DELETED: LeadDeletedEvent,
        PushEventType.ACTIVITY_CREATED: ActivityCreatedEvent,
    }

    try:
        event_type = PushEventType(event_name)
    except ValueError:
        raise MalformedEventError(f"Unknown push event: {event_name}", event_name=event_name)

    event_class = event_map[event_type]

    if event_type == PushEventType.LEAD_DELETED:
        if isinstance(data, bool) or not isinstance(data, (dict, int)):
            raise MalformedEventError(
                f"{event_name} payload must be an object or id", event_name=event_name
            )
        body: Dict[str, Any] = {"lead_id": data} if isinstance(data, int) else data
    else:
        if not isinstance(data, dict):
            raise MalformedEventError(
                f"{event_name} payload must be an object", event_name=event_name
            )
        key = _ENVELOPE_KEYS[event_type]
        record = data.get(key, data)
        if not isinstance(record, dict) or record.get("id") is None:
            raise MalformedEventError(
                f"{event_name} payload is missing its {key} id", event_name=event_name
            )
        body = {key: record}

    try:
        return event_class.model_validate(body)
    except ValidationError as e:
        raise MalformedEventError(
            f"Invalid {event_name} payload: {e.error_count()} validation error(s)",
            event_name=event_name,
        ) from e
