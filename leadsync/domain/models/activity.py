"""
Activity Domain Models
Timeline entries attached to a single lead.
"""
from pydantic import AliasChoices, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from leadsync.domain.models.lead import CamelModel, UserRef


class ActivityType(str, Enum):
    """Kind of timeline entry"""
    NOTE = "Note"
    CALL = "Call"
    MEETING = "Meeting"
    EMAIL = "Email"
    STATUS_CHANGE = "Status Change"


class Activity(CamelModel):
    """
    Activity on a lead's timeline.

    lead_id is fixed at creation; timelines are kept newest-first.
    """
    id: int
    lead_id: int
    type: ActivityType = ActivityType.NOTE
    title: str = ""
    description: Optional[str] = None
    author: Optional[UserRef] = Field(
        default=None,
        validation_alias=AliasChoices("author", "user"),
    )
    created_at: Optional[datetime] = None


class ActivityInput(CamelModel):
    """Proposed activity values for create/update actions"""
    lead_id: Optional[int] = None
    type: Optional[ActivityType] = None
    title: Optional[str] = None
    description: Optional[str] = None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")
