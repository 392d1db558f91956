"""
Action Models
Outbound mutations submitted through the action pipeline, and the
success/failure result each submission produces.
"""
from dataclasses import dataclass
from pydantic import BaseModel, Field
from typing import Literal, Optional, Union
from enum import Enum

from leadsync.core.errors import ActionRejected
from leadsync.domain.models.activity import Activity, ActivityInput
from leadsync.domain.models.lead import Lead, LeadInput


class ActionKind(str, Enum):
    """All supported write actions"""
    CREATE_LEAD = "create_lead"
    UPDATE_LEAD = "update_lead"
    DELETE_LEAD = "delete_lead"
    CREATE_ACTIVITY = "create_activity"
    UPDATE_ACTIVITY = "update_activity"
    DELETE_ACTIVITY = "delete_activity"


class CreateLead(BaseModel):
    kind: Literal[ActionKind.CREATE_LEAD] = ActionKind.CREATE_LEAD
    data: LeadInput


class UpdateLead(BaseModel):
    kind: Literal[ActionKind.UPDATE_LEAD] = ActionKind.UPDATE_LEAD
    lead_id: int = Field(..., ge=1)
    data: LeadInput


class DeleteLead(BaseModel):
    kind: Literal[ActionKind.DELETE_LEAD] = ActionKind.DELETE_LEAD
    lead_id: int = Field(..., ge=1)


class CreateActivity(BaseModel):
    kind: Literal[ActionKind.CREATE_ACTIVITY] = ActionKind.CREATE_ACTIVITY
    data: ActivityInput


class UpdateActivity(BaseModel):
    kind: Literal[ActionKind.UPDATE_ACTIVITY] = ActionKind.UPDATE_ACTIVITY
    activity_id: int = Field(..., ge=1)
    data: ActivityInput


class DeleteActivity(BaseModel):
    kind: Literal[ActionKind.DELETE_ACTIVITY] = ActionKind.DELETE_ACTIVITY
    activity_id: int = Field(..., ge=1)


Action = Union[
    CreateLead,
    UpdateLead,
    DeleteLead,
    CreateActivity,
    UpdateActivity,
    DeleteActivity,
]


@dataclass
class ActionResult:
    """
    Outcome of a submitted action.

    On success, record holds the server's canonical record (None for
    deletes, where deleted_id is set). On failure, error holds the
    rejection and no cache was touched.
    """
    action: Action
    record: Optional[Union[Lead, Activity]] = None
    deleted_id: Optional[int] = None
    error: Optional[ActionRejected] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(
        cls,
        action: Action,
        record: Optional[Union[Lead, Activity]] = None,
        deleted_id: Optional[int] = None,
    ) -> "ActionResult":
        return cls(action=action, record=record, deleted_id=deleted_id)

    @classmethod
    def failure(cls, action: Action, error: ActionRejected) -> "ActionResult":
        return cls(action=action, error=error)
