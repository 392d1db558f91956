"""
Lead Domain Models
Server-owned lead records mirrored by the client caches.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum


class LeadStatus(str, Enum):
    """Sales pipeline stage"""
    NEW = "New"
    CONTACTED = "Contacted"
    QUALIFIED = "Qualified"
    PROPOSAL = "Proposal"
    NEGOTIATION = "Negotiation"
    WON = "Won"
    LOST = "Lost"


class UserRole(str, Enum):
    """Account role as reported by the server"""
    ADMIN = "Admin"
    MANAGER = "Manager"
    SALES_REP = "Sales Rep"


class CamelModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class UserRef(CamelModel):
    """Reference to a CRM user embedded in other records"""
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None


class Lead(CamelModel):
    """
    Lead record.

    Identity is the server-assigned integer id; every cache merges leads
    by comparing ids, never by position.
    """
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    status: LeadStatus = LeadStatus.NEW
    source: Optional[str] = None
    estimated_value: Decimal = Field(default=Decimal("0"), ge=0)
    assigned_to_id: Optional[int] = None
    assigned_to: Optional[UserRef] = None
    created_by_id: Optional[int] = None
    created_by: Optional[UserRef] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeadInput(CamelModel):
    """
    Proposed lead values for create/update actions.

    Only fields explicitly set are sent, so an update carries just the
    changed attributes.
    """
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    status: Optional[LeadStatus] = None
    source: Optional[str] = None
    estimated_value: Optional[Decimal] = Field(default=None, ge=0)
    assigned_to_id: Optional[int] = None
    notes: Optional[str] = None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")
