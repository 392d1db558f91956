"""
Pagination Models
PageWindow holds one page of a server-side collection; FilterSpec
describes which page/filter window is requested.
"""
import math
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Dict, Generic, List, Optional, TypeVar

from leadsync.domain.models.lead import LeadStatus

T = TypeVar("T")


class PageWindow(BaseModel, Generic[T]):
    """
    Current page of a collection plus pagination metadata.

    pages is always derived from total and limit so that it cannot
    disagree with them.
    """
    items: List[T] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)

    @model_validator(mode="after")
    def _check_items_fit_limit(self):
        if len(self.items) > self.limit:
            raise ValueError(
                f"Page holds {len(self.items)} items but limit is {self.limit}"
            )
        return self

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    def index_of(self, item_id: int) -> Optional[int]:
        """
        Position of the item with the given id, or None.

        Linear scan: n is bounded by the page size.
        """
        for index, item in enumerate(self.items):
            if getattr(item, "id", None) == item_id:
                return index
        return None

    def contains(self, item_id: int) -> bool:
        return self.index_of(item_id) is not None

    def replacing(self, item: T) -> "PageWindow[T]":
        """Copy with the item of the same id replaced; unchanged if absent."""
        index = self.index_of(getattr(item, "id"))
        if index is None:
            return self
        items = list(self.items)
        items[index] = item
        return self.model_copy(update={"items": items})

    def prepending(self, item: T) -> "PageWindow[T]":
        """
        Copy with the item at position 0, or replaced in place if its id
        is already present.
        """
        if self.contains(getattr(item, "id")):
            return self.replacing(item)
        items = [item] + list(self.items)
        if len(items) > self.limit:
            items = items[:self.limit]
        return self.model_copy(update={"items": items, "total": self.total + 1})

    def removing(self, item_id: int) -> "PageWindow[T]":
        """Copy without the item of the given id; unchanged if absent."""
        index = self.index_of(item_id)
        if index is None:
            return self
        items = [item for item in self.items if getattr(item, "id", None) != item_id]
        return self.model_copy(update={"items": items, "total": max(self.total - 1, 0)})

    @classmethod
    def from_payload(
        cls,
        items: List[Any],
        pagination: Optional[Dict[str, Any]],
        default_page: int = 1,
        default_limit: int = 10,
    ) -> "PageWindow[T]":
        """Build from the server's {items, pagination: {total, page, limit, pages}}"""
        pagination = pagination or {}
        return cls(
            items=items,
            total=pagination.get("total", len(items)),
            page=pagination.get("page", default_page),
            limit=pagination.get("limit", default_limit),
        )


class FilterSpec(BaseModel):
    """
    Requested list window.

    Changing anything other than page resets page to 1.
    """
    model_config = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
    status: Optional[LeadStatus] = None
    search: str = ""

    def with_page(self, page: int) -> "FilterSpec":
        return self.model_copy(update={"page": max(page, 1)})

    def with_limit(self, limit: int) -> "FilterSpec":
        return self.model_copy(update={"limit": limit, "page": 1})

    def with_status(self, status: Optional[LeadStatus]) -> "FilterSpec":
        return self.model_copy(update={"status": status, "page": 1})

    def with_search(self, search: str) -> "FilterSpec":
        return self.model_copy(update={"search": search or "", "page": 1})

    def to_params(self) -> Dict[str, Any]:
        """Query parameters for the list endpoint; empty filters are omitted."""
        params: Dict[str, Any] = {"page": self.page, "limit": self.limit}
        if self.status:
            params["status"] = self.status.value
        if self.search:
            params["search"] = self.search
        return params
