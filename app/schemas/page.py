# app/schemas/page.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import settings


class Order(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


# --------------------------------------------------------------------------- #
#                               Requests                                      #
# --------------------------------------------------------------------------- #

class PageOptions(BaseModel):
    """Pagination options shared by every paginated endpoint (1-based pages)."""
    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(1, ge=1)
    limit: int = Field(settings.PAGE_LIMIT_DEFAULT, ge=1, le=settings.PAGE_LIMIT_MAX)
    order_by: str = Field("created_at", alias="orderBy")
    order: Order = Order.DESC

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ContributorFilter(PageOptions):
    """GET /lists/contributors query – pagination plus identity filters."""
    contributor: Optional[str] = Field(None, min_length=1, max_length=100)
    location: Optional[List[str]] = None
    timezone: Optional[str] = Field(None, max_length=100)


# --------------------------------------------------------------------------- #
#                               Responses                                     #
# --------------------------------------------------------------------------- #

class PageEnvelope(BaseModel):
    """Fields every paginated response carries next to its `items`."""
    page: int = Field(..., ge=1, description="The current page number")
    limit: int = Field(..., ge=1, description="Number of items per page")
    total_items: int = Field(..., ge=0, description="Total number of items across all pages")
    total_pages: int = Field(..., ge=0, description="Total number of pages available")
    has_previous_page: bool
    has_next_page: bool
