# app/schemas/list.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, conint

from app.schemas.page import PageEnvelope

# Ids are int4 columns
MAX_DB_ID = 2_147_483_647
DbId = conint(gt=0, le=MAX_DB_ID)


# --------------------------------------------------------------------------- #
#                               Requests                                      #
# --------------------------------------------------------------------------- #

class ListCreate(BaseModel):
    """POST /lists body."""
    name: str = Field(..., min_length=1, max_length=100)
    is_public: bool = Field(False, description="True → anyone signed in can view the list")
    # Best-effort seeding: unknown ids are dropped silently
    contributors: List[DbId] = Field(default_factory=list, max_length=100)


class ListUpdate(BaseModel):
    """PATCH /lists/{id} body (all optional)."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    is_public: Optional[bool] = None


# --------------------------------------------------------------------------- #
#                               Responses                                     #
# --------------------------------------------------------------------------- #

class ListResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    name: str
    is_public: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class PaginatedListResponse(PageEnvelope):
    items: List[ListResponse]
