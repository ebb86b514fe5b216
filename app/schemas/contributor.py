# app/schemas/contributor.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.list import DbId
from app.schemas.page import PageEnvelope


class ContributorsAdd(BaseModel):
    """
    Payload accepted by POST /lists/{id}/contributors.
    Every id must resolve or the whole request fails.
    """
    contributors: List[DbId] = Field(..., min_length=1, max_length=100)


class ContributorResponse(BaseModel):
    """One list ↔ identity relationship."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    list_id: int
    contributor_id: int
    created_at: datetime


class IdentityResponse(BaseModel):
    """Public view of a user that can be added as a contributor."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: Optional[str] = None
    display_name: Optional[str] = None
    profile_picture: Optional[str] = None
    location: Optional[str] = None
    timezone: Optional[str] = None


class PaginatedContributorResponse(PageEnvelope):
    items: List[ContributorResponse]


class PaginatedIdentityResponse(PageEnvelope):
    items: List[IdentityResponse]
