# app/schemas/suggestion.py
import datetime as dt
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ExperienceType = Literal["activity", "meal", "accommodation", "transportation", "attraction", "other"]


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def resulting_status(self) -> ApprovalStatus:
        if self is ReviewAction.APPROVE:
            return ApprovalStatus.APPROVED
        return ApprovalStatus.REJECTED


class Location(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: Optional[str] = Field(None, max_length=500)
    place_id: Optional[str] = Field(None, alias="placeId", max_length=255)

    model_config = ConfigDict(populate_by_name=True)


# --------------------------------------------------------------------------- #
#                               Requests                                      #
# --------------------------------------------------------------------------- #

class SuggestionBase(BaseModel):
    """Fields shared by the owner's and the contributors' creation path."""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: ExperienceType = "other"
    time: Optional[dt.time] = None
    location: Optional[Location] = None
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


class SuggestionCreate(SuggestionBase):
    """POST /journeys/{id}/experiences body."""
    day: int = Field(..., ge=1, description="Day of the journey this experience belongs to")


class SuggestionUpdate(BaseModel):
    """PUT /suggestions/{id} body (all optional)."""
    day: Optional[int] = Field(None, ge=1)
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[ExperienceType] = None
    time: Optional[dt.time] = None
    location: Optional[Location] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None

    @field_validator("day", "title", "type")
    @classmethod
    def not_null(cls, v):
        # Omit a field to keep it; these columns cannot be cleared
        if v is None:
            raise ValueError("may be omitted but not set to null")
        return v


class SuggestionReview(BaseModel):
    """POST /journeys/{id}/suggestions/{suggestion_id}/review body."""
    action: ReviewAction
    notes: Optional[str] = Field(None, max_length=500)


# --------------------------------------------------------------------------- #
#                               Responses                                     #
# --------------------------------------------------------------------------- #

class SuggestionOut(BaseModel):
    """An experience row together with its review metadata."""
    id: int
    journey_id: int = Field(..., alias="journeyId")
    day: int
    title: str
    description: Optional[str] = None
    type: ExperienceType = "other"
    time: Optional[dt.time] = None
    location: Optional[Location] = None
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    suggested_by: int = Field(..., alias="suggestedByUserId")
    suggested_by_username: Optional[str] = Field(None, alias="suggestedByUsername")
    approval_status: ApprovalStatus = Field(..., alias="approvalStatus")
    reviewed_by: Optional[int] = Field(None, alias="reviewedByUserId")
    reviewed_at: Optional[dt.datetime] = Field(None, alias="reviewedAt")
    review_notes: Optional[str] = Field(None, alias="reviewNotes")
    created_at: dt.datetime = Field(..., alias="createdAt")
    updated_at: Optional[dt.datetime] = Field(None, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)
