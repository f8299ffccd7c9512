# app/schemas/notification.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.suggestion import ApprovalStatus


class NotificationCounts(BaseModel):
    """
    Derived badge counts. Eventually consistent, advisory only.

    `total` is always recomputed from the four parts, whatever the payload said.
    """
    pending_invitations: int = Field(0, ge=0, alias="pendingInvitations")
    pending_suggestions: int = Field(0, ge=0, alias="pendingSuggestions")
    recent_approvals: int = Field(0, ge=0, alias="recentApprovals")
    recent_rejections: int = Field(0, ge=0, alias="recentRejections")
    total: int = 0

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _derive_total(cls, data):
        if not isinstance(data, dict):
            return data
        parts = (
            ("pending_invitations", "pendingInvitations"),
            ("pending_suggestions", "pendingSuggestions"),
            ("recent_approvals", "recentApprovals"),
            ("recent_rejections", "recentRejections"),
        )
        data = dict(data)
        data["total"] = sum(int(data.get(name, data.get(alias, 0)) or 0) for name, alias in parts)
        return data


class PendingSuggestionItem(BaseModel):
    """A suggestion waiting for the caller's review (caller owns the journey)."""
    id: int
    journey_id: int = Field(..., alias="journeyId")
    journey_title: str = Field(..., alias="journeyTitle")
    title: str
    suggested_by_username: Optional[str] = Field(None, alias="suggestedByUsername")
    suggested_at: datetime = Field(..., alias="suggestedAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class RecentResponseItem(BaseModel):
    """One of the caller's own suggestions that was recently reviewed."""
    id: int
    journey_id: int = Field(..., alias="journeyId")
    journey_title: str = Field(..., alias="journeyTitle")
    title: str
    approval_status: ApprovalStatus = Field(..., alias="approvalStatus")
    responded_at: datetime = Field(..., alias="respondedAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class NotificationDetails(BaseModel):
    pending_suggestions: List[PendingSuggestionItem] = Field(default_factory=list, alias="pendingSuggestions")
    recent_responses: List[RecentResponseItem] = Field(default_factory=list, alias="recentResponses")

    model_config = ConfigDict(populate_by_name=True)
