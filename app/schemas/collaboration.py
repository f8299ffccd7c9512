# app/schemas/collaboration.py
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field


class Role(str, Enum):
    """Closed set of roles a user can hold on a journey."""
    OWNER = "owner"
    CONTRIBUTOR = "contributor"


class CollaboratorStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class InvitationDecision(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"

    @property
    def resulting_status(self) -> CollaboratorStatus:
        if self is InvitationDecision.ACCEPT:
            return CollaboratorStatus.ACCEPTED
        return CollaboratorStatus.DECLINED


class _ModelCfgMixin:
    """Accept raw DB column names on input, emit camelCase aliases on output."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# --------------------------------------------------------------------------- #
#                               Requests                                      #
# --------------------------------------------------------------------------- #

class InvitationCreate(BaseModel):
    """POST /journeys/{id}/collaborators/invite body."""
    email: EmailStr = Field(..., examples=["alice@example.com"])
    message: Optional[str] = Field(None, max_length=500)


class InvitationRespond(BaseModel):
    """POST /invitations/{id}/respond body."""
    decision: InvitationDecision


# --------------------------------------------------------------------------- #
#                               Responses                                     #
# --------------------------------------------------------------------------- #

class CollaboratorOut(_ModelCfgMixin, BaseModel):
    id: int
    journey_id: int = Field(..., alias="journeyId")
    user_id: Optional[int] = Field(None, alias="userId")
    # None only on the owner row of an account without an e-mail
    email: Optional[str] = Field(None, validation_alias=AliasChoices("email", "invitee_email"))
    username: Optional[str] = None
    role: Role
    status: CollaboratorStatus
    message: Optional[str] = None
    invited_by: int = Field(..., alias="invitedByUserId")
    invited_at: datetime = Field(..., alias="invitedAt")
    responded_at: Optional[datetime] = Field(None, alias="respondedAt")


class InvitationOut(_ModelCfgMixin, BaseModel):
    """A pending invitation as seen by the invitee."""
    id: int
    journey_id: int = Field(..., alias="journeyId")
    journey_title: str = Field(..., alias="journeyTitle")
    role: Role
    status: CollaboratorStatus
    message: Optional[str] = None
    invited_by: int = Field(..., alias="invitedByUserId")
    invited_by_username: Optional[str] = Field(None, alias="invitedByUsername")
    invited_at: datetime = Field(..., alias="invitedAt")
