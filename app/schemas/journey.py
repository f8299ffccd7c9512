# app/schemas/journey.py
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.collaboration import Role


class JourneyCreate(BaseModel):
    """POST /journeys body."""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    destination: Optional[str] = Field(None, max_length=255)
    start_date: Optional[date] = Field(None, alias="startDate")
    end_date: Optional[date] = Field(None, alias="endDate")

    model_config = ConfigDict(populate_by_name=True)


class JourneyOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    destination: Optional[str] = None
    start_date: Optional[date] = Field(None, alias="startDate")
    end_date: Optional[date] = Field(None, alias="endDate")
    owner_id: int = Field(..., alias="ownerId")
    role: Role = Field(..., description="Role of the requesting user on this journey")
    created_at: datetime = Field(..., alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class JourneyListResponse(BaseModel):
    items: List[JourneyOut]
