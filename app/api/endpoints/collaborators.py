# app/api/endpoints/collaborators.py
import logging
from typing import List

import asyncpg
from fastapi import APIRouter, Body, Depends, Path, Request, Response, status

from app.api import deps
from app.core.rate_limit import limiter
from app.schemas import collaboration
from app.services import invitations

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/journeys/{journey_id}/collaborators",
    tags=["Collaborators", "Journeys"],
)


# --------------------------------------------------------------------------- #
#  GET /journeys/{id}/collaborators                                           #
# --------------------------------------------------------------------------- #
@router.get("", response_model=List[collaboration.CollaboratorOut])
async def list_collaborators(
    journey_id: int = Path(..., gt=0),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """Every collaborator row (owner first). Visible to owner and accepted contributors."""
    rows = await invitations.list_collaborators(db, journey_id=journey_id, actor_id=current_user_id)
    return [collaboration.CollaboratorOut.model_validate(dict(r)) for r in rows]


# --------------------------------------------------------------------------- #
#  POST /journeys/{id}/collaborators/invite                                   #
# --------------------------------------------------------------------------- #
@router.post(
    "/invite",
    status_code=status.HTTP_201_CREATED,
    response_model=collaboration.CollaboratorOut,
)
@limiter.limit("30/minute")
async def invite_collaborator(
    request: Request,
    journey_id: int = Path(..., gt=0),
    invitation: collaboration.InvitationCreate = Body(...),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """
    Invite a contributor by **e-mail address**.
    Only the journey owner can call this endpoint; 409 if an open invitation exists.
    """
    row = await invitations.invite(
        db,
        journey_id=journey_id,
        actor_id=current_user_id,
        email=invitation.email,
        message=invitation.message,
    )
    return collaboration.CollaboratorOut.model_validate(dict(row))


# --------------------------------------------------------------------------- #
#  DELETE /journeys/{id}/collaborators/{collaborator_id}                      #
# --------------------------------------------------------------------------- #
@router.delete("/{collaborator_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def remove_collaborator(
    request: Request,
    journey_id: int = Path(..., gt=0),
    collaborator_id: int = Path(..., gt=0),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """Remove a collaborator row by its id. The owner row cannot be removed."""
    await invitations.remove(
        db, journey_id=journey_id, collaborator_id=collaborator_id, actor_id=current_user_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
