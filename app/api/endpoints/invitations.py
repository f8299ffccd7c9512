# app/api/endpoints/invitations.py
import logging
from typing import List

import asyncpg
from fastapi import APIRouter, Depends, Path, Request

from app.api import deps
from app.core.rate_limit import limiter
from app.schemas import collaboration
from app.services import invitations

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/invitations", tags=["Invitations"])


@router.get("/pending", response_model=List[collaboration.InvitationOut])
async def list_pending_invitations(
    user: asyncpg.Record = Depends(deps.get_current_user_record),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """Invitations waiting for the caller's answer, newest first."""
    rows = await invitations.list_pending_invitations(db, user=user)
    return [collaboration.InvitationOut.model_validate(dict(r)) for r in rows]


@router.post("/{invitation_id}/respond", response_model=collaboration.CollaboratorOut)
@limiter.limit("30/minute")
async def respond_to_invitation(
    request: Request,
    response_in: collaboration.InvitationRespond,
    invitation_id: int = Path(..., gt=0),
    user: asyncpg.Record = Depends(deps.get_current_user_record),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """Accept or decline. Only the invitee may answer, and only once."""
    row = await invitations.respond(
        db, invitation_id=invitation_id, user=user, decision=response_in.decision,
    )
    return collaboration.CollaboratorOut.model_validate(dict(row))
