# app/client/workflows.py
"""
User actions as the client performs them.

Each successful call invalidates the collections it affects and asks for a
notification refresh. Errors from the API (Forbidden, InvalidTransition,
DuplicateInvitation, NotFound, NetworkFailure) are raised to the caller
unchanged, after any optimistic change has been rolled back. Mutations are
never retried.
"""
import logging
from typing import Optional

from app.client.api import CollaborationAPI
from app.client.events import RefreshChannel
from app.client.sync import Collection, StateSynchronizer
from app.schemas import collaboration as collaboration_schemas
from app.schemas import suggestion as suggestion_schemas

logger = logging.getLogger(__name__)


def _without(item_id: int):
    def change(items):
        return [item for item in items if getattr(item, "id", None) != item_id]
    return change


class _Workflow:
    def __init__(self, api: CollaborationAPI, synchronizer: StateSynchronizer, channel: RefreshChannel):
        self.api = api
        self.synchronizer = synchronizer
        self.channel = channel


class InvitationWorkflow(_Workflow):
    async def invite(
        self, journey_id: int, email: str, message: Optional[str] = None
    ) -> collaboration_schemas.CollaboratorOut:
        collaborator = await self.api.invite(journey_id, email, message)
        await self.synchronizer.on_membership_changed(journey_id)
        self.channel.publish()
        return collaborator

    async def respond(
        self, invitation_id: int, decision: collaboration_schemas.InvitationDecision
    ) -> collaboration_schemas.CollaboratorOut:
        collaborator = await self.api.respond_to_invitation(invitation_id, decision)
        await self.synchronizer.on_membership_changed(collaborator.journey_id)
        self.channel.publish()
        return collaborator

    async def remove(self, journey_id: int, collaborator_id: int) -> None:
        async with self.synchronizer.optimistic(
            Collection.COLLABORATORS, journey_id, _without(collaborator_id)
        ):
            await self.api.remove_collaborator(journey_id, collaborator_id)
        await self.synchronizer.on_membership_changed(journey_id)
        self.channel.publish()


class SuggestionWorkflow(_Workflow):
    async def propose(
        self, journey_id: int, suggestion_in: suggestion_schemas.SuggestionCreate
    ) -> suggestion_schemas.SuggestionOut:
        suggestion = await self.api.propose(journey_id, suggestion_in)
        await self.synchronizer.on_proposed(journey_id, suggestion.approval_status)
        self.channel.publish()
        return suggestion

    async def review(
        self,
        journey_id: int,
        suggestion_id: int,
        action: suggestion_schemas.ReviewAction,
        notes: Optional[str] = None,
    ) -> suggestion_schemas.SuggestionOut:
        # Reviewed items leave the queue either way
        async with self.synchronizer.optimistic(
            Collection.PENDING_SUGGESTIONS, journey_id, _without(suggestion_id)
        ):
            suggestion = await self.api.review(journey_id, suggestion_id, action, notes)
        await self.synchronizer.on_reviewed(journey_id, action)
        self.channel.publish()
        return suggestion

    async def update_own(
        self, suggestion_id: int, suggestion_in: suggestion_schemas.SuggestionUpdate
    ) -> suggestion_schemas.SuggestionOut:
        suggestion = await self.api.update_suggestion(suggestion_id, suggestion_in)
        await self.synchronizer.on_suggestion_changed(suggestion.journey_id)
        self.channel.publish()
        return suggestion

    async def withdraw_own(self, journey_id: int, suggestion_id: int) -> None:
        async with self.synchronizer.optimistic(
            Collection.MY_SUGGESTIONS, journey_id, _without(suggestion_id)
        ):
            await self.api.withdraw_suggestion(suggestion_id)
        await self.synchronizer.on_suggestion_changed(journey_id)
        self.channel.publish()
