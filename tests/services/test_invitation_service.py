# tests/services/test_invitation_service.py
import pytest

from app.core.errors import (
    DuplicateInvitationError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
)
from app.schemas.collaboration import CollaboratorStatus, InvitationDecision, Role
from app.schemas.journey import JourneyCreate
from app.services import invitations, permissions


async def test_invite_creates_pending_row(store, journey, owner, alice):
    row = await invitations.invite(
        None, journey_id=journey["id"], actor_id=owner["id"], email="Alice@Example.com", message="Join us",
    )
    assert row["status"] == CollaboratorStatus.PENDING.value
    assert row["role"] == Role.CONTRIBUTOR.value
    assert row["invitee_email"] == "alice@example.com"
    assert row["user_id"] == alice["id"]
    assert row["message"] == "Join us"


async def test_second_invite_before_response_is_duplicate(store, journey, owner, alice):
    await invitations.invite(None, journey_id=journey["id"], actor_id=owner["id"], email="alice@example.com")
    with pytest.raises(DuplicateInvitationError):
        await invitations.invite(None, journey_id=journey["id"], actor_id=owner["id"], email="alice@example.com")


async def test_inviting_an_accepted_collaborator_is_duplicate(store, shared_journey, owner, contributor):
    with pytest.raises(DuplicateInvitationError):
        await invitations.invite(
            None, journey_id=shared_journey["id"], actor_id=owner["id"], email=contributor["email"],
        )


async def test_reinvite_after_decline_creates_new_row(store, journey, owner, alice):
    first = await invitations.invite(None, journey_id=journey["id"], actor_id=owner["id"], email=alice["email"])
    await invitations.respond(None, invitation_id=first["id"], user=alice, decision=InvitationDecision.DECLINE)

    second = await invitations.invite(None, journey_id=journey["id"], actor_id=owner["id"], email=alice["email"])
    assert second["id"] != first["id"]
    assert store.collaborators[first["id"]]["status"] == CollaboratorStatus.DECLINED.value


async def test_contributor_cannot_invite(store, shared_journey, contributor):
    with pytest.raises(ForbiddenError):
        await invitations.invite(
            None, journey_id=shared_journey["id"], actor_id=contributor["id"], email="x@example.com",
        )


async def test_invite_to_unknown_journey(store, owner):
    with pytest.raises(NotFoundError):
        await invitations.invite(None, journey_id=999, actor_id=owner["id"], email="x@example.com")


async def test_accept_grants_contributor_role(store, journey, owner, alice):
    inv = await invitations.invite(None, journey_id=journey["id"], actor_id=owner["id"], email=alice["email"])
    assert await permissions.resolve_role(None, journey["id"], alice["id"]) is None

    row = await invitations.respond(None, invitation_id=inv["id"], user=alice, decision=InvitationDecision.ACCEPT)
    assert row["status"] == CollaboratorStatus.ACCEPTED.value
    assert row["responded_at"] is not None
    assert await permissions.resolve_role(None, journey["id"], alice["id"]) is Role.CONTRIBUTOR


async def test_pre_signup_invitation_is_bound_on_response(store, journey, owner):
    inv = await invitations.invite(None, journey_id=journey["id"], actor_id=owner["id"], email="newbie@example.com")
    assert inv["user_id"] is None

    newbie = store.add_user("newbie")
    pending = await invitations.list_pending_invitations(None, user=newbie)
    assert [p["id"] for p in pending] == [inv["id"]]

    row = await invitations.respond(None, invitation_id=inv["id"], user=newbie, decision=InvitationDecision.ACCEPT)
    assert row["user_id"] == newbie["id"]


async def test_only_invitee_can_respond(store, journey, owner, alice, outsider):
    inv = await invitations.invite(None, journey_id=journey["id"], actor_id=owner["id"], email=alice["email"])
    with pytest.raises(ForbiddenError):
        await invitations.respond(None, invitation_id=inv["id"], user=outsider, decision=InvitationDecision.ACCEPT)
    with pytest.raises(ForbiddenError):
        await invitations.respond(None, invitation_id=inv["id"], user=owner, decision=InvitationDecision.ACCEPT)


async def test_responding_twice_is_invalid_transition(store, journey, owner, alice):
    inv = await invitations.invite(None, journey_id=journey["id"], actor_id=owner["id"], email=alice["email"])
    await invitations.respond(None, invitation_id=inv["id"], user=alice, decision=InvitationDecision.DECLINE)
    with pytest.raises(InvalidTransitionError):
        await invitations.respond(None, invitation_id=inv["id"], user=alice, decision=InvitationDecision.ACCEPT)


async def test_respond_to_unknown_invitation(store, alice):
    with pytest.raises(NotFoundError):
        await invitations.respond(None, invitation_id=12345, user=alice, decision=InvitationDecision.ACCEPT)


async def test_owner_row_cannot_be_removed(store, journey, owner):
    owner_row = store.owners_of(journey["id"])[0]
    with pytest.raises(ForbiddenError):
        await invitations.remove(None, journey_id=journey["id"], collaborator_id=owner_row["id"], actor_id=owner["id"])
    assert len(store.owners_of(journey["id"])) == 1


async def test_owner_removes_contributor(store, shared_journey, owner, contributor):
    rows = await invitations.list_collaborators(None, journey_id=shared_journey["id"], actor_id=owner["id"])
    assert [r["role"] for r in rows] == ["owner", "contributor"]

    await invitations.remove(None, journey_id=shared_journey["id"], collaborator_id=rows[1]["id"], actor_id=owner["id"])
    assert await permissions.resolve_role(None, shared_journey["id"], contributor["id"]) is None


async def test_remove_checks_journey(store, shared_journey, owner):
    other = await store.create_journey(None, JourneyCreate(title="Other"), owner["id"])
    contributor_row = (await invitations.list_collaborators(
        None, journey_id=shared_journey["id"], actor_id=owner["id"],
    ))[1]
    with pytest.raises(NotFoundError):
        await invitations.remove(None, journey_id=other["id"], collaborator_id=contributor_row["id"], actor_id=owner["id"])


async def test_contributor_cannot_remove(store, shared_journey, owner, contributor):
    owner_row = store.owners_of(shared_journey["id"])[0]
    with pytest.raises(ForbiddenError):
        await invitations.remove(
            None, journey_id=shared_journey["id"], collaborator_id=owner_row["id"], actor_id=contributor["id"],
        )


async def test_pending_invitee_cannot_view_collaborators(store, journey, owner, alice):
    await invitations.invite(None, journey_id=journey["id"], actor_id=owner["id"], email=alice["email"])
    with pytest.raises(ForbiddenError):
        await invitations.list_collaborators(None, journey_id=journey["id"], actor_id=alice["id"])
