# tests/client/test_session_flow.py
"""
Client stack against the real app (ASGI transport, fake CRUD store):
two users, two sessions, one journey.
"""
import asyncio

import pytest

from app.client.session import CollaborationSession
from app.client.sync import Collection
from app.core.errors import DuplicateInvitationError, ForbiddenError, InvalidTransitionError
from app.schemas.collaboration import InvitationDecision
from app.schemas.suggestion import ApprovalStatus, ReviewAction, SuggestionCreate


def _session(user, transport) -> CollaborationSession:
    return CollaborationSession(
        user["firebase_uid"],
        base_url="http://testserver/api/v1",
        transport=transport,
        poll_interval=3600,
    )


async def wait_until(predicate, timeout: float = 2.0) -> None:
    async def _spin():
        while not predicate():
            await asyncio.sleep(0.005)
    await asyncio.wait_for(_spin(), timeout)


async def test_contributor_suggestion_reaches_owner_and_back(asgi_transport, shared_journey, owner, contributor):
    jid = shared_journey["id"]
    async with _session(owner, asgi_transport) as olivia, _session(contributor, asgi_transport) as bob:
        badge = []
        olivia.notifications.subscribe(badge.append)
        await wait_until(lambda: olivia.notifications.version >= 1)
        assert olivia.notifications.counts.pending_suggestions == 0

        suggestion = await bob.suggestions.propose(
            jid, SuggestionCreate(title="Museum Visit", day=2, type="attraction"),
        )
        assert suggestion.approval_status is ApprovalStatus.PENDING

        snapshot = await olivia.notifications.refresh_now()
        assert snapshot.counts.pending_suggestions == 1
        assert [p.title for p in snapshot.details.pending_suggestions] == ["Museum Visit"]
        assert badge[-1] is snapshot

        queue = []
        olivia.collections.watch(Collection.PENDING_SUGGESTIONS, jid, queue.append)
        assert [s.id for s in await olivia.collections.get(Collection.PENDING_SUGGESTIONS, jid)] == [suggestion.id]

        await olivia.suggestions.review(jid, suggestion.id, ReviewAction.APPROVE, notes="Booked")
        # the watched queue was refetched from the server
        assert queue[-1] == []
        # the review published a refresh on olivia's channel
        await wait_until(lambda: olivia.notifications.counts.pending_suggestions == 0)

        approved = await bob.collections.get(Collection.APPROVED_EXPERIENCES, jid)
        assert [(e.title, e.day) for e in approved] == [("Museum Visit", 2)]

        counts = (await bob.notifications.refresh_now()).counts
        assert counts.recent_approvals == 1
        assert counts.total == 1

        with pytest.raises(InvalidTransitionError):
            await olivia.suggestions.review(jid, suggestion.id, ReviewAction.REJECT)


async def test_invitation_round_trip(asgi_transport, journey, owner, alice):
    jid = journey["id"]
    async with _session(owner, asgi_transport) as olivia, _session(alice, asgi_transport) as alice_session:
        members = []
        olivia.collections.watch(Collection.COLLABORATORS, jid, members.append)
        await olivia.collections.get(Collection.COLLABORATORS, jid)

        invitation = await olivia.invitations.invite(jid, "alice@example.com", "Join us in Lisbon")
        assert [(m.role.value, m.status.value) for m in members[-1]] == [
            ("owner", "accepted"), ("contributor", "pending"),
        ]
        with pytest.raises(DuplicateInvitationError):
            await olivia.invitations.invite(jid, "alice@example.com")

        snapshot = await alice_session.notifications.refresh_now()
        assert snapshot.counts.pending_invitations == 1
        assert [i.id for i in snapshot.pending_invitations] == [invitation.id]

        accepted = await alice_session.invitations.respond(invitation.id, InvitationDecision.ACCEPT)
        assert accepted.journey_id == jid
        await wait_until(lambda: alice_session.notifications.counts.pending_invitations == 0)

        journeys = await alice_session.api.list_journeys()
        assert [(j.id, j.role.value) for j in journeys] == [(jid, "contributor")]


async def test_contributor_cannot_review(asgi_transport, shared_journey, contributor):
    jid = shared_journey["id"]
    async with _session(contributor, asgi_transport) as bob:
        suggestion = await bob.suggestions.propose(jid, SuggestionCreate(title="Fado night", day=1))
        with pytest.raises(ForbiddenError):
            await bob.suggestions.review(jid, suggestion.id, ReviewAction.APPROVE)

        mine = await bob.collections.get(Collection.MY_SUGGESTIONS, jid)
        assert [s.approval_status for s in mine] == [ApprovalStatus.PENDING]

        await bob.suggestions.withdraw_own(jid, suggestion.id)
        assert await bob.collections.get(Collection.MY_SUGGESTIONS, jid) == []
