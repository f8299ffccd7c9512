# tests/client/test_workflows.py
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.client.api import CollaborationAPI
from app.client.events import RefreshChannel
from app.client.sync import Collection, StateSynchronizer
from app.client.workflows import InvitationWorkflow, SuggestionWorkflow
from app.core.errors import (
    DuplicateInvitationError,
    ForbiddenError,
    InvalidTransitionError,
    NetworkFailureError,
)
from app.schemas.collaboration import InvitationDecision
from app.schemas.suggestion import ApprovalStatus, ReviewAction, SuggestionCreate, SuggestionUpdate

JOURNEY = 4


def _row(item_id):
    return SimpleNamespace(id=item_id, journey_id=JOURNEY)


@pytest.fixture
def api():
    return AsyncMock(spec=CollaborationAPI)


@pytest.fixture
def sync(api):
    return StateSynchronizer.for_api(api)


@pytest.fixture
def published():
    return []


@pytest.fixture
def channel(published):
    channel = RefreshChannel()
    channel.subscribe(lambda: published.append(True))
    return channel


@pytest.fixture
def invitation_flow(api, sync, channel):
    return InvitationWorkflow(api, sync, channel)


@pytest.fixture
def suggestion_flow(api, sync, channel):
    return SuggestionWorkflow(api, sync, channel)


async def test_remove_rolls_back_on_network_failure(api, sync, invitation_flow, published):
    api.list_collaborators.return_value = [_row(1), _row(2)]
    seen = []
    sync.watch(Collection.COLLABORATORS, JOURNEY, lambda rows: seen.append([r.id for r in rows]))
    await sync.get(Collection.COLLABORATORS, JOURNEY)

    api.remove_collaborator.side_effect = NetworkFailureError()
    with pytest.raises(NetworkFailureError):
        await invitation_flow.remove(JOURNEY, 2)

    assert [r.id for r in sync.peek(Collection.COLLABORATORS, JOURNEY)] == [1, 2]
    assert seen == [[1, 2], [1], [1, 2]]
    assert published == []
    api.remove_collaborator.assert_awaited_once_with(JOURNEY, 2)


async def test_remove_refetches_and_publishes(api, sync, invitation_flow, published):
    api.list_collaborators.return_value = [_row(1), _row(2)]
    sync.watch(Collection.COLLABORATORS, JOURNEY, lambda rows: None)
    await sync.get(Collection.COLLABORATORS, JOURNEY)

    api.list_collaborators.return_value = [_row(1)]
    await invitation_flow.remove(JOURNEY, 2)

    assert [r.id for r in sync.peek(Collection.COLLABORATORS, JOURNEY)] == [1]
    assert not sync.is_stale(Collection.COLLABORATORS, JOURNEY)
    assert api.list_collaborators.await_count == 2
    assert published == [True]


async def test_duplicate_invite_is_raised_without_side_effects(api, sync, invitation_flow, published):
    api.list_collaborators.return_value = [_row(1)]
    await sync.get(Collection.COLLABORATORS, JOURNEY)

    api.invite.side_effect = DuplicateInvitationError()
    with pytest.raises(DuplicateInvitationError):
        await invitation_flow.invite(JOURNEY, "alice@example.com")

    assert not sync.is_stale(Collection.COLLABORATORS, JOURNEY)
    assert published == []


async def test_respond_invalidates_the_invitations_journey(api, sync, invitation_flow, published):
    await sync.get(Collection.COLLABORATORS, JOURNEY)
    api.respond_to_invitation.return_value = _row(9)

    await invitation_flow.respond(9, InvitationDecision.ACCEPT)

    api.respond_to_invitation.assert_awaited_once_with(9, InvitationDecision.ACCEPT)
    assert sync.is_stale(Collection.COLLABORATORS, JOURNEY)
    assert published == [True]


@pytest.mark.parametrize(
    "status, stale",
    [
        (ApprovalStatus.PENDING, {Collection.MY_SUGGESTIONS}),
        (ApprovalStatus.APPROVED, {Collection.MY_SUGGESTIONS, Collection.APPROVED_EXPERIENCES}),
    ],
)
async def test_propose_invalidates_by_resulting_status(api, sync, suggestion_flow, published, status, stale):
    for collection in Collection:
        await sync.get(collection, JOURNEY)
    api.propose.return_value = SimpleNamespace(id=3, journey_id=JOURNEY, approval_status=status)

    await suggestion_flow.propose(JOURNEY, SuggestionCreate(title="Museum Visit", day=2))

    assert {c for c in Collection if sync.is_stale(c, JOURNEY)} == stale
    assert published == [True]


@pytest.mark.parametrize("error", [ForbiddenError(), InvalidTransitionError(), NetworkFailureError()])
async def test_review_failure_restores_queue(api, sync, suggestion_flow, published, error):
    api.list_pending_suggestions.return_value = [_row(5), _row(6)]
    await sync.get(Collection.PENDING_SUGGESTIONS, JOURNEY)

    api.review.side_effect = error
    with pytest.raises(type(error)):
        await suggestion_flow.review(JOURNEY, 5, ReviewAction.APPROVE)

    assert [r.id for r in sync.peek(Collection.PENDING_SUGGESTIONS, JOURNEY)] == [5, 6]
    assert not sync.is_stale(Collection.PENDING_SUGGESTIONS, JOURNEY)
    assert published == []


async def test_review_success_hides_item_then_invalidates(api, sync, suggestion_flow, published):
    api.list_pending_suggestions.return_value = [_row(5), _row(6)]
    await sync.get(Collection.PENDING_SUGGESTIONS, JOURNEY)
    await sync.get(Collection.APPROVED_EXPERIENCES, JOURNEY)
    api.review.return_value = SimpleNamespace(id=5, journey_id=JOURNEY, approval_status=ApprovalStatus.REJECTED)

    await suggestion_flow.review(JOURNEY, 5, ReviewAction.REJECT, notes="Closed that day")

    api.review.assert_awaited_once_with(JOURNEY, 5, ReviewAction.REJECT, "Closed that day")
    assert [r.id for r in sync.peek(Collection.PENDING_SUGGESTIONS, JOURNEY)] == [6]
    assert sync.is_stale(Collection.PENDING_SUGGESTIONS, JOURNEY)
    assert not sync.is_stale(Collection.APPROVED_EXPERIENCES, JOURNEY)
    assert published == [True]


async def test_update_own_invalidates_from_returned_journey(api, sync, suggestion_flow, published):
    await sync.get(Collection.MY_SUGGESTIONS, JOURNEY)
    api.update_suggestion.return_value = _row(5)

    await suggestion_flow.update_own(5, SuggestionUpdate(title="Gulbenkian"))

    assert sync.is_stale(Collection.MY_SUGGESTIONS, JOURNEY)
    assert published == [True]


async def test_withdraw_rolls_back_when_already_reviewed(api, sync, suggestion_flow, published):
    api.list_my_suggestions.return_value = [_row(5)]
    await sync.get(Collection.MY_SUGGESTIONS, JOURNEY)

    api.withdraw_suggestion.side_effect = ForbiddenError("Suggestion has already been reviewed")
    with pytest.raises(ForbiddenError):
        await suggestion_flow.withdraw_own(JOURNEY, 5)

    assert [r.id for r in sync.peek(Collection.MY_SUGGESTIONS, JOURNEY)] == [5]
    assert published == []
