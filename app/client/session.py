# app/client/session.py
import logging
from typing import Optional

import httpx

from app.client.api import CollaborationAPI
from app.client.events import RefreshChannel
from app.client.notifications import NotificationAggregator, fetch_snapshot
from app.client.sync import StateSynchronizer
from app.client.workflows import InvitationWorkflow, SuggestionWorkflow

logger = logging.getLogger(__name__)


class CollaborationSession:
    """
    Everything one signed-in user needs, wired together:

        async with CollaborationSession(token) as session:
            unsubscribe = session.notifications.subscribe(render_badge)
            await session.suggestions.propose(journey_id, payload)

    Mutations in either workflow publish on `channel`, which makes
    `notifications` refresh without the workflows knowing about it.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: Optional[str] = None,
        poll_interval: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api = CollaborationAPI(token, base_url=base_url, transport=transport)
        self.channel = RefreshChannel()
        self.notifications = NotificationAggregator(
            lambda: fetch_snapshot(self.api), interval=poll_interval, channel=self.channel,
        )
        self.collections = StateSynchronizer.for_api(self.api)
        self.invitations = InvitationWorkflow(self.api, self.collections, self.channel)
        self.suggestions = SuggestionWorkflow(self.api, self.collections, self.channel)

    async def close(self) -> None:
        await self.notifications.close()
        await self.api.close()
        logger.debug("Collaboration session closed")

    async def __aenter__(self) -> "CollaborationSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
