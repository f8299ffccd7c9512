# app/client/notifications.py
"""
Shared notification poller.

Any number of UI surfaces subscribe to one `NotificationAggregator`; it runs
at most one timer and at most one fetch at a time, and hands every fresh
snapshot to all current subscribers.

    aggregator = NotificationAggregator(lambda: fetch_snapshot(api), channel=channel)
    unsubscribe = aggregator.subscribe(render_badge)
    ...
    await aggregator.refresh_now()   # after a local mutation
    unsubscribe()                    # last one out stops the timer
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from app.client.events import RefreshChannel
from app.core.config import settings
from app.core.errors import CollaborationError
from app.schemas.collaboration import InvitationOut
from app.schemas.notification import NotificationCounts, NotificationDetails

logger = logging.getLogger(__name__)


class NotificationSnapshot(BaseModel):
    """Everything a badge or notification panel renders, fetched together."""
    counts: NotificationCounts = Field(default_factory=NotificationCounts)
    details: NotificationDetails = Field(default_factory=NotificationDetails)
    pending_invitations: List[InvitationOut] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


Fetcher = Callable[[], Awaitable[NotificationSnapshot]]
Subscriber = Callable[[NotificationSnapshot], None]


async def fetch_snapshot(api) -> NotificationSnapshot:
    """
    One logical fetch: counts, details and pending invitations from
    `CollaborationAPI`. If one call fails the others are cancelled and
    awaited before the error propagates.
    """
    tasks = [
        asyncio.ensure_future(api.notification_counts()),
        asyncio.ensure_future(api.notification_details()),
        asyncio.ensure_future(api.list_pending_invitations()),
    ]
    try:
        counts, details, invitations = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return NotificationSnapshot(counts=counts, details=details, pending_invitations=invitations)


class NotificationAggregator:
    """
    Reference-counted registry around one poll timer and one fetch pipeline.

    * The first `subscribe()` starts the timer; the last unsubscribe cancels it.
    * `refresh_now()` calls made before a fetch goes out share that fetch.
      Calls made while a fetch is already on the wire share a single
      follow-up fetch, so a caller never resolves with data requested
      before its own call.
    * A failed fetch keeps the previous snapshot and is only logged.
    """

    def __init__(
        self,
        fetch: Fetcher,
        *,
        interval: Optional[float] = None,
        channel: Optional[RefreshChannel] = None,
    ):
        self._fetch = fetch
        self._interval = settings.NOTIFICATION_POLL_INTERVAL_SECONDS if interval is None else interval
        self._subscribers: Dict[int, Subscriber] = {}
        self._next_token = 0
        self._snapshot: Optional[NotificationSnapshot] = None
        self._version = 0
        self._fetch_count = 0
        self._poller: Optional[asyncio.Task] = None
        self._driver: Optional[asyncio.Task] = None
        self._waiters: List[asyncio.Future] = []
        self._closed = False
        self._stop_listening = channel.subscribe(self._on_refresh_requested) if channel else None

    # ------------------------------------------------------------------ #
    #  Read-only view of the shared cache                                #
    # ------------------------------------------------------------------ #
    @property
    def snapshot(self) -> Optional[NotificationSnapshot]:
        return self._snapshot

    @property
    def counts(self) -> NotificationCounts:
        """Cached counts; all zeros before the first successful fetch."""
        return self._snapshot.counts if self._snapshot else NotificationCounts()

    @property
    def version(self) -> int:
        """Number of snapshots applied so far."""
        return self._version

    @property
    def fetch_count(self) -> int:
        """Number of fetches started, successful or not."""
        return self._fetch_count

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def is_polling(self) -> bool:
        return self._poller is not None and not self._poller.done()

    # ------------------------------------------------------------------ #
    #  Subscriptions                                                     #
    # ------------------------------------------------------------------ #
    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register `callback`; returns an idempotent unsubscribe function."""
        if self._closed:
            raise RuntimeError("NotificationAggregator is closed")

        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback
        if len(self._subscribers) == 1:
            self._start_polling()

        def unsubscribe() -> None:
            if self._subscribers.pop(token, None) is not None and not self._subscribers:
                self._stop_polling()

        return unsubscribe

    def _start_polling(self) -> None:
        if self.is_polling:
            return
        logger.debug("Starting notification poller (every %ss)", self._interval)
        self._poller = asyncio.create_task(self._poll())

    def _stop_polling(self) -> None:
        if self._poller is not None:
            logger.debug("Last subscriber left; stopping notification poller")
            self._poller.cancel()
            self._poller = None

    async def _poll(self) -> None:
        if self._snapshot is None:
            await self.refresh_now()
        while True:
            await asyncio.sleep(self._interval)
            await self.refresh_now()

    # ------------------------------------------------------------------ #
    #  Refresh                                                           #
    # ------------------------------------------------------------------ #
    async def refresh_now(self) -> Optional[NotificationSnapshot]:
        """
        Fetch now (or join a fetch that has not gone out yet) and deliver it.

        Returns the snapshot in the cache afterwards, which is the previous
        one if the fetch failed. Never raises for fetch failures.
        """
        if self._closed:
            return self._snapshot
        return await self._request()

    def _request(self) -> asyncio.Future:
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        if self._driver is None:
            self._driver = asyncio.create_task(self._drive())
        return waiter

    def _on_refresh_requested(self) -> None:
        if not self._closed:
            self._request()

    async def _drive(self) -> None:
        batch: List[asyncio.Future] = []
        try:
            while self._waiters:
                batch, self._waiters = self._waiters, []
                snapshot = await self._fetch_and_publish()
                for waiter in batch:
                    if not waiter.done():
                        waiter.set_result(snapshot)
                batch = []
        finally:
            self._driver = None
            for waiter in batch + self._waiters:
                waiter.cancel()
            self._waiters = []

    async def _fetch_and_publish(self) -> Optional[NotificationSnapshot]:
        self._fetch_count += 1
        try:
            snapshot = await self._fetch()
        except CollaborationError as exc:
            logger.warning("Notification refresh failed (%s: %s); keeping previous snapshot", exc.code, exc)
            return self._snapshot
        except Exception:
            logger.error("Unexpected error refreshing notifications; keeping previous snapshot", exc_info=True)
            return self._snapshot

        # Fetches never overlap, so each applied snapshot is newer than the last
        self._snapshot = snapshot
        self._version += 1
        self._deliver(snapshot)
        return snapshot

    def _deliver(self, snapshot: NotificationSnapshot) -> None:
        for token, callback in list(self._subscribers.items()):
            if token not in self._subscribers:
                continue  # removed by an earlier callback
            try:
                callback(snapshot)
            except Exception:
                logger.error("Notification subscriber %r failed", callback, exc_info=True)

    # ------------------------------------------------------------------ #
    #  Teardown                                                          #
    # ------------------------------------------------------------------ #
    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._stop_listening is not None:
            self._stop_listening()
        self._subscribers.clear()

        tasks = [t for t in (self._poller, self._driver) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._poller = None

    async def __aenter__(self) -> "NotificationAggregator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
