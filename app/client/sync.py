# app/client/sync.py
"""
Client-side cache of the per-journey collections, kept honest by invalidation.

Local changes are provisional: a successful mutation always ends in a
refetch of exactly the collections it affects, and the server's answer
replaces whatever was shown. Nothing here merges partial events into
cached lists.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from app.schemas.suggestion import ApprovalStatus, ReviewAction

logger = logging.getLogger(__name__)


class Collection(str, Enum):
    APPROVED_EXPERIENCES = "approved_experiences"
    PENDING_SUGGESTIONS = "pending_suggestions"
    MY_SUGGESTIONS = "my_suggestions"
    COLLABORATORS = "collaborators"


Loader = Callable[[int], Awaitable[List[Any]]]
Watcher = Callable[[List[Any]], None]
Key = Tuple[Collection, int]


@dataclass
class _Entry:
    data: Optional[List[Any]] = None
    stale: bool = True
    # Bumped by every invalidation and local change; a load that started
    # under an older version is discarded.
    version: int = 0
    watchers: Dict[int, Watcher] = field(default_factory=dict)


class StateSynchronizer:
    def __init__(self, loaders: Mapping[Collection, Loader]):
        self._loaders = dict(loaders)
        self._entries: Dict[Key, _Entry] = {}
        self._next_token = 0

    @classmethod
    def for_api(cls, api) -> "StateSynchronizer":
        """Loaders backed by a `CollaborationAPI`."""
        return cls({
            Collection.APPROVED_EXPERIENCES: api.list_approved,
            Collection.PENDING_SUGGESTIONS: api.list_pending_suggestions,
            Collection.MY_SUGGESTIONS: api.list_my_suggestions,
            Collection.COLLABORATORS: api.list_collaborators,
        })

    def _entry(self, collection: Collection, journey_id: int) -> _Entry:
        return self._entries.setdefault((collection, journey_id), _Entry())

    # ------------------------------------------------------------------ #
    #  Reads                                                             #
    # ------------------------------------------------------------------ #
    def peek(self, collection: Collection, journey_id: int) -> Optional[List[Any]]:
        """Whatever is cached right now, provisional changes included."""
        entry = self._entries.get((collection, journey_id))
        return entry.data if entry else None

    def is_stale(self, collection: Collection, journey_id: int) -> bool:
        entry = self._entries.get((collection, journey_id))
        return entry is None or entry.stale

    async def get(self, collection: Collection, journey_id: int) -> List[Any]:
        """Cached list if fresh, otherwise load it from the server."""
        entry = self._entry(collection, journey_id)
        if not entry.stale and entry.data is not None:
            return entry.data
        return await self._load(collection, journey_id)

    async def _load(self, collection: Collection, journey_id: int) -> List[Any]:
        entry = self._entry(collection, journey_id)
        started_at = entry.version
        data = await self._loaders[collection](journey_id)
        if entry.version != started_at:
            logger.debug("Discarding outdated load of %s for journey %s", collection.value, journey_id)
            return data
        entry.data = data
        entry.stale = False
        self._notify(entry, data)
        return data

    def watch(self, collection: Collection, journey_id: int, watcher: Watcher) -> Callable[[], None]:
        """
        Call `watcher` with the new list on every change. Watched
        collections are refetched as soon as they are invalidated.
        """
        entry = self._entry(collection, journey_id)
        token = self._next_token
        self._next_token += 1
        entry.watchers[token] = watcher

        def unwatch() -> None:
            entry.watchers.pop(token, None)

        return unwatch

    def _notify(self, entry: _Entry, data: List[Any]) -> None:
        for watcher in list(entry.watchers.values()):
            try:
                watcher(data)
            except Exception:
                logger.error("Collection watcher %r failed", watcher, exc_info=True)

    # ------------------------------------------------------------------ #
    #  Invalidation                                                      #
    # ------------------------------------------------------------------ #
    async def invalidate(self, journey_id: int, collections: Iterable[Collection]) -> List[Collection]:
        """
        Mark the collections stale and refetch the watched ones.

        A failed refetch is logged and leaves the collection stale; the
        mutation that caused the invalidation already succeeded.
        """
        targets = list(dict.fromkeys(collections))
        refetch = []
        for collection in targets:
            entry = self._entry(collection, journey_id)
            entry.stale = True
            entry.version += 1
            if entry.watchers:
                refetch.append(collection)

        if refetch:
            results = await asyncio.gather(
                *(self._load(c, journey_id) for c in refetch), return_exceptions=True
            )
            for collection, result in zip(refetch, results):
                if isinstance(result, BaseException):
                    logger.warning(
                        "Refetch of %s for journey %s failed: %r", collection.value, journey_id, result,
                    )
        return targets

    async def on_proposed(self, journey_id: int, approval_status: ApprovalStatus) -> List[Collection]:
        affected = [Collection.MY_SUGGESTIONS]
        if approval_status == ApprovalStatus.APPROVED:
            affected.append(Collection.APPROVED_EXPERIENCES)
        return await self.invalidate(journey_id, affected)

    async def on_reviewed(self, journey_id: int, action: ReviewAction) -> List[Collection]:
        affected = [Collection.PENDING_SUGGESTIONS]
        if action == ReviewAction.APPROVE:
            affected.append(Collection.APPROVED_EXPERIENCES)
        return await self.invalidate(journey_id, affected)

    async def on_suggestion_changed(self, journey_id: int) -> List[Collection]:
        """The caller edited or withdrew one of their pending suggestions."""
        return await self.invalidate(journey_id, [Collection.MY_SUGGESTIONS, Collection.PENDING_SUGGESTIONS])

    async def on_membership_changed(self, journey_id: int) -> List[Collection]:
        return await self.invalidate(journey_id, [Collection.COLLABORATORS])

    # ------------------------------------------------------------------ #
    #  Optimistic changes                                                #
    # ------------------------------------------------------------------ #
    @asynccontextmanager
    async def optimistic(
        self,
        collection: Collection,
        journey_id: int,
        change: Callable[[List[Any]], List[Any]],
    ) -> AsyncIterator[None]:
        """
        Show `change(cached)` while the body runs; put the cached list back
        if the body raises. Nothing is applied when the collection was never
        loaded.

        A rollback never clobbers a newer server load: if the collection was
        invalidated and refetched while the body ran, that data is kept.
        """
        entry = self._entry(collection, journey_id)
        previous = entry.data
        applied = entry.version
        if previous is not None:
            self._replace(entry, change(list(previous)))
            applied = entry.version
        try:
            yield
        except BaseException:
            if previous is not None:
                self._roll_back(entry, previous, applied, collection, journey_id)
            raise

    def _roll_back(
        self, entry: _Entry, previous: List[Any], applied: int, collection: Collection, journey_id: int
    ) -> None:
        if entry.version == applied:
            logger.info("Rolling back optimistic change to %s for journey %s", collection.value, journey_id)
            self._replace(entry, previous)
        elif entry.stale:
            # Invalidated but not reloaded; drop the provisional list and
            # leave the version alone so a load already in flight still lands
            logger.info("Rolling back optimistic change to stale %s for journey %s", collection.value, journey_id)
            entry.data = previous
            self._notify(entry, previous)
        else:
            logger.debug(
                "Keeping server reload of %s for journey %s over optimistic rollback", collection.value, journey_id
            )

    def _replace(self, entry: _Entry, data: List[Any]) -> None:
        entry.data = data
        entry.version += 1
        self._notify(entry, data)
