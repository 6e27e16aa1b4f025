"""
Lifecycle manager for live Firestore listeners.

Firestore delivers snapshots on a background thread. Each listener opened
here is registered under an owner key (one per open client stream) and is
closed when that owner goes away, so no listener outlives the view that
asked for it. Snapshots are handed to the owner's asyncio loop through a
queue.
"""

import asyncio
import threading
from typing import Any, Callable, Dict, List

import structlog

logger = structlog.get_logger(__name__)

SnapshotCallback = Callable[[List[Any], List[Any], Any], None]


class SubscriptionManager:
    """Registry of open `on_snapshot` watches keyed by owner."""

    def __init__(self):
        self._watches: Dict[str, List[Any]] = {}
        self._lock = threading.Lock()

    def open(self, owner: str, query, callback: SnapshotCallback):
        """Starts a listener on `query` and registers it under `owner`.

        Args:
            owner: Key identifying the stream or view that owns the listener.
            query: A synchronous Firestore query or document reference.
            callback: Called with (docs, changes, read_time) on every snapshot.

        Returns:
            The Firestore watch handle.
        """
        watch = query.on_snapshot(callback)
        with self._lock:
            self._watches.setdefault(owner, []).append(watch)
        logger.debug("Listener opened", owner=owner)
        return watch

    def open_queue(self, owner: str, query, loop: asyncio.AbstractEventLoop) -> "asyncio.Queue[List[Any]]":
        """Starts a listener whose snapshots are pushed onto an asyncio queue.

        Args:
            owner: Key identifying the owning stream.
            query: A synchronous Firestore query.
            loop: The event loop the consumer runs on.

        Returns:
            Queue receiving the document list of each snapshot.
        """
        queue: "asyncio.Queue[List[Any]]" = asyncio.Queue()

        def on_snapshot(docs, changes, read_time):
            loop.call_soon_threadsafe(queue.put_nowait, list(docs))

        self.open(owner, query, on_snapshot)
        return queue

    def close(self, owner: str) -> int:
        """Unsubscribes every listener registered under `owner`.

        Returns:
            Number of listeners closed.
        """
        with self._lock:
            watches = self._watches.pop(owner, [])
        for watch in watches:
            try:
                watch.unsubscribe()
            except Exception as e:
                logger.warning("Failed to close listener", owner=owner, error=str(e))
        if watches:
            logger.debug("Listeners closed", owner=owner, count=len(watches))
        return len(watches)

    def close_all(self) -> int:
        """Closes every open listener (application shutdown)."""
        with self._lock:
            owners = list(self._watches)
        return sum(self.close(owner) for owner in owners)

    def active_owners(self) -> List[str]:
        with self._lock:
            return list(self._watches)


subscriptions = SubscriptionManager()
