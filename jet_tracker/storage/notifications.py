"""
"Item store changed" notifications.

Read-side observers (dashboards, caches) learn about new rows through one
event per write batch rather than per row. Each event is published both on
a PostgreSQL ``LISTEN/NOTIFY`` channel, for out-of-process subscribers, and
to in-process callbacks registered with ``subscribe``.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass

import asyncpg

from jet_tracker.storage.database import Database

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreChange:
    """One write batch: ``count`` new rows in ``table`` from ``origin``."""

    table: str
    count: int
    origin: str


Listener = Callable[[StoreChange], Awaitable[None]]


class StoreChangeNotifier:
    """
    Publishes StoreChange events.

    Args:
        database: Connected Database, or None for in-process only
        channel: NOTIFY channel name
    """

    def __init__(self, database: Database | None, channel: str = "items_changed") -> None:
        self._db = database
        self._channel = channel
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        """Register an async callback invoked after every batch."""
        self._listeners.append(listener)

    async def notify(self, table: str, count: int, origin: str) -> None:
        """Publish one event for a batch. Batches with no writes are not published."""
        if count <= 0:
            return

        change = StoreChange(table=table, count=count, origin=origin)

        if self._db is not None:
            try:
                await self._db.execute(
                    "SELECT pg_notify($1, $2)", self._channel, json.dumps(asdict(change))
                )
            except (OSError, asyncpg.PostgresError) as e:
                logger.warning("pg_notify on %s failed: %s", self._channel, e)

        for listener in self._listeners:
            try:
                await listener(change)
            except Exception:
                logger.exception("Store change listener failed for %s", origin)
