"""Tests for store change notifications."""

import json
from unittest.mock import AsyncMock

import asyncpg

from jet_tracker.storage.notifications import StoreChange, StoreChangeNotifier


class TestStoreChangeNotifier:
    async def test_publishes_one_event_per_batch(self):
        db = AsyncMock()
        received: list[StoreChange] = []

        async def listener(change: StoreChange) -> None:
            received.append(change)

        notifier = StoreChangeNotifier(db, channel="jets")
        notifier.subscribe(listener)

        await notifier.notify("items", 4, "Jornal de Teste")

        sql, channel, payload = db.execute.call_args[0]
        assert "pg_notify" in sql
        assert channel == "jets"
        assert json.loads(payload) == {"table": "items", "count": 4, "origin": "Jornal de Teste"}
        assert received == [StoreChange("items", 4, "Jornal de Teste")]

    async def test_empty_batch_is_silent(self):
        db = AsyncMock()
        listener = AsyncMock()
        notifier = StoreChangeNotifier(db)
        notifier.subscribe(listener)

        await notifier.notify("items", 0, "RTP")

        db.execute.assert_not_called()
        listener.assert_not_called()

    async def test_in_process_only_without_database(self):
        listener = AsyncMock()
        notifier = StoreChangeNotifier(None)
        notifier.subscribe(listener)

        await notifier.notify("social_media_posts", 2, "social:Gripen")

        listener.assert_awaited_once_with(StoreChange("social_media_posts", 2, "social:Gripen"))

    async def test_failures_do_not_reach_the_writer(self):
        db = AsyncMock()
        db.execute.side_effect = asyncpg.PostgresError("channel gone")
        failing = AsyncMock(side_effect=RuntimeError("listener bug"))
        healthy = AsyncMock()
        notifier = StoreChangeNotifier(db)
        notifier.subscribe(failing)
        notifier.subscribe(healthy)

        await notifier.notify("items", 1, "RTP")

        healthy.assert_awaited_once()
