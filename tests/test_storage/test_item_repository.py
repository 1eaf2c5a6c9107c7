"""Tests for the item and social post repositories."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from jet_tracker.storage.repository import ItemRepository, SocialPostRepository


@pytest.fixture
def mock_database() -> AsyncMock:
    db = AsyncMock()
    db.fetch = AsyncMock(return_value=[])
    db.fetchval = AsyncMock(return_value=None)
    db.execute = AsyncMock(return_value="UPDATE 1")
    return db


def _item_row(item_id: int, **overrides) -> dict:
    row = {
        "id": item_id,
        "url": f"https://news.example.pt/a{item_id}",
        "title_original": "Força Aérea avalia Gripen",
        "body_original": None,
        "title_en": None,
        "tracking_country": "PT",
    }
    row.update(overrides)
    return row


class TestItemInsert:
    async def test_returns_new_id(self, mock_database, feed_candidate):
        mock_database.fetchval.return_value = 41

        item_id = await ItemRepository(mock_database).insert(
            feed_candidate, "https://news.example.pt/artigo/gripen", tracking_country="PT", source_country="PT"
        )

        assert item_id == 41
        args = mock_database.fetchval.call_args[0]
        assert "ON CONFLICT (url) DO NOTHING" in args[0]
        assert "RETURNING id" in args[0]
        assert args[1] == 7
        assert args[2] == "https://news.example.pt/artigo/gripen"
        assert args[7:] == ("PT", "PT")

    async def test_conflict_returns_none(self, mock_database, feed_candidate):
        assert await ItemRepository(mock_database).insert(feed_candidate, feed_candidate.url, "PT") is None


class TestItemQueries:
    async def test_list_pending_builds_ilike_patterns(self, mock_database):
        mock_database.fetch.return_value = [_item_row(1), _item_row(2, body_original="texto")]

        items = await ItemRepository(mock_database).list_pending(["Gripen", "caça"], 10)

        sql, patterns, limit = mock_database.fetch.call_args[0]
        assert "classified_at IS NULL" in sql
        assert "s.type = 'defense'" in sql
        assert patterns == ["%Gripen%", "%caça%"]
        assert limit == 10
        assert [i.id for i in items] == [1, 2]
        assert items[0].body_original == ""

    async def test_update_classification_keeps_existing_title(self, mock_database):
        await ItemRepository(mock_database).update_classification(5, 0.4, ["Gripen"], None, "ok")

        sql, *args = mock_database.execute.call_args[0]
        assert "COALESCE($4, title_en)" in sql
        assert args == [5, 0.4, ["Gripen"], None, "ok"]

    @pytest.mark.parametrize("status", ["rate_limited", "quota_exceeded"])
    async def test_throttled_outcome_stays_pending(self, mock_database, status):
        await ItemRepository(mock_database).update_classification(5, 0.0, [], None, status)

        sql, *args = mock_database.execute.call_args[0]
        assert "WHEN $5::text IN ('rate_limited', 'quota_exceeded') THEN NULL" in sql
        assert args[-1] == status

    async def test_delete_all_parses_status(self, mock_database):
        mock_database.execute.return_value = "DELETE 12"
        assert await ItemRepository(mock_database).delete_all() == 12

        mock_database.execute.return_value = "weird"
        assert await ItemRepository(mock_database).delete_all() == 0

    async def test_exists_by_url(self, mock_database):
        mock_database.fetchval.return_value = True
        assert await ItemRepository(mock_database).exists_by_url("https://news.example.pt/a") is True


class TestSocialPosts:
    async def test_insert_maps_candidate(self, mock_database, social_candidate):
        mock_database.fetchval.return_value = 8

        post_id = await SocialPostRepository(mock_database).insert(social_candidate, "PT", "analyst-1")

        assert post_id == 8
        args = mock_database.fetchval.call_args[0]
        assert "ON CONFLICT (platform, post_id) DO NOTHING" in args[0]
        assert args[1:5] == ("analyst-1", "PT", "reddit", "abc123")

    async def test_last_fetched_at(self, mock_database):
        stamp = datetime(2026, 3, 14, 8, 0, tzinfo=timezone.utc)
        mock_database.fetchval.return_value = stamp

        assert await SocialPostRepository(mock_database).last_fetched_at("PT") == stamp
        assert mock_database.fetchval.call_args[0][1] == "PT"
