"""Tests for UserSettingsRepository."""

from unittest.mock import AsyncMock

from jet_tracker.config.competitors import RELEVANCE_KEYWORDS
from jet_tracker.sources.preferences import UserSettingsRepository


class TestMergePrioritizedOutlets:
    async def test_only_outlets_are_updated_on_conflict(
        self, mock_database: AsyncMock, settings_row: dict
    ) -> None:
        mock_database.fetchrow.return_value = settings_row
        repo = UserSettingsRepository(mock_database)
        outlets = [{"name": "Operacional", "domain": "operacional.pt"}]

        result = await repo.merge_prioritized_outlets("analyst-1", outlets, "PT")

        sql, user_id, country, payload = mock_database.fetchrow.call_args[0]
        update_clause = sql.split("DO UPDATE SET", 1)[1].split("RETURNING", 1)[0]
        assert "prioritized_outlets" in update_clause
        assert "active_country" not in update_clause
        assert "active_competitors" not in update_clause
        assert (user_id, country, payload) == ("analyst-1", "PT", outlets)

        assert result.active_competitors == ["Gripen", "F-35"]
        assert result.prioritized_outlets == outlets

    async def test_set_tracking_keeps_outlets(self, mock_database: AsyncMock, settings_row: dict) -> None:
        mock_database.fetchrow.return_value = settings_row
        repo = UserSettingsRepository(mock_database)

        await repo.set_tracking("analyst-1", "PT", ["Gripen"])

        sql = mock_database.fetchrow.call_args[0][0]
        update_clause = sql.split("DO UPDATE SET", 1)[1].split("RETURNING", 1)[0]
        assert "prioritized_outlets" not in update_clause


class TestGet:
    async def test_missing_user(self, mock_database: AsyncMock) -> None:
        assert await UserSettingsRepository(mock_database).get("nobody") is None

    async def test_null_arrays_become_empty(self, mock_database: AsyncMock, settings_row: dict) -> None:
        settings_row["active_competitors"] = None
        settings_row["prioritized_outlets"] = None
        mock_database.fetchrow.return_value = settings_row

        settings = await UserSettingsRepository(mock_database).get("analyst-1")

        assert settings.active_competitors == []
        assert settings.prioritized_outlets == []


class TestKeywords:
    async def test_stored_keywords(self, mock_database: AsyncMock) -> None:
        mock_database.fetchval.return_value = ["caça", " ", "Força Aérea"]

        keywords = await UserSettingsRepository(mock_database).get_keywords()

        assert keywords == ["caça", "Força Aérea"]
        assert mock_database.fetchval.call_args[0][1] == "keywords"

    async def test_falls_back_to_builtin_list(self, mock_database: AsyncMock) -> None:
        repo = UserSettingsRepository(mock_database)

        assert await repo.get_keywords() == list(RELEVANCE_KEYWORDS)

        mock_database.fetchval.return_value = []
        assert await repo.get_keywords() == list(RELEVANCE_KEYWORDS)

        mock_database.fetchval.return_value = {"not": "a list"}
        assert await repo.get_keywords() == list(RELEVANCE_KEYWORDS)
