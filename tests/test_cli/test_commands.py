"""Tests for the jet-tracker CLI commands."""

from contextlib import asynccontextmanager
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from jet_tracker.baselines.schemas import Baseline, BaselineStatus
from jet_tracker.cli import main
from jet_tracker.errors import AuthorizationError, PreconditionError
from jet_tracker.services.schemas import (
    BackfillSummary,
    CleanSummary,
    ProcessSummary,
    RunSummary,
    SourceResult,
)
from jet_tracker.sources.preferences import UserSettings
from jet_tracker.sources.schemas import OutletCandidate, Source


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.__aenter__.return_value = db
    db.__aexit__.return_value = False
    return db


@pytest.fixture
def summary() -> RunSummary:
    return RunSummary(
        run_id="run000000001",
        country="PT",
        results=[
            SourceResult(source="Público", items_found=5, items_stored=3, duplicates=2, rate_limited=1),
            SourceResult(source="RTP", success=False, error="HTTP 404"),
        ],
    )


@pytest.fixture
def orchestrator(mock_db, summary):
    """Patch the database and orchestrator wiring used by every trigger command."""
    orchestrator = AsyncMock()
    orchestrator.run_collection.return_value = summary
    orchestrator.scrape_feeds.return_value = summary

    @asynccontextmanager
    async def fake_open(database, settings=None):
        yield orchestrator

    with patch("jet_tracker.storage.database.Database", return_value=mock_db), \
         patch("jet_tracker.services.factory.open_orchestrator", fake_open):
        yield orchestrator


class TestCollect:
    def test_prints_run_summary(self, runner, orchestrator):
        result = runner.invoke(
            main, ["collect", "-c", "pt", "-f", "Gripen", "-f", "F-35", "--start", "2026-03-01"]
        )

        assert result.exit_code == 0, result.output
        orchestrator.run_collection.assert_awaited_once_with(
            "PT", ["Gripen", "F-35"], date(2026, 3, 1), None, include_social=False
        )
        assert "Run run000000001" in result.output
        assert "Público: found=5 stored=3 duplicates=2" in result.output
        assert "RTP: HTTP 404" in result.output
        assert "articles stored:   3/5" in result.output
        assert "rate_limited=1" in result.output

    def test_precondition_error_exits_1(self, runner, orchestrator):
        orchestrator.run_collection.side_effect = PreconditionError(
            "No baseline found. Please set a tracking period first."
        )

        result = runner.invoke(main, ["collect"])

        assert result.exit_code == 1
        assert "No baseline found" in result.output

    @pytest.mark.parametrize(
        "args",
        [
            ["--start", "01/03/2026"],
            ["--start", "2026-03-10", "--end", "2026-03-01"],
        ],
    )
    def test_bad_window_is_usage_error(self, runner, orchestrator, args):
        result = runner.invoke(main, ["collect", *args])

        assert result.exit_code == 2
        orchestrator.run_collection.assert_not_called()

    def test_scrape_feeds(self, runner, orchestrator):
        result = runner.invoke(main, ["scrape-feeds"])

        assert result.exit_code == 0, result.output
        orchestrator.scrape_feeds.assert_awaited_once_with()


class TestEnrichment:
    def test_process_pending(self, runner, orchestrator):
        orchestrator.process_pending.return_value = ProcessSummary(
            processed_count=4, total_items=4, quota_exceeded=2
        )

        result = runner.invoke(main, ["process-pending", "--limit", "4"])

        assert result.exit_code == 0, result.output
        orchestrator.process_pending.assert_awaited_once_with(4)
        assert "Processed 4/4 items" in result.output
        assert "quota=2" in result.output

    def test_backfill_translations(self, runner, orchestrator):
        orchestrator.backfill_translations.return_value = BackfillSummary(articles_found=3, translated=2)

        result = runner.invoke(main, ["backfill-translations"])

        assert result.exit_code == 0, result.output
        orchestrator.backfill_translations.assert_awaited_once_with(20)
        assert "Translated 2/3 titles" in result.output


class TestPrivileged:
    def test_clean_requires_confirmation(self, runner, orchestrator):
        result = runner.invoke(main, ["clean-and-recollect", "--user", "ops-1"], input="n\n")

        assert result.exit_code == 1
        orchestrator.clean_and_recollect.assert_not_called()

    def test_clean_and_recollect(self, runner, orchestrator, summary):
        orchestrator.clean_and_recollect.return_value = CleanSummary(
            message="Data cleaned and recollection started", items_deleted=7, collection=summary
        )

        result = runner.invoke(main, ["clean-and-recollect", "--user", "ops-1", "--yes"])

        assert result.exit_code == 0, result.output
        orchestrator.clean_and_recollect.assert_awaited_once_with("ops-1")
        assert "Data cleaned and recollection started (7 items deleted)" in result.output

    def test_clean_forbidden(self, runner, orchestrator):
        orchestrator.clean_and_recollect.side_effect = AuthorizationError("Admin access required")

        result = runner.invoke(main, ["clean-and-recollect", "--user", "analyst-1", "--yes"])

        assert result.exit_code == 1
        assert "Admin access required" in result.output

    def test_discover_outlets(self, runner, orchestrator):
        orchestrator.discover_outlets.return_value = [
            OutletCandidate(
                name="Operacional", domain="operacional.pt", type="defense", language="Portuguese", credibility=8
            )
        ]

        result = runner.invoke(main, ["discover-outlets", "--user", "ops-1", "-c", "pt", "--register"])

        assert result.exit_code == 0, result.output
        orchestrator.discover_outlets.assert_awaited_once_with(
            "ops-1", "PT", "Portugal", register_sources=True
        )
        assert "Discovered 1 outlets" in result.output
        assert "Operacional (operacional.pt, defense)" in result.output


class TestSetBaseline:
    def test_rejects_bad_date(self, runner):
        result = runner.invoke(main, ["set-baseline", "01/03/2026"])

        assert result.exit_code == 2
        assert "YYYY-MM-DD" in result.output

    def test_creates_baseline(self, runner, mock_db):
        manager = AsyncMock()
        manager.set_baseline.return_value = Baseline(
            id=3, start_date=date(2026, 3, 1), end_date=date(2026, 3, 15), status=BaselineStatus.COMPLETED
        )

        with patch("jet_tracker.storage.database.Database", return_value=mock_db), \
             patch("jet_tracker.baselines.manager.BaselineManager", return_value=manager):
            result = runner.invoke(main, ["set-baseline", "2026-03-01", "-c", "pt"])

        assert result.exit_code == 0, result.output
        manager.set_baseline.assert_awaited_once_with(
            date(2026, 3, 1), tracking_country="PT", created_by="cli"
        )
        assert "Baseline 3: 2026-03-01 → 2026-03-15 (completed)" in result.output

    def test_future_date_exits_1(self, runner, mock_db):
        manager = AsyncMock()
        manager.set_baseline.side_effect = ValueError("start_date 2099-01-01 is in the future")

        with patch("jet_tracker.storage.database.Database", return_value=mock_db), \
             patch("jet_tracker.baselines.manager.BaselineManager", return_value=manager):
            result = runner.invoke(main, ["set-baseline", "2099-01-01"])

        assert result.exit_code == 1
        assert "in the future" in result.output


class TestInitDb:
    def test_creates_schema_and_seeds(self, runner, mock_db):
        with patch("jet_tracker.storage.database.Database", return_value=mock_db), \
             patch("jet_tracker.services.factory.create_schema", new=AsyncMock()) as create_schema, \
             patch(
                 "jet_tracker.sources.registry.OutletRegistry.seed_defaults",
                 new=AsyncMock(return_value=11),
             ):
            result = runner.invoke(main, ["init-db"])

        assert result.exit_code == 0, result.output
        create_schema.assert_awaited_once_with(mock_db)
        assert "Database initialized successfully" in result.output
        assert "Seeded 11 sources" in result.output

    def test_no_seed(self, runner, mock_db):
        with patch("jet_tracker.storage.database.Database", return_value=mock_db), \
             patch("jet_tracker.services.factory.create_schema", new=AsyncMock()), \
             patch(
                 "jet_tracker.sources.registry.OutletRegistry.seed_defaults",
                 new=AsyncMock(return_value=11),
             ) as seed:
            result = runner.invoke(main, ["init-db", "--no-seed"])

        assert result.exit_code == 0, result.output
        seed.assert_not_called()


class TestSources:
    @pytest.fixture
    def repo(self, mock_db):
        repo = AsyncMock()
        with patch("jet_tracker.storage.database.Database", return_value=mock_db), \
             patch("jet_tracker.sources.repository.SourcesRepository", return_value=repo):
            yield repo

    def test_list_marks_disabled(self, runner, repo):
        repo.list_sources.return_value = [
            Source(name="Público", url="https://www.publico.pt", credibility_tier=5, id=1),
            Source(name="Old Blog", url="https://blog.example.pt", credibility_tier=1, enabled=False, id=2),
        ]

        result = runner.invoke(main, ["sources", "list", "-c", "pt"])

        assert result.exit_code == 0, result.output
        repo.list_sources.assert_awaited_once_with("PT")
        assert "[ ]    1 tier=5 Público" in result.output
        assert "[x]    2 tier=1 Old Blog" in result.output
        assert "2 sources" in result.output

    def test_disable(self, runner, repo):
        repo.set_enabled.return_value = True

        result = runner.invoke(main, ["sources", "disable", "12"])

        assert result.exit_code == 0, result.output
        repo.set_enabled.assert_awaited_once_with(12, False)
        assert "Source 12 updated" in result.output

    def test_enable_unknown_id_exits_1(self, runner, repo):
        repo.set_enabled.return_value = False

        result = runner.invoke(main, ["sources", "enable", "99"])

        assert result.exit_code == 1
        repo.set_enabled.assert_awaited_once_with(99, True)

    def test_set_tier_range_checked_by_click(self, runner, repo):
        result = runner.invoke(main, ["sources", "set-tier", "3", "7"])

        assert result.exit_code == 2
        repo.set_credibility.assert_not_awaited()

    def test_set_tier(self, runner, repo):
        repo.set_credibility.return_value = True

        result = runner.invoke(main, ["sources", "set-tier", "3", "4"])

        assert result.exit_code == 0, result.output
        repo.set_credibility.assert_awaited_once_with(3, 4)


class TestUserCommands:
    def test_grant_role(self, runner, mock_db):
        roles = AsyncMock()
        with patch("jet_tracker.storage.database.Database", return_value=mock_db), \
             patch("jet_tracker.auth.roles.RolesRepository", return_value=roles):
            result = runner.invoke(main, ["grant-role", "alice"])

        assert result.exit_code == 0, result.output
        roles.grant.assert_awaited_once_with("alice", "admin")
        assert "Granted admin to alice" in result.output

    def test_set_tracking(self, runner, mock_db):
        prefs = AsyncMock()
        prefs.set_tracking.return_value = UserSettings(
            user_id="analyst-1", active_country="CZ", active_competitors=["Gripen", "F-35"]
        )
        with patch("jet_tracker.storage.database.Database", return_value=mock_db), \
             patch("jet_tracker.sources.preferences.UserSettingsRepository", return_value=prefs):
            result = runner.invoke(
                main, ["set-tracking", "--user", "analyst-1", "-c", "cz", "-f", "Gripen", "-f", "F-35"]
            )

        assert result.exit_code == 0, result.output
        prefs.set_tracking.assert_awaited_once_with("analyst-1", "CZ", ["Gripen", "F-35"])
        assert "analyst-1: CZ [Gripen, F-35]" in result.output

    def test_set_keywords(self, runner, mock_db):
        prefs = AsyncMock()
        with patch("jet_tracker.storage.database.Database", return_value=mock_db), \
             patch("jet_tracker.sources.preferences.UserSettingsRepository", return_value=prefs):
            result = runner.invoke(main, ["set-keywords", "caça", "Força Aérea"])

        assert result.exit_code == 0, result.output
        prefs.set_keywords.assert_awaited_once_with(["caça", "Força Aérea"])
        assert "Stored 2 keywords" in result.output

    def test_set_keywords_requires_one(self, runner):
        result = runner.invoke(main, ["set-keywords"])

        assert result.exit_code == 2
