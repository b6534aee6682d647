"""Tests for the explorer-views CLI."""

from unittest.mock import AsyncMock, patch

import pytest

from explorer_views import cli
from explorer_views.catalog import ViewGraph
from explorer_views.catalog.remote import ForeignServer


class TestForwardSql:
    """Tests for forward_sql."""

    def test_explorer_target_covers_every_group(self, catalog: ViewGraph) -> None:
        statements = list(cli.forward_sql(catalog, cli.TARGET_EXPLORER))

        assert statements[0].startswith("CREATE TABLE public_key_first_transaction")
        assert "COMMENT ON FUNCTION hex_to_numeric IS E'@omit'" in statements
        assert any(s.startswith("CREATE MATERIALIZED VIEW validator_stats") for s in statements)
        assert statements[-1].startswith("CREATE INDEX IF NOT EXISTS statistic_profile_transactions_latest_idx")

    def test_comments_follow_their_objects(self, catalog: ViewGraph) -> None:
        statements = list(cli.forward_sql(catalog, cli.TARGET_EXPLORER))
        created = statements.index("CREATE VIEW statistic_dashboard AS\n" + catalog["statistic_dashboard"].body.strip())
        commented = statements.index("COMMENT ON VIEW statistic_dashboard IS E'@name dashboardStat'")
        assert created < commented

    def test_views_target_needs_server(self, catalog: ViewGraph) -> None:
        with pytest.raises(ValueError):
            list(cli.forward_sql(catalog, cli.TARGET_VIEWS))

    def test_views_target(self, catalog: ViewGraph) -> None:
        server = ForeignServer("db", 5432, "postgres", "postgres", "pw")
        statements = list(cli.forward_sql(catalog, cli.TARGET_VIEWS, server))
        assert statements[0] == "CREATE EXTENSION IF NOT EXISTS postgres_fdw"


class TestMain:
    """Tests for the command dispatch."""

    def test_plan(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main(["plan"]) == 0

        out = capsys.readouterr().out
        assert "[statistics]" in out
        assert "[staking]" in out
        assert "[refresh]" in out
        assert "statistic_social_leaderboard" in out

    def test_sql_views(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
        monkeypatch.setenv("DB_HOST", "explorer-db")
        assert cli.main(["sql", "--target", "views"]) == 0

        out = capsys.readouterr().out
        assert "host 'explorer-db'" in out
        assert "CREATE VIEW statistic_dashboard_remote_view AS" in out

    def test_sql_rejects_unknown_target(self) -> None:
        with pytest.raises(SystemExit):
            cli.main(["sql", "--target", "elsewhere"])

    def test_refresh_requires_opt_in(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/explorer")
        monkeypatch.setenv("CALCULATE_EXPLORER_STATISTICS", "false")

        with patch.object(cli, "run_refresh", new=AsyncMock(return_value=0)) as run_refresh:
            assert cli.main(["refresh"]) == 1
        run_refresh.assert_not_called()

    def test_refresh_once(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/explorer")
        monkeypatch.setenv("CALCULATE_EXPLORER_STATISTICS", "false")

        with patch.object(cli, "run_refresh", new=AsyncMock(return_value=0)) as run_refresh:
            assert cli.main(["refresh", "--once"]) == 0
        assert run_refresh.await_args.kwargs == {"once": True}


class TestRunRefresh:
    """Tests for run_refresh with a mocked engine."""

    @pytest.mark.asyncio
    async def test_once_reports_failures(self, catalog: ViewGraph, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/explorer")
        engine = AsyncMock()
        settings = cli.get_settings()

        with (
            patch.object(cli, "create_refresh_engine", return_value=engine),
            patch.object(cli, "refresh_once", new=AsyncMock(return_value={"v": "boom"})) as refresh_once,
        ):
            assert await cli.run_refresh(settings, catalog, once=True) == 1

        refresh_once.assert_awaited_once()
        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_daemon_serves_planned_jobs(self, catalog: ViewGraph, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/explorer")
        engine = AsyncMock()
        settings = cli.get_settings()

        with (
            patch.object(cli, "create_refresh_engine", return_value=engine),
            patch.object(cli, "serve", new=AsyncMock(return_value={})) as serve,
        ):
            assert await cli.run_refresh(settings, catalog, once=False) == 0

        served_engine, jobs, stop = serve.await_args.args
        assert served_engine is engine
        assert [job.name for job in jobs[1:]] == [view.name for view in catalog.refresh_order()]
        assert not stop.is_set()
        engine.dispose.assert_awaited_once()
