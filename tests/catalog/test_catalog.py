"""Tests for the assembled catalog and the SQL of each view family."""

from datetime import timedelta

import pytest

from explorer_views.catalog import (
    PROFILE_TRANSACTIONS_INDEX_GROUP,
    STAKING_GROUP,
    STATISTICS_GROUP,
    DerivedView,
    ObjectKind,
    SecondaryIndex,
    Shape,
    ViewGraph,
)
from explorer_views.catalog import counters, dashboard, leaderboards, orderbook, profiles, series, staking
from explorer_views.catalog.dashboard import DASHBOARD_COLUMNS

PUBLISHED = {
    "statistic_social_leaderboard",
    "statistic_nft_leaderboard",
    "statistic_defi_leaderboard",
    "statistic_txn_count_monthly",
    "statistic_wallet_count_monthly",
    "statistic_txn_count_daily",
    "statistic_new_wallet_count_daily",
    "statistic_active_wallet_count_daily",
    "statistic_dashboard",
    "statistic_profile_transactions",
    "statistic_profile_top_nft_owners",
    "statistic_profile_earnings",
    "statistic_profile_earnings_breakdown_counts",
    "statistic_portfolio_value",
    "dao_coin_limit_order_bid_asks",
}


def _names(objects) -> list[str]:
    return [obj.name for obj in objects]


class TestCatalogShape:
    """Whole-catalog invariants."""

    def test_groups_in_migration_order(self, catalog: ViewGraph) -> None:
        assert catalog.groups == [STATISTICS_GROUP, STAKING_GROUP, PROFILE_TRANSACTIONS_INDEX_GROUP]

    def test_plain_views(self, catalog: ViewGraph) -> None:
        plain = {obj.name for obj in catalog if obj.kind is ObjectKind.VIEW}
        assert plain == {
            "dao_coin_limit_order_bid_asks",
            "dao_coin_limit_order_max_bids",
            "dao_coin_limit_order_min_asks",
            "statistic_dashboard",
        }

    def test_every_materialized_view_has_one_unique_index(self, catalog: ViewGraph) -> None:
        for obj in catalog:
            if isinstance(obj, DerivedView) and obj.materialized:
                statements = obj.create_statements()
                unique = [s for s in statements if s.startswith("CREATE UNIQUE INDEX")]
                assert len(unique) == 1, obj.name
                assert obj.refresh_interval is not None, obj.name

    def test_index_names_are_distinct(self, catalog: ViewGraph) -> None:
        names = [obj.index_name for obj in catalog if isinstance(obj, DerivedView) and obj.materialized]
        assert len(names) == len(set(names))

    def test_published_set(self, catalog: ViewGraph) -> None:
        published = catalog.published()
        assert {v.name for v in published} == PUBLISHED
        assert len(published) == 15

    def test_drop_order_is_reverse_of_install(self, catalog: ViewGraph) -> None:
        for group in catalog.groups:
            assert catalog.drop_order(group) == list(reversed(catalog.install_order(group)))

    def test_install_order_is_deterministic(self, catalog: ViewGraph) -> None:
        assert _names(catalog.install_order()) == _names(catalog.install_order())

    def test_helpers_come_first(self, catalog: ViewGraph) -> None:
        order = _names(catalog.install_order(STATISTICS_GROUP))
        assert order.index("public_key_first_transaction") < order.index("statistic_wallet_count_all")
        assert order.index("get_transaction_count") < order.index("statistic_txn_count_all")


class TestRefreshOrder:
    """Leaves are refreshed before the views that read them."""

    @pytest.mark.parametrize(
        ("leaf", "composite"),
        [
            ("statistic_social_leaderboard_likes", "statistic_social_leaderboard"),
            ("statistic_social_leaderboard_comments", "statistic_social_leaderboard"),
            ("statistic_cc_balance_totals", "statistic_portfolio_value"),
            ("statistic_profile_cc_royalties", "statistic_profile_earnings"),
            ("statistic_profile_diamonds_given", "statistic_profile_earnings_breakdown_counts"),
            ("statistic_profile_deso_token_sell_orders", "statistic_profile_earnings_breakdown_counts"),
        ],
    )
    def test_leaf_before_composite(self, catalog: ViewGraph, leaf: str, composite: str) -> None:
        order = _names(catalog.refresh_order())
        assert order.index(leaf) < order.index(composite)

    def test_dashboard_is_not_refreshed(self, catalog: ViewGraph) -> None:
        assert "statistic_dashboard" not in _names(catalog.refresh_order())


class TestCounters:
    """Tests for the scalar counters."""

    def test_singletons_key_on_id(self) -> None:
        for view in counters.OBJECTS:
            assert view.shape is Shape.SINGLETON
            assert view.unique_key == ("id",)
            assert "0 as id" in view.body

    def test_kind_counter_sums_partition_estimates(self) -> None:
        body = counters.txn_count_creator_coin.body
        assert "get_transaction_count(11)" in body
        assert "get_transaction_count(14)" in body

    def test_message_count_sums_both_tables(self) -> None:
        body = counters.message_count.body
        assert body.startswith("SELECT SUM(count) as count, 0 as id")
        assert "'message_entry'" in body
        assert "'new_message_entry'" in body

    def test_wallet_count_reads_planner_estimate(self) -> None:
        assert "COALESCE(reltuples::bigint, 0)" in counters.wallet_count_all.body


class TestDashboard:
    """Tests for the dashboard view."""

    def test_nineteen_columns_in_order(self) -> None:
        assert len(DASHBOARD_COLUMNS) == 19
        body = dashboard.statistic_dashboard.body
        positions = [body.index(f" as {alias}") for alias, _, _ in DASHBOARD_COLUMNS]
        assert positions == sorted(positions)

    def test_cross_joins_every_counter(self) -> None:
        body = dashboard.statistic_dashboard.body
        assert body.count("CROSS JOIN") == 18
        assert "statistic_block_height_current.height as block_height_current" in body

    def test_plain_view(self) -> None:
        view = dashboard.statistic_dashboard
        assert not view.materialized
        assert view.create_statements() == [f"CREATE VIEW statistic_dashboard AS\n{view.body.strip()}"]
        assert view.comment_statement() == "COMMENT ON VIEW statistic_dashboard IS E'@name dashboardStat'"


class TestLeaderboards:
    """Tests for the thirty-day leaderboards."""

    def test_constituents_windowed_and_hidden(self) -> None:
        for view in leaderboards.CONSTITUENTS:
            assert "INTERVAL '30 days'" in view.body
            assert view.comment is not None and view.comment.omitted
            assert view.unique_key == ("poster_public_key",)

    def test_leaderboards_capped(self) -> None:
        for view in (
            leaderboards.social_leaderboard,
            leaderboards.nft_leaderboard,
            leaderboards.defi_leaderboard,
        ):
            assert f"limit {leaderboards.LEADERBOARD_SIZE}" in view.body.lower()

    def test_social_reads_all_constituents(self) -> None:
        for constituent in leaderboards.CONSTITUENTS:
            assert constituent.name in leaderboards.social_leaderboard.depends_on

    def test_intervals(self) -> None:
        assert leaderboards.social_leaderboard.refresh_interval == timedelta(minutes=1)
        assert leaderboards.defi_leaderboard.refresh_interval == timedelta(minutes=30)


class TestSeries:
    """Tests for the time-bucketed series."""

    def test_series_shape(self) -> None:
        for view in series.OBJECTS:
            assert view.shape is Shape.SERIES
            assert "row_number() OVER () AS id" in view.body
            assert view.refresh_interval == timedelta(minutes=30)

    def test_monthly_window(self) -> None:
        body = series.txn_count_monthly.body
        assert "date_trunc('month', t.timestamp) AS month" in body
        assert "INTERVAL '1 year'" in body
        assert series.txn_count_monthly.unique_key == ("month",)


class TestOrderbook:
    """Tests for the bid/ask views."""

    def test_bid_asks_reads_both_sides(self) -> None:
        assert set(orderbook.bid_asks.depends_on) >= {
            orderbook.max_bids.name,
            orderbook.min_asks.name,
        }

    def test_bid_asks_published_name(self) -> None:
        assert orderbook.bid_asks.comment is not None
        assert orderbook.bid_asks.comment.name == "deso_token_limit_order_bid_asks"

    def test_bids_and_asks_split_by_operation(self) -> None:
        assert "operation_type = 2" in orderbook.max_bids.body
        assert "operation_type = 1" in orderbook.min_asks.body
        assert orderbook.ASK_SCALE in orderbook.min_asks.body

    def test_market_price_is_midpoint(self) -> None:
        assert "(bids.bid + asks.ask) / 2::numeric AS market_price" in orderbook.bid_asks.body


class TestProfiles:
    """Tests for the per-profile views."""

    def test_breakdown_keeps_published_column_spelling(self) -> None:
        assert "token_sell_order_nanos_fillede" in profiles.earnings_breakdown_counts.body

    def test_breakdown_reads_every_leaf(self) -> None:
        for leaf in profiles.BREAKDOWN_LEAVES:
            assert leaf.name in profiles.earnings_breakdown_counts.depends_on

    def test_leaf_index_names(self) -> None:
        assert (
            profiles.diamonds_given.index_name
            == "statistic_profile_statistic_profile_diamonds_given_unique_idx"
        )
        assert profiles.cc_buyers.index_name == "statistic_profile_cc_buyers_unique_idx"

    def test_profile_transactions_secondary_index(self, catalog: ViewGraph) -> None:
        index = catalog["statistic_profile_transactions_latest_idx"]
        assert isinstance(index, SecondaryIndex)
        assert index.create_statements() == [
            "CREATE INDEX IF NOT EXISTS statistic_profile_transactions_latest_idx "
            "ON statistic_profile_transactions (latest_transaction_timestamp desc)"
        ]


class TestStaking:
    """Tests for the proof-of-stake views."""

    def test_validator_percentages_guard_empty_chain(self) -> None:
        body = staking.validator_stats.body
        assert "nullif(staking_summary.global_stake_amount_nanos::float, 0) as percent_total_stake" in body
        assert (
            "nullif(staking_summary.num_epochs_in_leader_schedule::float, 0) as percent_epochs_in_leader_schedule"
            in body
        )
