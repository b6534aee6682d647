"""Tests for the auxiliary table and helper functions."""

from decimal import Decimal

import pytest

from explorer_views.catalog import helpers
from explorer_views.catalog.helpers import (
    CREATOR_COIN_TRADE_FEE_BASIS_POINTS,
    DIAMOND_LEVEL_NANOS,
    cc_nanos_total_sell_value,
    diamond_nanos_case,
)


class TestSellValue:
    """Tests for the bonding-curve sell value."""

    def test_selling_entire_supply_returns_locked_net_of_fee(self) -> None:
        value = cc_nanos_total_sell_value(1_000_000, 500_000, 1_000_000)
        expected = Decimal(500_000) * (10000 - CREATOR_COIN_TRADE_FEE_BASIS_POINTS) / 10000
        assert value == expected

    def test_monotonic_in_amount(self) -> None:
        supply, locked = 10**9, 10**8
        values = [cc_nanos_total_sell_value(amount, locked, supply) for amount in (10**6, 10**7, 10**8, 10**9)]
        assert values == sorted(values)
        assert all(v > 0 for v in values)

    def test_bounded_by_locked(self) -> None:
        assert cc_nanos_total_sell_value(10**8, 10**8, 10**9) < 10**8

    def test_function_definition_uses_constants(self) -> None:
        definition = helpers.sell_value_function.definition
        assert "reserve_ratio NUMERIC := 0.3333333" in definition
        assert "trade_fee_basis_points NUMERIC := 100" in definition
        assert definition.endswith("LANGUAGE plpgsql IMMUTABLE")


class TestDiamondLevels:
    """Tests for the diamond level translation."""

    def test_case_lists_every_level(self) -> None:
        case = diamond_nanos_case("de.diamond_level")
        assert case.startswith("CASE de.diamond_level")
        for level, nanos in DIAMOND_LEVEL_NANOS.items():
            assert f"WHEN {level} THEN {nanos}" in case
        # Unknown levels map to NULL.
        assert "ELSE" not in case

    @pytest.mark.parametrize(("level", "nanos"), [(1, 50_000), (8, 450_000_000_000)])
    def test_endpoints(self, level: int, nanos: int) -> None:
        assert DIAMOND_LEVEL_NANOS[level] == nanos


class TestFirstTransactionTable:
    """Tests for public_key_first_transaction and its top-up."""

    def test_create_statements(self) -> None:
        statements = helpers.first_transaction_table.create_statements()
        assert statements[0].startswith("CREATE TABLE public_key_first_transaction")
        assert "public_key VARCHAR PRIMARY KEY" in statements[0]
        assert len([s for s in statements if s.startswith("CREATE INDEX")]) == 2
        assert statements[-1].startswith("INSERT INTO public_key_first_transaction")

    def test_top_up_is_additive(self) -> None:
        definition = helpers.top_up_function.definition
        assert "SELECT MAX(timestamp) INTO max_timestamp" in definition
        assert "WHERE b.timestamp > max_timestamp" in definition
        assert "ON CONFLICT (public_key) DO NOTHING" in definition

    def test_transaction_count_validates_range(self) -> None:
        definition = helpers.transaction_count_function.definition
        assert "IF transaction_type < 1 OR transaction_type > 33 THEN" in definition
        assert "RAISE EXCEPTION" in definition
        assert "USING ERRCODE = 'invalid_parameter_value'" in definition

    def test_drop_statements(self) -> None:
        assert helpers.first_transaction_table.drop_statement() == (
            "DROP TABLE IF EXISTS public_key_first_transaction"
        )
        assert helpers.top_up_function.drop_statement() == (
            "DROP FUNCTION IF EXISTS refresh_public_key_first_transaction"
        )
