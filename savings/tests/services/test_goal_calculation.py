"""
Tests for goal totals and progress.

Tests: savings/services/goal_calculation.py
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from savings.domain import AllocationRecord
from savings.exceptions import RateUnavailable
from savings.services.allocations import AllocationService
from savings.services.balances import BalanceService
from savings.services.goal_calculation import GoalCalculationService


@pytest.mark.services
@pytest.mark.unit
class TestCurrentTotal:
    def test_same_currency(self, goal_calculation, allocation_service, make_asset, make_goal):
        asset = make_asset(Decimal("1000"))
        goal = make_goal(target=Decimal("12000"))
        allocation_service.update_allocations(asset, [(goal, Decimal("600"))])

        assert goal_calculation.current_total(goal) == Decimal("600")
        assert goal_calculation.progress(goal) == Decimal("0.05")

    def test_sums_converted_contributions(
        self, goal_calculation, allocation_service, make_asset, make_goal
    ):
        goal = make_goal(target=Decimal("5000"))
        usd = make_asset(Decimal("1000"))
        eur = make_asset(Decimal("1000"), currency="EUR")
        allocation_service.update_allocations(usd, [(goal, Decimal("500"))])
        allocation_service.update_allocations(eur, [(goal, Decimal("1000"))])

        valuation = goal_calculation.valuation(goal)

        assert valuation.total == Decimal("1600")
        assert [c.asset_id for c in valuation.contributions] == [eur.id, usd.id]
        assert valuation.contributions[0].allocated_amount == Decimal("1000")
        assert not valuation.is_stale

    def test_no_allocations(self, goal_calculation, make_goal):
        goal = make_goal()
        assert goal_calculation.current_total(goal) == Decimal("0")
        assert goal_calculation.progress(goal) == Decimal("0")

    def test_zero_target_progress(self, goal_calculation, allocation_service, make_asset, make_goal):
        asset = make_asset(Decimal("100"))
        goal = make_goal(target=Decimal("0"))
        allocation_service.update_allocations(asset, [(goal, Decimal("100"))])

        assert goal_calculation.progress(goal) == Decimal("0")

    def test_over_funded_progress_exceeds_one(
        self, goal_calculation, allocation_service, make_asset, make_goal
    ):
        asset = make_asset(Decimal("1500"))
        goal = make_goal(target=Decimal("1000"))
        allocation_service.update_allocations(asset, [(goal, Decimal("1500"))])

        assert goal_calculation.progress(goal) == Decimal("1.5")

    def test_missing_asset_is_skipped(self, goal_calculation, store, make_goal):
        goal = make_goal()
        orphan = AllocationRecord(asset_id=goal.id, goal_id=goal.id, amount=Decimal("10"))
        store.replace_allocations(goal.id, [orphan])

        assert goal_calculation.current_total(goal) == Decimal("0")


@pytest.mark.services
@pytest.mark.unit
class TestConversionFallback:
    def test_failure_uses_last_good_value(self, store, allocation_service, make_asset, make_goal):
        converter = MagicMock()
        converter.convert.side_effect = [Decimal("1100"), RateUnavailable("down")]
        service = GoalCalculationService(store, allocation_service, converter)
        asset = make_asset(Decimal("1000"), currency="EUR")
        goal = make_goal()
        allocation_service.update_allocations(asset, [(goal, Decimal("1000"))])

        first = service.valuation(goal)
        second = service.valuation(goal)

        assert first.total == Decimal("1100")
        assert not first.is_stale
        assert second.total == Decimal("1100")
        assert second.is_stale

    def test_failure_without_history_contributes_zero(
        self, store, allocation_service, failing_rate_provider, make_asset, make_goal
    ):
        from savings.services.rates import CurrencyConverter

        service = GoalCalculationService(
            store, allocation_service, CurrencyConverter(failing_rate_provider)
        )
        goal = make_goal()
        eur = make_asset(Decimal("1000"), currency="EUR")
        usd = make_asset(Decimal("200"))
        allocation_service.update_allocations(eur, [(goal, Decimal("1000"))])
        allocation_service.update_allocations(usd, [(goal, Decimal("200"))])

        valuation = service.valuation(goal)

        assert valuation.total == Decimal("200")
        assert valuation.is_stale

    def test_no_converter_for_foreign_currency(
        self, store, allocation_service, make_asset, make_goal
    ):
        service = GoalCalculationService(store, allocation_service, converter=None)
        asset = make_asset(Decimal("1"), currency="BTC")
        goal = make_goal()
        allocation_service.update_allocations(asset, [(goal, Decimal("1"))])

        valuation = service.valuation(goal)

        assert valuation.total == Decimal("0")
        assert valuation.is_stale


@pytest.mark.services
@pytest.mark.unit
class TestManualTotal:
    def test_ignores_live_balance(self, store, converter, balance_provider, make_asset, make_goal):
        allocations = AllocationService(store, BalanceService(balance_provider))
        service = GoalCalculationService(store, allocations, converter)
        asset = make_asset(Decimal("1"), currency="ETH", address="0xabc", chain_id="ETH")
        goal = make_goal(currency="ETH")
        store.replace_allocations(asset.id, [AllocationRecord(asset_id=asset.id, goal_id=goal.id)])

        assert service.current_total(goal) == Decimal("3.5")
        assert service.manual_total(goal) == Decimal("1")
        balance_provider.fetch_balance.assert_called_once()


@pytest.mark.services
@pytest.mark.unit
class TestBalanceStaleness:
    def test_failed_live_fetch_marks_valuation_stale(
        self, store, failing_balance_provider, make_asset, make_goal
    ):
        allocations = AllocationService(store, BalanceService(failing_balance_provider))
        service = GoalCalculationService(store, allocations)
        asset = make_asset(Decimal("1000"), address="0xabc", chain_id="ETH")
        goal = make_goal()
        store.replace_allocations(asset.id, [AllocationRecord(asset_id=asset.id, goal_id=goal.id)])

        valuation = service.valuation(goal)

        assert valuation.total == Decimal("1000")
        assert valuation.contributions[0].is_stale
        assert valuation.is_stale
        assert valuation.last_updated is None
        failing_balance_provider.fetch_balance.assert_called_once()

    def test_fresh_live_balance_reports_fetch_time(
        self, store, balance_provider, fixed_now, make_asset, make_goal
    ):
        balances = BalanceService(balance_provider, clock=lambda: fixed_now)
        service = GoalCalculationService(store, AllocationService(store, balances))
        asset = make_asset(Decimal("1"), currency="ETH", address="0xabc", chain_id="ETH")
        goal = make_goal(currency="ETH")
        store.replace_allocations(asset.id, [AllocationRecord(asset_id=asset.id, goal_id=goal.id)])

        valuation = service.valuation(goal)

        assert valuation.total == Decimal("3.5")
        assert not valuation.is_stale
        assert valuation.last_updated == fixed_now
        assert valuation.contributions[0].balance_updated == fixed_now
