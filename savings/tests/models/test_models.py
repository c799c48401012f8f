"""
Tests for the savings Django models.

Tests: savings/models/
"""

from datetime import UTC, datetime
from decimal import Decimal

from django.db import IntegrityError

import pytest

from savings.domain import GoalStatus, PaymentFrequency
from savings.models import Allocation, AllocationHistory, Goal
from savings.tests.factories import (
    AllocationFactory,
    AllocationHistoryFactory,
    AssetFactory,
    CryptoAssetFactory,
    GoalFactory,
    TransactionFactory,
)


@pytest.mark.models
@pytest.mark.django_db
class TestGoalModel:
    def test_to_domain(self):
        goal = GoalFactory(
            name="House", target_amount=Decimal("50000"), currency="EUR", payment_frequency="weekly"
        )

        snapshot = goal.to_domain()

        assert snapshot.id == goal.id
        assert snapshot.name == "House"
        assert snapshot.target_amount == Decimal("50000")
        assert snapshot.currency == "EUR"
        assert snapshot.payment_frequency == PaymentFrequency.WEEKLY
        assert snapshot.status == GoalStatus.ACTIVE

    def test_archive(self):
        goal = GoalFactory()

        goal.archive()
        goal.refresh_from_db()

        assert goal.status == GoalStatus.ARCHIVED
        assert goal.to_domain().is_archived

    def test_active_manager(self):
        active = GoalFactory()
        GoalFactory().archive()

        assert list(Goal.objects.active()) == [active]
        assert Goal.objects.all().archived().count() == 1


@pytest.mark.models
@pytest.mark.django_db
class TestAssetModel:
    def test_manual_balance_aggregates_transactions(self):
        asset = AssetFactory()
        TransactionFactory(asset=asset, amount=Decimal("1000"))
        TransactionFactory(asset=asset, amount=Decimal("-250.5"))

        assert asset.manual_balance == Decimal("749.5")

    def test_manual_balance_empty(self):
        assert AssetFactory().manual_balance == Decimal("0")

    def test_to_domain_includes_ledger(self):
        asset = CryptoAssetFactory()
        TransactionFactory(asset=asset, amount=Decimal("2"), date=datetime(2025, 1, 2, tzinfo=UTC))
        TransactionFactory(asset=asset, amount=Decimal("1"), date=datetime(2025, 1, 1, tzinfo=UTC))

        snapshot = asset.to_domain()

        assert snapshot.id == asset.id
        assert snapshot.has_live_source
        assert snapshot.manual_balance == Decimal("3")
        assert [t.amount for t in snapshot.transactions] == [Decimal("1"), Decimal("2")]

    def test_blank_address_is_not_a_live_source(self):
        asset = AssetFactory(address="", chain_id="")
        assert not asset.to_domain().has_live_source


@pytest.mark.models
@pytest.mark.django_db
class TestAllocationModel:
    def test_unique_per_asset_and_goal(self):
        allocation = AllocationFactory()

        with pytest.raises(IntegrityError):
            AllocationFactory(asset=allocation.asset, goal=allocation.goal)

    def test_to_record(self):
        allocation = AllocationFactory(amount=Decimal("42.5"))

        record = allocation.to_record()

        assert record.key == (allocation.asset_id, allocation.goal_id)
        assert record.amount == Decimal("42.5")
        assert not record.is_legacy

    def test_legacy_percentage_row(self):
        allocation = AllocationFactory(amount=None, percentage=Decimal("0.25"))
        assert allocation.to_record().is_legacy

    def test_deleting_goal_cascades(self):
        allocation = AllocationFactory()
        AllocationHistoryFactory(asset=allocation.asset, goal=allocation.goal)

        allocation.goal.delete()

        assert Allocation.objects.count() == 0
        assert AllocationHistory.objects.count() == 0

    def test_deleting_asset_cascades(self):
        allocation = AllocationFactory()

        allocation.asset.delete()

        assert Allocation.objects.count() == 0

    def test_manager_lookups(self):
        allocation = AllocationFactory()
        AllocationFactory()

        assert list(Allocation.objects.for_asset(allocation.asset_id)) == [allocation]
        assert list(Allocation.objects.for_goal(allocation.goal_id)) == [allocation]
