"""
Integration tests for the Django-backed allocation store and engine.

Tests: savings/services/allocations/store.py (DjangoAllocationStore), savings/services/engine.py
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

from django.db import DatabaseError
from django.utils import timezone

import pytest

from savings.domain import AllocationRecord, FlexStrategy
from savings.exceptions import PersistenceError, ValidationError
from savings.models import Allocation, AllocationHistory
from savings.services import PlanningEngine
from savings.services.allocations import DjangoAllocationStore
from savings.tests.factories import AllocationFactory, AssetFactory, GoalFactory, TransactionFactory


@pytest.fixture
def store() -> DjangoAllocationStore:
    return DjangoAllocationStore()


@pytest.mark.integration
@pytest.mark.django_db
class TestDjangoAllocationStore:
    def test_replace_and_load(self, store):
        asset = AssetFactory()
        goal_a, goal_b = GoalFactory(), GoalFactory()

        store.replace_allocations(
            asset.id,
            [
                AllocationRecord(asset.id, goal_a.id, amount=Decimal("600")),
                AllocationRecord(asset.id, goal_b.id, amount=Decimal("400")),
            ],
        )

        by_goal = {r.goal_id: r.amount for r in store.load_allocations(asset_id=asset.id)}
        assert by_goal == {goal_a.id: Decimal("600"), goal_b.id: Decimal("400")}
        assert [r.asset_id for r in store.load_allocations(goal_id=goal_a.id)] == [asset.id]

    def test_replace_removes_previous_rows(self, store):
        existing = AllocationFactory(amount=Decimal("10"))
        other_goal = GoalFactory()

        store.replace_allocations(
            existing.asset_id,
            [AllocationRecord(existing.asset_id, other_goal.id, amount=Decimal("5"))],
        )

        assert list(Allocation.objects.values_list("goal_id", flat=True)) == [other_goal.id]

    def test_replace_records_history(self, store):
        asset, goal = AssetFactory(), GoalFactory()

        store.replace_allocations(asset.id, [AllocationRecord(asset.id, goal.id, amount=Decimal("5"))])
        store.replace_allocations(asset.id, [AllocationRecord(asset.id, goal.id, amount=Decimal("5"))])
        store.replace_allocations(asset.id, [])

        assert [e.amount for e in store.load_history(asset.id)] == [Decimal("5"), Decimal("0")]
        assert AllocationHistory.objects.count() == 2

    def test_failed_replace_commits_nothing(self, store):
        existing = AllocationFactory(amount=Decimal("10"))
        goal = GoalFactory()

        with patch.object(
            AllocationHistory.objects, "bulk_create", side_effect=DatabaseError("disk I/O error")
        ):
            with pytest.raises(PersistenceError):
                store.replace_allocations(
                    existing.asset_id,
                    [AllocationRecord(existing.asset_id, goal.id, amount=Decimal("5"))],
                )

        assert list(Allocation.objects.all()) == [existing]

    def test_load_asset(self, store):
        asset = AssetFactory(currency="EUR")
        TransactionFactory(asset=asset, amount=Decimal("300"))

        snapshot = store.load_asset(asset.id)

        assert snapshot.currency == "EUR"
        assert snapshot.manual_balance == Decimal("300")

    def test_load_missing_asset(self, store):
        assert store.load_asset(uuid4()) is None


@pytest.mark.integration
@pytest.mark.django_db
class TestEngineOverDjango:
    @pytest.fixture
    def engine(self, rate_provider) -> PlanningEngine:
        return PlanningEngine(DjangoAllocationStore(), rate_provider=rate_provider, display_currency="USD")

    def test_allocate_plan_and_flex(self, engine):
        today = timezone.localdate()
        asset_model = AssetFactory()
        TransactionFactory(asset=asset_model, amount=Decimal("1000"))
        car = GoalFactory(name="Car", target_amount=Decimal("12000"), deadline=today + timedelta(days=360))
        trip = GoalFactory(name="Trip", target_amount=Decimal("3600"), deadline=today + timedelta(days=360))
        asset = engine.store.load_asset(asset_model.id)
        goals = [car.to_domain(), trip.to_domain()]

        engine.allocations.update_allocations(
            asset, [(goals[0], Decimal("600")), (goals[1], Decimal("400"))]
        )
        with pytest.raises(ValidationError):
            engine.allocations.update_allocations(
                asset, [(goals[0], Decimal("700")), (goals[1], Decimal("400"))]
            )

        requirements = engine.requirements(goals, today=today)
        assert [r.goal_name for r in requirements] == ["Car", "Trip"]
        assert requirements[0].current_total == Decimal("600")
        assert requirements[0].required_monthly == Decimal("950")
        assert requirements[1].required_monthly == Decimal("266.6666666666666666666666667")

        result = engine.flex(requirements, Decimal("50"), FlexStrategy.LARGEST)
        assert result is engine.flex_session.result
        assert result.requirement_for(car.id).adjusted_monthly > 0
        assert engine.total_required(requirements) == sum(r.required_monthly for r in requirements)

    def test_deleted_goal_drops_out_of_totals(self, engine):
        asset_model = AssetFactory()
        TransactionFactory(asset=asset_model, amount=Decimal("100"))
        goal = GoalFactory()
        asset = engine.store.load_asset(asset_model.id)
        engine.allocations.update_allocations(asset, [(goal.to_domain(), Decimal("100"))])

        goal.delete()

        assert engine.allocations.unallocated_amount(asset) == Decimal("100")
