"""
Root-level pytest fixtures for the savings test suite.

Fixture Hierarchy:
- today / fixed_now: Frozen clock values
- store: Empty in-memory allocation store
- make_asset / make_goal: Builders that register domain objects with the store
- allocation_service -> goal_calculation -> monthly_planning: Service stack over the store
- flex_service: Flex adjustment service with the default policy
"""

from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest

from savings.domain import Asset, Goal, Transaction
from savings.services.allocations import AllocationService, InMemoryAllocationStore
from savings.services.balances import BalanceService
from savings.services.goal_calculation import GoalCalculationService
from savings.services.planning import FlexAdjustmentService, MonthlyPlanningService, PlanningPolicy

# Import mock fixtures to make them available globally
from savings.tests.fixtures.mocks import (  # noqa: F401
    balance_provider,
    converter,
    failing_balance_provider,
    failing_rate_provider,
    make_rate_provider,
    mock_yf_download,
    rate_provider,
)


# ============================================================================
# CLOCK FIXTURES
# ============================================================================


@pytest.fixture
def today() -> date:
    return date(2025, 1, 1)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)


# ============================================================================
# DOMAIN BUILDERS
# ============================================================================


@pytest.fixture
def store(fixed_now: datetime) -> InMemoryAllocationStore:
    return InMemoryAllocationStore(clock=lambda: fixed_now)


@pytest.fixture
def make_asset(store: InMemoryAllocationStore, fixed_now: datetime) -> Callable[..., Asset]:
    """
    Build an asset whose manual ledger sums to ``balance`` and register it.

    Usage:
        asset = make_asset(Decimal("1000"), currency="USD")
    """

    def _make(balance: Decimal = Decimal("1000"), currency: str = "USD", **kwargs) -> Asset:
        transactions = (Transaction(amount=Decimal(balance), date=fixed_now),) if balance else ()
        asset = Asset(currency=currency, transactions=transactions, **kwargs)
        store.add_asset(asset)
        return asset

    return _make


@pytest.fixture
def make_goal(today: date) -> Callable[..., Goal]:
    """
    Build a goal due ``days`` after ``today``.

    Usage:
        goal = make_goal("Car", Decimal("12000"), days=360)
    """

    def _make(
        name: str = "Goal",
        target: Decimal = Decimal("12000"),
        days: int = 360,
        currency: str = "USD",
        **kwargs,
    ) -> Goal:
        return Goal(
            name=name,
            target_amount=Decimal(target),
            currency=currency,
            deadline=today + timedelta(days=days),
            start_date=today,
            **kwargs,
        )

    return _make


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def policy() -> PlanningPolicy:
    return PlanningPolicy()


@pytest.fixture
def allocation_service(store: InMemoryAllocationStore, policy: PlanningPolicy) -> AllocationService:
    return AllocationService(store, BalanceService(), policy)


@pytest.fixture
def goal_calculation(
    store: InMemoryAllocationStore, allocation_service: AllocationService, converter
) -> GoalCalculationService:
    return GoalCalculationService(store, allocation_service, converter)


@pytest.fixture
def monthly_planning(
    goal_calculation: GoalCalculationService, policy: PlanningPolicy, today: date
) -> MonthlyPlanningService:
    return MonthlyPlanningService(goal_calculation, policy, clock=lambda: today)


@pytest.fixture
def flex_service(policy: PlanningPolicy) -> FlexAdjustmentService:
    return FlexAdjustmentService(policy)
