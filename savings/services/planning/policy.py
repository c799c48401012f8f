"""
Planning policy constants.

Goal status and risk classification are defined relative to these exact
values (including the 30-day month), so they are named and overridable
rather than derived from calendar math. Overrides come from the Django
``SAVINGS_PLANNING`` setting.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any

from django.conf import settings

import structlog

logger = structlog.get_logger(__name__)

DAYS_PER_MONTH = 30
"""Day-to-month conversion used for months remaining."""

ALLOCATION_EPSILON = Decimal("0.0000001")
"""Tolerance when comparing allocation sums to an asset balance."""

CRITICAL_MONTHLY_AMOUNT = Decimal("10000")
"""Required monthly contribution above which a goal is critical."""

ATTENTION_MONTHLY_AMOUNT = Decimal("5000")
"""Required monthly contribution above which a goal needs attention."""

CRITICAL_PROGRESS = Decimal("0.10")
"""Progress below which a goal with little time left is critical."""

CRITICAL_MONTHS = 1
"""Months remaining at or below which low progress is critical."""

ATTENTION_MONTHS = 1
"""Months remaining at or below which any unfinished goal needs attention."""

HIGH_RISK_MONTHS = 2
"""Months remaining at or below which an attention-status goal is high risk."""

FLEX_HIGH_RISK_REDUCTION_PCT = Decimal("50")
"""Reduction (percent of original) above which an adjustment is high risk."""

FLEX_MEDIUM_RISK_REDUCTION_PCT = Decimal("25")
"""Reduction (percent of original) above which an adjustment is medium risk."""


@dataclass(frozen=True)
class PlanningPolicy:
    """Bundle of policy constants used by planning and flex calculations."""

    days_per_month: int = DAYS_PER_MONTH
    allocation_epsilon: Decimal = ALLOCATION_EPSILON
    critical_monthly_amount: Decimal = CRITICAL_MONTHLY_AMOUNT
    attention_monthly_amount: Decimal = ATTENTION_MONTHLY_AMOUNT
    critical_progress: Decimal = CRITICAL_PROGRESS
    critical_months: int = CRITICAL_MONTHS
    attention_months: int = ATTENTION_MONTHS
    high_risk_months: int = HIGH_RISK_MONTHS
    flex_high_risk_reduction_pct: Decimal = FLEX_HIGH_RISK_REDUCTION_PCT
    flex_medium_risk_reduction_pct: Decimal = FLEX_MEDIUM_RISK_REDUCTION_PCT

    def __post_init__(self) -> None:
        if self.days_per_month <= 0:
            raise ValueError(f"days_per_month must be positive, got {self.days_per_month}")
        if self.attention_monthly_amount > self.critical_monthly_amount:
            raise ValueError("attention_monthly_amount cannot exceed critical_monthly_amount")

    @classmethod
    def from_mapping(cls, overrides: dict[str, Any]) -> PlanningPolicy:
        """Build a policy from upper- or lower-case keys; unknown keys are ignored."""

        known = {f.name: f for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, raw in overrides.items():
            name = key.lower()
            if name not in known:
                logger.warning("unknown_planning_setting", key=key)
                continue
            default = known[name].default
            values[name] = Decimal(str(raw)) if isinstance(default, Decimal) else int(raw)
        return cls(**values)

    @classmethod
    def from_settings(cls) -> PlanningPolicy:
        """Build a policy from ``settings.SAVINGS_PLANNING`` (module constants as fallback)."""

        return cls.from_mapping(getattr(settings, "SAVINGS_PLANNING", {}) or {})
