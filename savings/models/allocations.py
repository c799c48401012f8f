from __future__ import annotations

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from savings.domain import AllocationHistoryEntry, AllocationRecord
from savings.managers import AllocationManager
from savings.models.assets import Asset
from savings.models.goals import Goal


class Allocation(models.Model):
    """Join row claiming a share of one asset for one goal.

    ``amount`` is canonical (asset currency). ``percentage`` (0-1) only exists
    on legacy rows and is converted to an amount the first time the asset's
    allocations are loaded by the allocation service.
    """

    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name="allocations")
    goal = models.ForeignKey(Goal, on_delete=models.CASCADE, related_name="allocations")
    amount = models.DecimalField(
        max_digits=28,
        decimal_places=10,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
    )
    percentage = models.DecimalField(
        max_digits=11,
        decimal_places=10,
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(1)],
    )
    created_date = models.DateTimeField(auto_now_add=True)
    modified_date = models.DateTimeField(auto_now=True)

    objects = AllocationManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["asset", "goal"],
                name="unique_allocation_per_asset_goal",
            )
        ]
        ordering = ["asset", "goal"]

    def __str__(self) -> str:
        return f"{self.asset} -> {self.goal.name}: {self.amount}"

    def to_record(self) -> AllocationRecord:
        return AllocationRecord(
            asset_id=self.asset_id,
            goal_id=self.goal_id,
            amount=self.amount,
            percentage=self.percentage,
        )


class AllocationHistory(models.Model):
    """Audit trail of allocation amount changes (amount 0 marks a removal)."""

    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name="allocation_history")
    goal = models.ForeignKey(Goal, on_delete=models.CASCADE, related_name="allocation_history")
    amount = models.DecimalField(max_digits=28, decimal_places=10)
    recorded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["recorded_at"]
        verbose_name_plural = "Allocation History"

    def __str__(self) -> str:
        return f"{self.asset_id} -> {self.goal_id}: {self.amount} at {self.recorded_at}"

    def to_entry(self) -> AllocationHistoryEntry:
        return AllocationHistoryEntry(
            asset_id=self.asset_id,
            goal_id=self.goal_id,
            amount=self.amount,
            recorded_at=self.recorded_at,
        )
