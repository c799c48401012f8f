from __future__ import annotations

import uuid
from datetime import date

from django.db import models
from django.utils import timezone

from savings.domain import Goal as GoalSnapshot
from savings.domain import GoalStatus, PaymentFrequency
from savings.managers import GoalManager


class Goal(models.Model):
    """A savings target funded through allocations of one or more assets."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    target_amount = models.DecimalField(max_digits=28, decimal_places=10)
    currency = models.CharField(max_length=16, default="USD")
    deadline = models.DateField()
    start_date = models.DateField(default=date.today)
    payment_frequency = models.CharField(
        max_length=16,
        choices=[(f.value, f.name.title()) for f in PaymentFrequency],
        default=PaymentFrequency.MONTHLY.value,
    )
    archived_date = models.DateTimeField(null=True, blank=True)
    created_date = models.DateTimeField(auto_now_add=True)
    modified_date = models.DateTimeField(auto_now=True)

    objects = GoalManager()

    class Meta:
        ordering = ["deadline", "name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.target_amount} {self.currency})"

    @property
    def status(self) -> GoalStatus:
        return GoalStatus.ARCHIVED if self.archived_date else GoalStatus.ACTIVE

    def archive(self) -> None:
        self.archived_date = timezone.now()
        self.save(update_fields=["archived_date", "modified_date"])

    def to_domain(self) -> GoalSnapshot:
        return GoalSnapshot(
            id=self.id,
            name=self.name,
            target_amount=self.target_amount,
            currency=self.currency,
            deadline=self.deadline,
            start_date=self.start_date,
            payment_frequency=PaymentFrequency(self.payment_frequency),
            status=self.status,
        )
