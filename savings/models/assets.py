from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone

from savings.domain import Asset as AssetSnapshot
from savings.domain import Transaction as TransactionSnapshot


class Asset(models.Model):
    """A crypto or manual balance that can be shared across goals."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    currency = models.CharField(max_length=16, help_text="Currency or token symbol (e.g. BTC)")
    address = models.CharField(max_length=255, null=True, blank=True)
    chain_id = models.CharField(max_length=32, null=True, blank=True)
    created_date = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["currency", "created_date"]

    def __str__(self) -> str:
        if self.address:
            return f"{self.currency} @ {self.chain_id}:{self.address}"
        return self.currency

    @property
    def manual_balance(self) -> Decimal:
        total = self.transactions.aggregate(total=models.Sum("amount"))["total"]
        return total or Decimal("0")

    def to_domain(self) -> AssetSnapshot:
        return AssetSnapshot(
            id=self.id,
            currency=self.currency,
            address=self.address or None,
            chain_id=self.chain_id or None,
            transactions=tuple(t.to_domain() for t in self.transactions.all()),
        )


class Transaction(models.Model):
    """Signed manual ledger entry against one asset."""

    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name="transactions")
    amount = models.DecimalField(max_digits=28, decimal_places=10)
    date = models.DateTimeField(default=timezone.now)
    comment = models.CharField(max_length=500, null=True, blank=True)

    class Meta:
        ordering = ["date"]

    def __str__(self) -> str:
        return f"{self.amount} {self.asset.currency} on {self.date:%Y-%m-%d}"

    def to_domain(self) -> TransactionSnapshot:
        return TransactionSnapshot(amount=self.amount, date=self.date, comment=self.comment)
