"""
Savings Django Models

Organized by domain:
- goals.py: Savings goals
- assets.py: Assets and their manual transaction ledger
- allocations.py: Asset <-> Goal allocation join table and its history
"""

from __future__ import annotations

# Import in dependency order (models with no FKs first)
from .assets import Asset, Transaction
from .goals import Goal
from .allocations import Allocation, AllocationHistory

# Django needs __all__ to register models properly
__all__ = [
    # Goals
    "Goal",
    # Assets
    "Asset",
    "Transaction",
    # Allocations
    "Allocation",
    "AllocationHistory",
]
