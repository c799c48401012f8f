"""Asset -> goal allocation graph.

Usage:
    from savings.services.allocations import AllocationService, InMemoryAllocationStore

    service = AllocationService(InMemoryAllocationStore())
    service.update_allocations(asset, [(goal, Decimal("600"))])
"""

from savings.services.allocations.service import (
    AllocationChange,
    AllocationService,
    sole_allocation_owns_balance,
)
from savings.services.allocations.store import (
    DjangoAllocationStore,
    InMemoryAllocationStore,
    PersistenceStore,
    history_entries,
)

__all__ = [
    "AllocationChange",
    "AllocationService",
    "DjangoAllocationStore",
    "InMemoryAllocationStore",
    "PersistenceStore",
    "history_entries",
    "sole_allocation_owns_balance",
]
