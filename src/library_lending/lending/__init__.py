"""
The lending core.

- LimitPolicy: pure evaluation of the configurable ceilings
- InventoryLedger: free-copy counters, changed only by conditional updates
- BookingQueue: reservations on copies out on loan, and the return routing decision
- BorrowLifecycle: the borrow state machine
- LendingService: one transaction per exposed operation, composing the above
"""

from .booking_queue import BookingQueue
from .borrowing import BorrowLifecycle
from .inventory import InventoryLedger
from .policy import LimitPolicy
from .service import LendingService, LendingUnit, get_lending_service, set_lending_service

__all__ = [
    "BookingQueue",
    "BorrowLifecycle",
    "InventoryLedger",
    "LendingService",
    "LendingUnit",
    "LimitPolicy",
    "get_lending_service",
    "set_lending_service",
]
