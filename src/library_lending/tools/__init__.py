"""
MCP tools for the lending service.

Tools are the operations with side effects (plus the actor-scoped reads,
which need the caller's identity and so cannot be plain resources). Each
tool is a dictionary with its name, description, JSON input schema and
async handler; the server registers everything in ``all_tools``.
"""

from .administration import administration_tools, book_register, book_resize, policy_update
from .bookings import (
    booking_cancel,
    booking_collect,
    booking_expire_sweep,
    booking_get,
    booking_list,
    booking_reserve,
    booking_tools,
)
from .borrowing import (
    borrow_approve,
    borrow_create,
    borrow_extend,
    borrow_get,
    borrow_list,
    borrow_list_overdue,
    borrow_reject,
    borrow_return,
    borrowing_tools,
)

# Export all tools for server registration
all_tools = borrowing_tools + booking_tools + administration_tools

__all__ = [
    "all_tools",
    "book_register",
    "book_resize",
    "booking_cancel",
    "booking_collect",
    "booking_expire_sweep",
    "booking_get",
    "booking_list",
    "booking_reserve",
    "borrow_approve",
    "borrow_create",
    "borrow_extend",
    "borrow_get",
    "borrow_list",
    "borrow_list_overdue",
    "borrow_reject",
    "borrow_return",
    "policy_update",
]
