"""Custom metrics for the lending service."""

import logfire

# Tool calls by name and outcome
tool_call_counter = logfire.metric_counter(
    "lending.tool.calls", description="Tool calls by tool name and outcome"
)

# Borrow, return, booking and inventory events
circulation_counter = logfire.metric_counter(
    "lending.circulation.events", description="Circulation events by type"
)

# Copies handed back to the shelf by the booking expiry sweep
expired_bookings_counter = logfire.metric_counter(
    "lending.bookings.expired", description="Bookings expired by the sweep"
)


def record_circulation_event(event_type: str, book_id: int) -> None:
    """Record a circulation event."""
    circulation_counter.add(1, {"event_type": event_type, "book_id": str(book_id)})


def record_tool_call(tool_name: str, outcome: str) -> None:
    tool_call_counter.add(1, {"tool": tool_name, "outcome": outcome})


def record_expired_bookings(count: int) -> None:
    if count:
        expired_bookings_counter.add(count)
