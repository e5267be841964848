"""
MCP resources for the lending service.

Resources are read-only and public. Reads that depend on who is asking
(a user's borrows and bookings) are tools, because they need the caller's
identity.
"""

from .library import library_resources

all_resources = library_resources

__all__ = [
    "all_resources",
    "library_resources",
]
