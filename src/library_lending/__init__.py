"""
Library lending service.

The borrowing, booking and inventory core of a library management backend,
exposed as MCP tools and resources.

Key Components:
- models: Pydantic records and their state machines
- database: SQLAlchemy schema, session management and repositories
- lending: limit policy, inventory ledger, booking queue, borrow lifecycle
- config: Configuration management with pydantic-settings
- tools / resources: the MCP surface
"""

__version__ = "0.1.0"

from .errors import LendingError

__all__ = [
    "LendingError",
    "__version__",
]
