"""
Database package for the lending service.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and connection handling (session.py)
- Repositories returning pydantic records for each table

Repositories never commit; the lending service opens one ``session_scope``
per exposed operation and the repositories work inside it.
"""

from .book_repository import BookCreateSchema, BookRepository
from .booking_repository import BookingCreateSchema, BookingRepository
from .borrow_repository import BorrowCreateSchema, BorrowRepository
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import Base, Book, Booking, Borrow, Settings, User
from .session import (
    DatabaseManager,
    get_db_manager,
    safe_query,
    session_scope,
    set_db_manager,
)
from .settings_repository import SettingsRepository
from .user_repository import UserCreateSchema, UserRepository

__all__ = [
    "Base",
    "BaseRepository",
    "Book",
    "BookCreateSchema",
    "BookRepository",
    "Booking",
    "BookingCreateSchema",
    "BookingRepository",
    "Borrow",
    "BorrowCreateSchema",
    "BorrowRepository",
    "DatabaseManager",
    "PaginatedResponse",
    "PaginationParams",
    "Settings",
    "SettingsRepository",
    "User",
    "UserCreateSchema",
    "UserRepository",
    "get_db_manager",
    "safe_query",
    "session_scope",
    "set_db_manager",
]
