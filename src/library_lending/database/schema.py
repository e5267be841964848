"""
SQLAlchemy database schema for the lending service.

The tables mirror the pydantic records in ``library_lending.models``. Two
invariants are enforced by the database itself, so that a bug in the
application layer cannot silently corrupt them:

1. ``0 <= available_copies <= total_copies`` for every book (check constraints)
2. At most one ``in_progress`` booking per borrow (partial unique index)
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from ..models.actor import Role
from ..models.booking import BookingStatus
from ..models.borrow import BorrowStatus

Base = declarative_base()


def _enum_column_type(enum_cls, name: str) -> Enum:
    """Store enum *values* ("in_progress") rather than member names."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=20,
    )


class User(Base):
    """
    Users table - the identity collaborator's accounts.

    Only the id and role matter to lending; the row exists so borrows and
    bookings have something to reference and lock.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(_enum_column_type(Role, "user_role"), nullable=False, default=Role.REGULAR)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    borrows = relationship("Borrow", back_populates="user")
    bookings = relationship("Booking", back_populates="user")


class Book(Base):
    """
    Books table - title records and their copy counters.

    ``total_copies``/``available_copies`` are mutated only through the
    inventory ledger's conditional updates.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False, index=True)
    author = Column(String(200), nullable=False)
    category_id = Column(Integer, nullable=True, index=True)
    total_copies = Column(Integer, nullable=False)
    available_copies = Column(Integer, nullable=False)
    rating_count = Column(Integer, nullable=False, default=0)
    average_rating = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())

    borrows = relationship("Borrow", back_populates="book")
    bookings = relationship("Booking", back_populates="book")

    __table_args__ = (
        Index("idx_book_availability", "available_copies"),
        CheckConstraint("total_copies >= 0", name="check_total_copies_non_negative"),
        CheckConstraint("available_copies >= 0", name="check_available_copies_non_negative"),
        CheckConstraint(
            "available_copies <= total_copies", name="check_available_not_exceed_total"
        ),
    )


class Borrow(Base):
    """
    Borrows table - one row per loan of one copy.

    Rows are never deleted; ``returned`` and ``rejected`` are terminal.
    """

    __tablename__ = "borrows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    borrowed_at = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)
    returned_at = Column(Date, nullable=True)
    status = Column(
        _enum_column_type(BorrowStatus, "borrow_status"),
        nullable=False,
        default=BorrowStatus.BORROWED,
    )
    extension_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="borrows")
    book = relationship("Book", back_populates="borrows")
    bookings = relationship("Booking", back_populates="borrow")

    __table_args__ = (
        Index("idx_borrow_user_status", "user_id", "status"),
        Index("idx_borrow_book", "book_id"),
        Index("idx_borrow_return_date", "return_date"),
        CheckConstraint("extension_count >= 0", name="check_extension_count_non_negative"),
    )


class Booking(Base):
    """
    Bookings table - reservations on the copy held by a borrow.

    The partial unique index is the storage-level first-come lock: a second
    ``in_progress`` row for the same borrow fails to insert.
    """

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    borrow_id = Column(Integer, ForeignKey("borrows.id"), nullable=False)
    booking_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=False)
    status = Column(
        _enum_column_type(BookingStatus, "booking_status"),
        nullable=False,
        default=BookingStatus.IN_PROGRESS,
    )

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="bookings")
    book = relationship("Book", back_populates="bookings")
    borrow = relationship("Borrow", back_populates="bookings")

    __table_args__ = (
        Index("idx_booking_user_book_status", "user_id", "book_id", "status"),
        Index("idx_booking_status_expiry", "status", "expiry_date"),
        Index(
            "uq_booking_in_progress_per_borrow",
            "borrow_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
        CheckConstraint("expiry_date >= booking_date", name="check_expiry_after_booking"),
    )


class Settings(Base):
    """Settings table - a single row of lending ceilings."""

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    max_borrow_duration = Column(Integer, nullable=False, default=30)
    max_borrow_limit = Column(Integer, nullable=False, default=3)
    max_extension_limit = Column(Integer, nullable=False, default=2)
    max_booking_duration = Column(Integer, nullable=False, default=7)
    max_booking_limit = Column(Integer, nullable=False, default=3)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("max_borrow_duration >= 1", name="check_borrow_duration_positive"),
        CheckConstraint("max_borrow_limit >= 1", name="check_borrow_limit_positive"),
        CheckConstraint("max_extension_limit >= 0", name="check_extension_limit_non_negative"),
        CheckConstraint("max_booking_duration >= 1", name="check_booking_duration_positive"),
        CheckConstraint("max_booking_limit >= 1", name="check_booking_limit_positive"),
    )
