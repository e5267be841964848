"""
Command line entry point for the lending service.

Usage:
    library-lending init-db [--drop-existing] [--sample-data] [--database-url URL]
    library-lending expire-bookings [--date YYYY-MM-DD]
    library-lending serve

``expire-bookings`` is what a scheduler (cron, a systemd timer) runs once a
day to reshelve copies whose bookings were never collected.
"""

import argparse
import logging
import sys
from datetime import date

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from .config import get_config
from .database.book_repository import BookCreateSchema, BookRepository
from .database.schema import Base
from .database.session import DatabaseManager, get_db_manager
from .database.settings_repository import SettingsRepository
from .database.user_repository import UserCreateSchema, UserRepository
from .errors import LendingError
from .lending.service import LendingService
from .models.actor import Role

logger = logging.getLogger(__name__)


def load_sample_data(db_manager: DatabaseManager) -> None:
    """
    Load sample data for trying the server out.

    This creates:
    - One admin and two regular users
    - A few books, one of them with a single copy
    - The settings row, seeded from configuration
    """
    with db_manager.session_scope() as session:
        users = UserRepository(session)
        users.create(
            UserCreateSchema(name="Library Admin", email="admin@example.com", role=Role.ADMIN)
        )
        users.create(UserCreateSchema(name="Jane Doe", email="jane.doe@example.com"))
        users.create(UserCreateSchema(name="John Smith", email="john.smith@example.com"))

        books = BookRepository(session)
        for title, author, copies in [
            ("The Great Gatsby", "F. Scott Fitzgerald", 3),
            ("To Kill a Mockingbird", "Harper Lee", 2),
            ("1984", "George Orwell", 1),
        ]:
            books.create(BookCreateSchema(title=title, author=author, total_copies=copies))

        SettingsRepository(session).get_policy()


def init_db(args: argparse.Namespace) -> int:
    logger.info("Initializing database manager...")
    db_manager = get_db_manager(args.database_url)

    try:
        if not db_manager.verify_connection():
            logger.error("Failed to connect to database")
            return 1

        logger.info("Creating database schema...")
        db_manager.init_database(drop_existing=args.drop_existing)

        if args.sample_data:
            logger.info("Loading sample data...")
            load_sample_data(db_manager)

        tables = set(inspect(db_manager.engine).get_table_names())
        missing_tables = set(Base.metadata.tables) - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", ", ".join(sorted(missing_tables)))
            return 1

        logger.info("Created tables: %s", ", ".join(sorted(tables)))
        logger.info("Database initialization complete")
        return 0
    except (LendingError, SQLAlchemyError):
        logger.exception("Database initialization failed")
        return 1
    finally:
        db_manager.close()


def expire_bookings(args: argparse.Namespace) -> int:
    db_manager = get_db_manager()
    today = args.date or date.today()
    service = LendingService(db_manager=db_manager, clock=lambda: today)

    try:
        result = service.expire_bookings()
    except LendingError as e:
        logger.error("Booking expiry sweep failed: %s", e.message)
        return 1
    finally:
        db_manager.close()

    logger.info(
        "Expired %d bookings, %d copies back on the shelf",
        len(result.expired),
        result.released_copies,
    )
    # One line per expired booking on stdout is the report the scheduler captures
    for booking in result.expired:
        print(f"expired booking {booking.id} (book {booking.book_id}, user {booking.user_id})")
    return 0


def serve(args: argparse.Namespace) -> int:  # noqa: ARG001
    from .server import main as server_main

    server_main()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="library-lending", description="Library lending service"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create the database schema")
    init_parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    init_parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load sample users and books after creating tables",
    )
    init_parser.add_argument("--database-url", help="Override default database URL")
    init_parser.set_defaults(func=init_db)

    expire_parser = subparsers.add_parser(
        "expire-bookings", help="Expire uncollected bookings and reshelve their copies"
    )
    expire_parser.add_argument(
        "--date",
        type=date.fromisoformat,
        help="Treat this date (YYYY-MM-DD) as today",
    )
    expire_parser.set_defaults(func=expire_bookings)

    serve_parser = subparsers.add_parser("serve", help="Run the MCP server")
    serve_parser.set_defaults(func=serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command != "serve":
        config = get_config()
        logging.basicConfig(
            level=getattr(logging, config.log_level),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            handlers=[logging.StreamHandler(sys.stderr)],
        )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
