"""
Database session management for the lending service.

Every exposed lending operation runs inside exactly one ``session_scope()``:
the scope commits when the operation returns and rolls back when it raises,
which is what makes multi-step sequences such as borrow-create and
borrow-return all-or-nothing.

SQLite needs extra help to serialize concurrent writers. The stock pysqlite
driver defers ``BEGIN`` until the first write, so two transactions can both
read a counter before either takes the write lock. Engines created here open
every SQLite transaction with ``BEGIN IMMEDIATE`` instead, and wait up to
``sqlite_busy_timeout`` seconds for the lock rather than failing straight away.
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..errors import LendingError, PersistenceError
from .schema import Base

logger = logging.getLogger(__name__)


def _is_memory_database(database_url: str) -> bool:
    database = make_url(database_url).database
    return not database or database == ":memory:"


class DatabaseManager:
    """
    Owns the engine and session factory for one database.

    - File-backed SQLite uses a regular connection pool so worker threads get
      their own connections; in-memory SQLite shares one connection
    - Foreign key constraints are switched on for SQLite
    - Other backends get a pre-pinged connection pool
    """

    def __init__(self, database_url: str | None = None, busy_timeout: float | None = None):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL. If None, taken from configuration.
            busy_timeout: Seconds a SQLite writer waits for the lock.
        """
        config = get_config()
        if database_url is None:
            database_url = config.get_database_url()

        if database_url.startswith("sqlite") and not _is_memory_database(database_url):
            db_path = Path(make_url(database_url).database)
            # Ensure parent directory exists
            db_path.parent.mkdir(exist_ok=True, parents=True)
            logger.info("Using SQLite database at: %s", db_path)

        self.database_url = database_url
        self.busy_timeout = busy_timeout if busy_timeout is not None else config.sqlite_busy_timeout
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            if self.is_sqlite:
                self._engine = self._create_sqlite_engine()
            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,  # Verify connections before use
                    echo=False,
                )

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    def _create_sqlite_engine(self) -> Engine:
        connect_args = {"check_same_thread": False, "timeout": self.busy_timeout}
        if _is_memory_database(self.database_url):
            # One shared connection, otherwise every checkout sees an empty database
            engine = create_engine(
                self.database_url,
                poolclass=StaticPool,
                connect_args=connect_args,
                echo=False,
            )
        else:
            engine = create_engine(self.database_url, connect_args=connect_args, echo=False)

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
            # Hand transaction control to the "begin" listener below
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def begin_immediate(conn):
            # Take the write lock up front so read-then-write sequences serialize
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                expire_on_commit=False,  # Keep objects usable after commit
            )
        return self._session_factory

    def create_session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for one lending operation.

        ```python
        with db_manager.session_scope() as session:
            BookRepository(session).try_acquire(book_id)
        # Committed on success, rolled back on any error
        ```

        Lending errors propagate unchanged. Database errors are logged and
        re-raised as ``PersistenceError`` with the original chained.
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except LendingError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            logger.exception("Database error, rolling back")
            session.rollback()
            raise PersistenceError(f"Database operation failed: {e!s}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Initialize the database schema.

        Args:
            drop_existing: If True, drop all tables before creating
        """
        engine = self.engine

        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Health check: True if a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except SQLAlchemyError:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the engine; called when the server shuts down."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


# Global database manager instance
_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """
    Get the global database manager instance.

    Args:
        database_url: Database URL (only used on first call)
    """
    global _db_manager  # noqa: PLW0603 - Singleton pattern for database manager

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def set_db_manager(manager: DatabaseManager | None) -> None:
    """Install (or clear) the global manager; the previous one is closed."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None and _db_manager is not manager:
        _db_manager.close()
    _db_manager = manager


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Convenience context manager over the global database manager."""
    with get_db_manager().session_scope() as session:
        yield session


T = TypeVar("T")


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, turning database failures into ``PersistenceError``.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Context for the error message

    Raises:
        PersistenceError: If the query fails
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("Query failed")
        raise PersistenceError(f"{error_msg}: Database query failed") from e
