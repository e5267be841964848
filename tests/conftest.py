"""Test configuration and fixtures for the lending service.

1. Isolated test databases - each test gets a fresh SQLite file in tmp_path
2. Configuration overrides - test-specific settings installed globally
3. A controllable clock - lending decisions depend on "today"
4. Users and books - an admin and three regular users, books created on demand
"""

import os
from collections.abc import Callable, Generator
from datetime import date, timedelta
from pathlib import Path

import pytest

from library_lending.config import LendingConfig, reset_config, set_config
from library_lending.database.book_repository import BookCreateSchema
from library_lending.database.session import DatabaseManager, set_db_manager
from library_lending.database.user_repository import UserCreateSchema, UserRepository
from library_lending.lending.service import LendingService, set_lending_service
from library_lending.models import Actor, Book, Role
from library_lending.observability import ObservabilityConfig, initialize_observability

TODAY = date(2025, 8, 1)


class FakeClock:
    """A clock tests can move forward."""

    def __init__(self, today: date = TODAY):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int) -> date:
        self.today += timedelta(days=days)
        return self.today


# === Observability ===


@pytest.fixture(scope="session", autouse=True)
def local_observability():
    """Configure logfire to record locally so spans and metrics are real no-ops."""
    initialize_observability(
        ObservabilityConfig(enabled=True, send_to_logfire=False, console_output=False)
    )


# === Test Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path for each test."""
    return tmp_path / "test_library.db"


@pytest.fixture
def test_config(test_db_path: Path) -> Generator[LendingConfig, None, None]:
    """Install a test-specific configuration pointing at the temporary database."""
    reset_config()

    config = LendingConfig(
        server_name="test-library-lending",
        server_version="0.0.1-test",
        database_path=test_db_path,
        debug=True,
        log_level="DEBUG",
        sqlite_busy_timeout=30.0,
    )
    set_config(config)

    yield config

    reset_config()


@pytest.fixture
def db_manager(test_config: LendingConfig) -> Generator[DatabaseManager, None, None]:
    """A database manager with the schema created, installed as the global one."""
    manager = DatabaseManager(test_config.get_database_url())
    manager.init_database()
    set_db_manager(manager)

    yield manager

    set_db_manager(None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(
    db_manager: DatabaseManager, test_config: LendingConfig, clock: FakeClock
) -> Generator[LendingService, None, None]:
    """The lending service under test, also installed for the tool handlers."""
    lending = LendingService(db_manager=db_manager, config=test_config, clock=clock)
    set_lending_service(lending)

    yield lending

    set_lending_service(None)


# === Users and Books ===


def _create_user(db_manager: DatabaseManager, name: str, email: str, role: Role) -> Actor:
    with db_manager.session_scope() as session:
        user = UserRepository(session).create(UserCreateSchema(name=name, email=email, role=role))
    return user.as_actor()


@pytest.fixture
def admin(db_manager: DatabaseManager) -> Actor:
    return _create_user(db_manager, "Library Admin", "admin@example.com", Role.ADMIN)


@pytest.fixture
def alice(db_manager: DatabaseManager) -> Actor:
    return _create_user(db_manager, "Alice Reader", "alice@example.com", Role.REGULAR)


@pytest.fixture
def bob(db_manager: DatabaseManager) -> Actor:
    return _create_user(db_manager, "Bob Reader", "bob@example.com", Role.REGULAR)


@pytest.fixture
def carol(db_manager: DatabaseManager) -> Actor:
    return _create_user(db_manager, "Carol Reader", "carol@example.com", Role.REGULAR)


@pytest.fixture
def make_book(service: LendingService, admin: Actor) -> Callable[..., Book]:
    """Factory registering a book with ``total_copies`` copies on the shelf."""
    counter = {"n": 0}

    def factory(total_copies: int = 1, title: str | None = None) -> Book:
        counter["n"] += 1
        return service.register_book(
            admin,
            BookCreateSchema(
                title=title or f"Test Book {counter['n']}",
                author="Test Author",
                total_copies=total_copies,
            ),
        )

    return factory


# === Environment Fixtures ===


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide a clean environment without LIBRARY_LENDING_* variables."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("LIBRARY_LENDING_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Reset global configuration after each test."""
    yield
    reset_config()
