"""Pytest configuration and shared fixtures.

Provides in-memory databases, a test config, sample users and a
mocked Open Library client.
"""

import os
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest

from bookhub.api import BookResult, OpenLibraryClient
from bookhub.config import Config, reset_config
from bookhub.db.models import User
from bookhub.db.sqlite import Database, reset_db
from bookhub.users import UserManager


# ============================================================================
# Configuration Fixtures
# ============================================================================


def make_config(**overrides) -> Config:
    """Build a config with test defaults."""
    values = dict(
        db_path=Path(":memory:"),
        log_level="WARNING",
        allow_multiple_reviews=True,
        allow_self_votes=True,
        default_page_size=10,
        max_page_size=50,
        openlibrary_timeout=5,
    )
    values.update(overrides)
    return Config(**values)


@pytest.fixture
def config() -> Config:
    """Default test configuration."""
    return make_config()


@pytest.fixture
def config_factory():
    """Build configs with specific overrides."""
    return make_config


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def db() -> Generator[Database, None, None]:
    """Create an in-memory database for testing."""
    reset_db()
    reset_config()

    database = Database(":memory:")
    database.create_tables()
    yield database

    database.dispose()
    reset_db()


@pytest.fixture(scope="function")
def file_db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a file-backed database, needed for multi-connection tests."""
    reset_db()
    reset_config()

    os.environ["BOOKHUB_DB_PATH"] = str(tmp_path / "bookhub.db")
    database = Database(str(tmp_path / "bookhub.db"))
    database.create_tables()
    yield database

    database.dispose()
    reset_db()
    del os.environ["BOOKHUB_DB_PATH"]


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def user_manager(db: Database) -> UserManager:
    """UserManager bound to the test database."""
    return UserManager(db)


@pytest.fixture
def alice(user_manager: UserManager) -> User:
    """A registered user."""
    return user_manager.create_user("Alice", "alice@example.com")


@pytest.fixture
def bob(user_manager: UserManager) -> User:
    """A second registered user."""
    return user_manager.create_user("Bob", "bob@example.com")


@pytest.fixture
def carol(user_manager: UserManager) -> User:
    """A third registered user."""
    return user_manager.create_user("Carol", "carol@example.com")


# ============================================================================
# Mock Catalog Fixtures
# ============================================================================


@pytest.fixture
def sample_book_result() -> BookResult:
    """A catalog entry as returned by Open Library."""
    return BookResult(
        book_id="OL27448W",
        title="The Lord of the Rings",
        author="J.R.R. Tolkien",
        authors=["J.R.R. Tolkien"],
        isbn="9780618640157",
        cover_url="https://covers.openlibrary.org/b/id/14625765-M.jpg",
        first_publish_year=1954,
    )


@pytest.fixture
def mock_catalog(sample_book_result: BookResult) -> MagicMock:
    """An OpenLibraryClient that never touches the network."""
    catalog = MagicMock(spec=OpenLibraryClient)
    catalog.search.return_value = [sample_book_result]
    catalog.get_work.return_value = sample_book_result
    catalog.trending.return_value = [sample_book_result]
    catalog.by_subject.return_value = [sample_book_result]
    return catalog
