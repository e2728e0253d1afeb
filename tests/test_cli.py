"""Tests for the CLI interface."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from bookhub.api import OpenLibraryError
from bookhub.cli import app, star_bar
from bookhub.config import reset_config
from bookhub.db.sqlite import get_db, reset_db
from bookhub.reviews import ReviewManager, VoteLedger
from bookhub.users import UserManager


@pytest.fixture(autouse=True)
def setup_test_db(tmp_path: Path):
    """Point the CLI at a fresh database file for each test."""
    reset_db()
    reset_config()
    os.environ["BOOKHUB_DB_PATH"] = str(tmp_path / "cli.db")

    yield

    reset_db()
    reset_config()
    del os.environ["BOOKHUB_DB_PATH"]


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def reviewed_book():
    """Seed two reviews of one book through the global database."""
    db = get_db()
    users = UserManager(db)
    alice = users.create_user("Alice", "alice@example.com")
    bob = users.create_user("Bob", "bob@example.com")
    manager = ReviewManager(db)
    first = manager.create_review(alice.id, "OL1W", 5, "Great")
    manager.create_review(bob.id, "OL1W", 3)
    return first


class TestCLIBasics:
    """Tests for basic CLI functionality."""

    def test_help(self, runner: CliRunner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Discover books" in result.stdout

    def test_version(self, runner: CliRunner):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "bookhub version 0.1.0" in result.stdout

    def test_init_db(self, runner: CliRunner, tmp_path: Path):
        result = runner.invoke(app, ["init-db"])

        assert result.exit_code == 0
        assert "Database ready" in result.stdout
        assert (tmp_path / "cli.db").exists()


    def test_init_db_reports_bad_env(self, runner: CliRunner, monkeypatch):
        monkeypatch.setenv("BOOKHUB_MAX_PAGE_SIZE", "lots")

        result = runner.invoke(app, ["init-db"])

        assert result.exit_code == 1
        assert "BOOKHUB_MAX_PAGE_SIZE must be an integer" in result.stdout


class TestUserCommands:
    """Tests for add-user."""

    def test_add_user_prints_token(self, runner: CliRunner):
        result = runner.invoke(app, ["add-user", "Dana", "dana@example.com"])

        assert result.exit_code == 0
        assert "API token:" in result.stdout

    def test_rotate_token(self, runner: CliRunner):
        user = UserManager(get_db()).create_user("Dana", "dana.com")

        result = runner.invoke(app, ["rotate-token", user.id])

        assert result.exit_code == 0
        assert "Rotated token" in result.stdout
        assert UserManager(get_db()).get_user_by_token(user.api_token) is None

    def test_rotate_token_unknown_user(self, runner: CliRunner):
        result = runner.invoke(app, ["rotate-token", "nope"])

        assert result.exit_code == 1
        assert "User not found" in result.stdout

    def test_add_user_invalid_email(self, runner: CliRunner):
        result = runner.invoke(app, ["add-user", "Dana", "nope"])

        assert result.exit_code == 1
        assert "Error" in result.stdout


class TestReviewCommands:
    """Tests for reviews, stats and recount."""

    def test_reviews_empty(self, runner: CliRunner):
        result = runner.invoke(app, ["reviews", "OL404W"])

        assert result.exit_code == 0
        assert "No reviews for OL404W" in result.stdout

    def test_reviews_lists_book(self, runner: CliRunner, reviewed_book):
        result = runner.invoke(app, ["reviews", "OL1W"])

        assert result.exit_code == 0
        assert "Reviews for OL1W" in result.stdout

    def test_reviews_negative_offset(self, runner: CliRunner):
        result = runner.invoke(app, ["reviews", "OL1W", "--offset=-1"])
        assert result.exit_code == 1

    def test_stats(self, runner: CliRunner, reviewed_book):
        result = runner.invoke(app, ["stats", "OL1W"])

        assert result.exit_code == 0
        assert "Average rating: 4.00" in result.stdout
        assert "Total reviews: 2" in result.stdout

    def test_stats_unreviewed(self, runner: CliRunner):
        result = runner.invoke(app, ["stats", "OL404W"])

        assert result.exit_code == 0
        assert "Average rating: 0.00" in result.stdout

    def test_recount(self, runner: CliRunner, reviewed_book):
        voter = UserManager(get_db()).create_user("Carol", "carol@example.com")
        VoteLedger(get_db()).vote(reviewed_book.id, voter.id, True)

        result = runner.invoke(app, ["recount", reviewed_book.id])

        assert result.exit_code == 0
        assert "1 helpful votes" in result.stdout

    def test_recount_missing_review(self, runner: CliRunner):
        result = runner.invoke(app, ["recount", "nope"])
        assert result.exit_code == 1


class TestSearchCommand:
    """Tests for catalog search."""

    def test_search(self, runner: CliRunner, sample_book_result):
        with patch("bookhub.api.OpenLibraryClient.search", return_value=[sample_book_result]):
            result = runner.invoke(app, ["search", "rings"])

        assert result.exit_code == 0
        assert "OL27448W" in result.stdout

    def test_search_no_results(self, runner: CliRunner):
        with patch("bookhub.api.OpenLibraryClient.search", return_value=[]):
            result = runner.invoke(app, ["search", "zzzz"])

        assert result.exit_code == 1
        assert "No books found" in result.stdout

    def test_search_catalog_error(self, runner: CliRunner):
        with patch("bookhub.api.OpenLibraryClient.search", side_effect=OpenLibraryError("down")):
            result = runner.invoke(app, ["search", "rings"])

        assert result.exit_code == 1


def test_star_bar():
    assert star_bar(0, 0) == ""
    assert star_bar(5, 10, width=10) == "█" * 5
    assert star_bar(10, 10, width=4) == "████"
