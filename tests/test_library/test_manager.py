"""Tests for LibraryManager."""

import pytest

from bookhub.errors import NotFoundError, ValidationError
from bookhub.library import LibraryManager, ReadingStatus


@pytest.fixture
def library(db):
    return LibraryManager(db)


class TestAddBook:
    """Tests for adding books to a reading list."""

    def test_add_defaults_to_want_to_read(self, library, alice, sample_book_result):
        entry = library.add_book(alice.id, "OL27448W", **sample_book_result.library_fields())

        assert entry.id is not None
        assert entry.user_id == alice.id
        assert entry.title == "The Lord of the Rings"
        assert entry.author == "J.R.R. Tolkien"
        assert entry.status == ReadingStatus.WANT_TO_READ.value
        assert entry.rating is None

    def test_add_with_status_and_rating(self, library, alice):
        entry = library.add_book(alice.id, "OL1W", status="completed", rating=4, notes="Loved it")

        assert entry.status == "completed"
        assert entry.rating == 4
        assert entry.notes == "Loved it"

    def test_duplicate_rejected(self, library, alice):
        library.add_book(alice.id, "OL1W")

        with pytest.raises(ValidationError, match="already"):
            library.add_book(alice.id, "OL1W")

    def test_same_book_for_different_users(self, library, alice, bob):
        library.add_book(alice.id, "OL1W")
        library.add_book(bob.id, "OL1W")

        assert library.get_entry(bob.id, "OL1W") is not None

    @pytest.mark.parametrize("fields", [
        {"rating": 0},
        {"rating": 6},
        {"status": "abandoned"},
    ])
    def test_invalid_fields(self, library, alice, fields):
        with pytest.raises(ValidationError):
            library.add_book(alice.id, "OL1W", **fields)

    def test_empty_book_id(self, library, alice):
        with pytest.raises(ValidationError):
            library.add_book(alice.id, "")


class TestListEntries:
    """Tests for listing and counting entries."""

    def test_list_own_entries_only(self, library, alice, bob):
        library.add_book(alice.id, "OL1W")
        library.add_book(alice.id, "OL2W")
        library.add_book(bob.id, "OL3W")

        entries = library.list_entries(alice.id)

        assert {e.book_id for e in entries} == {"OL1W", "OL2W"}

    def test_filter_by_status(self, library, alice):
        library.add_book(alice.id, "OL1W", status="reading")
        library.add_book(alice.id, "OL2W", status="completed")

        entries = library.list_entries(alice.id, status=ReadingStatus.READING)

        assert [e.book_id for e in entries] == ["OL1W"]

    def test_filter_accepts_plain_string(self, library, alice):
        library.add_book(alice.id, "OL1W", status="completed")
        assert len(library.list_entries(alice.id, status="completed")) == 1

    def test_unknown_status_filter(self, library, alice):
        with pytest.raises(ValidationError):
            library.list_entries(alice.id, status="shelved")

    def test_status_counts(self, library, alice):
        library.add_book(alice.id, "OL1W", status="reading")
        library.add_book(alice.id, "OL2W", status="reading")
        library.add_book(alice.id, "OL3W")

        assert library.status_counts(alice.id) == {
            "want_to_read": 1,
            "reading": 2,
            "completed": 0,
        }


class TestUpdateAndRemove:
    """Tests for editing and removing entries."""

    def test_update_status(self, library, alice):
        library.add_book(alice.id, "OL1W", notes="Gift")

        entry = library.update_entry(alice.id, "OL1W", status="reading")

        assert entry.status == "reading"
        assert entry.notes == "Gift"

    def test_clear_rating(self, library, alice):
        library.add_book(alice.id, "OL1W", rating=3)

        entry = library.update_entry(alice.id, "OL1W", rating=None)

        assert entry.rating is None

    def test_null_status_rejected(self, library, alice):
        library.add_book(alice.id, "OL1W")

        with pytest.raises(ValidationError):
            library.update_entry(alice.id, "OL1W", status=None)

    def test_update_missing_entry(self, library, alice, bob):
        library.add_book(bob.id, "OL1W")

        with pytest.raises(NotFoundError):
            library.update_entry(alice.id, "OL1W", status="reading")

    def test_remove(self, library, alice):
        library.add_book(alice.id, "OL1W")

        assert library.remove_book(alice.id, "OL1W") is True
        assert library.get_entry(alice.id, "OL1W") is None
        assert library.remove_book(alice.id, "OL1W") is False
