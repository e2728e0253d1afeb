"""Tests for VoteLedger."""

import threading

import pytest
from sqlalchemy import select

from bookhub.errors import NotFoundError, ValidationError
from bookhub.reviews.manager import ReviewManager
from bookhub.reviews.models import Review, ReviewVote
from bookhub.reviews.votes import VoteLedger
from bookhub.users import UserManager

BOOK_ID = "OL27448W"


@pytest.fixture
def manager(db, config):
    return ReviewManager(db, config)


@pytest.fixture
def ledger(db, config):
    return VoteLedger(db, config)


@pytest.fixture
def review(manager, alice):
    return manager.create_review(alice.id, BOOK_ID, 4, "Worth it.")


def vote_rows(db, review_id, user_id):
    """All vote rows for a (review, user) pair."""
    with db.get_session() as session:
        rows = session.execute(
            select(ReviewVote).where(
                ReviewVote.review_id == review_id,
                ReviewVote.user_id == user_id,
            )
        ).scalars().all()
        for row in rows:
            session.expunge(row)
        return list(rows)


class TestVote:
    """Tests for casting votes."""

    def test_first_vote_creates_row(self, db, ledger, manager, review, bob):
        """A first helpful vote is recorded and counted."""
        count = ledger.vote(review.id, bob.id, True)

        assert count == 1
        assert manager.get_review(review.id).helpful_votes == 1
        assert len(vote_rows(db, review.id, bob.id)) == 1

    def test_not_helpful_vote_not_counted(self, ledger, manager, review, bob):
        """Not-helpful votes are recorded but excluded from the counter."""
        count = ledger.vote(review.id, bob.id, False)

        assert count == 0
        assert ledger.get_vote(review.id, bob.id) is False
        assert manager.get_review(review.id).helpful_votes == 0

    def test_revote_flips_polarity_in_place(self, db, ledger, manager, review, bob):
        """Changing a vote keeps exactly one row, with the new polarity."""
        ledger.vote(review.id, bob.id, True)
        count = ledger.vote(review.id, bob.id, False)

        rows = vote_rows(db, review.id, bob.id)
        assert len(rows) == 1
        assert rows[0].is_helpful is False
        assert count == 0
        assert manager.get_review(review.id).helpful_votes == 0

    def test_repeat_same_vote_refreshes_timestamp(self, db, ledger, review, bob):
        """Voting the same way again keeps one row and updates its time."""
        ledger.vote(review.id, bob.id, True)
        first = vote_rows(db, review.id, bob.id)[0]

        count = ledger.vote(review.id, bob.id, True)
        rows = vote_rows(db, review.id, bob.id)

        assert count == 1
        assert len(rows) == 1
        assert rows[0].id == first.id
        assert rows[0].created_at >= first.created_at

    def test_two_helpful_votes_then_remove_one(self, ledger, manager, review, bob, carol):
        """Counter tracks several voters and drops when one withdraws."""
        ledger.vote(review.id, bob.id, True)
        assert ledger.vote(review.id, carol.id, True) == 2
        assert manager.get_review(review.id).helpful_votes == 2

        assert ledger.remove_vote(review.id, bob.id) == 1
        assert manager.get_review(review.id).helpful_votes == 1

    def test_vote_missing_review(self, ledger, bob):
        """Voting on a review that does not exist fails."""
        with pytest.raises(NotFoundError):
            ledger.vote("missing", bob.id, True)

    @pytest.mark.parametrize("value", [None, "yes", 1, 0])
    def test_vote_requires_boolean(self, ledger, review, bob, value):
        """Polarity must be a real boolean."""
        with pytest.raises(ValidationError, match="is_helpful"):
            ledger.vote(review.id, bob.id, value)

    def test_vote_does_not_touch_review_updated_at(self, ledger, manager, review, bob):
        """Recounting is not an edit of the review."""
        ledger.vote(review.id, bob.id, True)
        assert manager.get_review(review.id).updated_at == review.updated_at

    def test_self_vote_allowed_by_default(self, ledger, review, alice):
        """Authors may vote on their own review unless disabled."""
        assert ledger.vote(review.id, alice.id, True) == 1

    def test_self_vote_policy(self, db, config_factory, review, alice):
        """Self votes are rejected when the policy is off."""
        ledger = VoteLedger(db, config_factory(allow_self_votes=False))
        with pytest.raises(ValidationError, match="own review"):
            ledger.vote(review.id, alice.id, True)


class TestRemoveVote:
    """Tests for withdrawing votes."""

    def test_remove_vote(self, db, ledger, review, bob):
        """Removing deletes the row."""
        ledger.vote(review.id, bob.id, True)
        assert ledger.remove_vote(review.id, bob.id) == 0
        assert vote_rows(db, review.id, bob.id) == []
        assert ledger.get_vote(review.id, bob.id) is None

    def test_remove_vote_without_vote_is_noop(self, ledger, manager, review, bob, carol):
        """Removing a vote that was never cast does not error."""
        ledger.vote(review.id, carol.id, True)

        assert ledger.remove_vote(review.id, bob.id) == 1
        assert ledger.remove_vote(review.id, bob.id) == 1
        assert manager.get_review(review.id).helpful_votes == 1

    def test_remove_vote_missing_review(self, ledger, bob):
        """The review itself must exist."""
        with pytest.raises(NotFoundError):
            ledger.remove_vote("missing", bob.id)


class TestRecount:
    """Tests for counter repair."""

    def test_recount_repairs_drift(self, db, ledger, manager, review, bob, carol):
        """A corrupted counter is rebuilt from the vote rows."""
        ledger.vote(review.id, bob.id, True)
        ledger.vote(review.id, carol.id, False)

        with db.get_session() as session:
            session.get(Review, review.id).helpful_votes = 7

        assert ledger.recount(review.id) == 1
        assert manager.get_review(review.id).helpful_votes == 1

    def test_recount_missing_review(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.recount("missing")


class TestVoteLookup:
    """Tests for reading vote state."""

    def test_get_votes_for_reviews(self, ledger, manager, review, alice, bob):
        other = manager.create_review(bob.id, BOOK_ID, 2)
        third = manager.create_review(bob.id, "OL1W", 3)
        ledger.vote(review.id, alice.id, True)
        ledger.vote(other.id, alice.id, False)

        votes = ledger.get_votes_for_reviews([review.id, other.id, third.id], alice.id)

        assert votes == {review.id: True, other.id: False}

    def test_get_votes_for_no_reviews(self, ledger, alice):
        assert ledger.get_votes_for_reviews([], alice.id) == {}


class TestConcurrentVotes:
    """Concurrent voters on one review must not lose updates."""

    def test_parallel_votes_all_counted(self, file_db, config):
        users = UserManager(file_db)
        author = users.create_user("Author", "author@example.com")
        voters = [users.create_user(f"Voter {i}", f"voter{i}@example.com") for i in range(8)]

        review = ReviewManager(file_db, config).create_review(author.id, BOOK_ID, 5)
        ledger = VoteLedger(file_db, config)

        errors = []
        barrier = threading.Barrier(len(voters))

        def cast(voter_id):
            try:
                barrier.wait()
                ledger.vote(review.id, voter_id, True)
            except Exception as e:  # pragma: no cover - surfaced below
                errors.append(e)

        threads = [threading.Thread(target=cast, args=(v.id,)) for v in voters]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert ReviewManager(file_db, config).get_review(review.id).helpful_votes == len(voters)
