"""Flask JSON API for reviews, votes, reading lists and memberships."""

from typing import Any, Optional

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from .api import OpenLibraryClient, OpenLibraryError
from .config import Config, get_config
from .db.sqlite import Database, get_db
from .errors import (
    DuplicateReviewError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .library import LibraryEntryResponse, LibraryManager
from .log import get_logger
from .memberships import MembershipManager, MembershipResponse
from .reviews import (
    RatingAggregator,
    ReviewManager,
    ReviewQuery,
    ReviewResponse,
    VoteLedger,
)
from .users import UserManager, UserResponse

logger = get_logger(__name__)


class AuthenticationError(Exception):
    """Raised when a route needs a user and the request has none."""

    pass


def _bearer_token() -> Optional[str]:
    """Extract the bearer token from the Authorization header."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _json_body() -> dict:
    """Parse the request body as a JSON object."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _int_arg(name: str) -> Optional[int]:
    """Read an optional integer query parameter."""
    value = request.args.get(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer") from None


def _catalog_limit(default: int) -> int:
    """Result count for catalog listings, kept within 1-100."""
    limit = _int_arg("limit") or default
    return min(max(limit, 1), 100)


def _pick(data: dict, fields: tuple[str, ...]) -> dict[str, Any]:
    """Keep only the keys the client actually sent."""
    return {key: data[key] for key in fields if key in data}


def _review_fields(data: dict) -> dict[str, Any]:
    """Rating and text of a review body; ``review`` is accepted for ``content``."""
    fields = _pick(data, ("rating", "content"))
    if "content" not in fields and "review" in data:
        fields["content"] = data["review"]
    return fields


def _review_payload(review: ReviewResponse) -> dict:
    """Serialize a review, leaving out ``user_vote`` when there is none."""
    payload = review.model_dump()
    if payload["user_vote"] is None:
        payload.pop("user_vote")
    return payload


def create_app(
    db: Optional[Database] = None,
    config: Optional[Config] = None,
    catalog: Optional[OpenLibraryClient] = None,
) -> Flask:
    """Create and configure the Flask application."""
    config = config or get_config()
    db = db or get_db(str(config.db_path))
    catalog = catalog or OpenLibraryClient(timeout=config.openlibrary_timeout)

    users = UserManager(db)
    reviews = ReviewManager(db, config)
    votes = VoteLedger(db, config)
    ratings = RatingAggregator(db)
    review_query = ReviewQuery(db, config)
    library = LibraryManager(db)
    memberships = MembershipManager(db)

    app = Flask(__name__)

    # ------------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------------

    def current_user_id(required: bool = True) -> Optional[str]:
        """Resolve the bearer token to a user id.

        Unknown tokens on optional routes are treated as anonymous.
        """
        if "user_id" not in g:
            token = _bearer_token()
            user = users.get_user_by_token(token) if token else None
            g.user_id = user.id if user else None
        if required and g.user_id is None:
            raise AuthenticationError("Access token required")
        return g.user_id

    # ------------------------------------------------------------------------
    # Error handlers
    # ------------------------------------------------------------------------

    @app.errorhandler(AuthenticationError)
    def handle_auth_error(e: AuthenticationError):
        return jsonify({"error": str(e)}), 401

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        body: dict[str, Any] = {"error": e.message}
        if e.errors:
            body["details"] = e.errors
        return jsonify(body), 400

    @app.errorhandler(DuplicateReviewError)
    def handle_duplicate_review(e: DuplicateReviewError):
        return jsonify({"error": e.message}), 409

    @app.errorhandler(NotFoundError)
    def handle_not_found(e: NotFoundError):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(StorageError)
    def handle_storage_error(e: StorageError):
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(OpenLibraryError)
    def handle_catalog_error(e: OpenLibraryError):
        logger.warning("Catalog request failed: %s", e)
        return jsonify({"error": "Book catalog unavailable"}), 502

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        if isinstance(e, HTTPException):
            return e
        logger.error("Unhandled error on %s %s", request.method, request.path, exc_info=e)
        return jsonify({"error": "Internal server error"}), 500

    # ------------------------------------------------------------------------
    # Health and users
    # ------------------------------------------------------------------------

    @app.route("/api/health")
    def health():
        """Liveness probe."""
        return jsonify({"status": "ok"})

    @app.route("/api/users", methods=["POST"])
    def register_user():
        """Register a user and hand back their API token."""
        data = _json_body()
        user = users.create_user(name=data.get("name"), email=data.get("email"))
        return jsonify({
            "user": UserResponse.model_validate(user).model_dump(),
            "token": user.api_token,
        }), 201

    @app.route("/api/users/me")
    def whoami():
        """Profile of the authenticated user."""
        user = users.get_user(current_user_id())
        if not user:
            raise NotFoundError("User not found")
        return jsonify({"user": UserResponse.model_validate(user).model_dump()})

    # ------------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------------

    @app.route("/api/books/search")
    def search_books():
        """Search the external book catalog."""
        query = (request.args.get("q") or "").strip()
        if not query:
            raise ValidationError("Search query is required")
        results = catalog.search(
            query,
            author=request.args.get("author"),
            subject=request.args.get("subject"),
            language=request.args.get("language"),
            limit=_catalog_limit(default=20),
        )
        return jsonify({"books": [r.to_dict() for r in results], "total": len(results)})

    @app.route("/api/books/top-selling")
    def top_selling_books():
        """Books most readers are picking up right now."""
        limit = _catalog_limit(default=6)
        results = catalog.trending(limit=limit)
        return jsonify({"books": [r.to_dict() for r in results]})

    @app.route("/api/books/recommendations")
    def recommended_books():
        """Well-rated books in a subject, minus those already on the reading list."""
        user_id = current_user_id()
        limit = _catalog_limit(default=6)
        subject = (request.args.get("subject") or "fiction").strip() or "fiction"

        listed = {entry.book_id for entry in library.list_entries(user_id)}
        results = catalog.by_subject(subject, limit=limit + len(listed))
        fresh = [r for r in results if r.book_id not in listed][:limit]
        return jsonify({"books": [r.to_dict() for r in fresh]})

    @app.route("/api/books/<book_id>")
    def get_book(book_id: str):
        """Book details from the catalog."""
        result = catalog.get_work(book_id)
        if not result:
            raise NotFoundError("Book not found")
        return jsonify({"book": result.to_dict()})

    # ------------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------------

    @app.route("/api/reviews/book/<book_id>")
    def list_book_reviews(book_id: str):
        """Page through a book's reviews, most helpful first."""
        limit = _int_arg("limit")
        offset = _int_arg("offset") or 0
        page = review_query.list_reviews(
            book_id,
            requester=current_user_id(required=False),
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "reviews": [_review_payload(r) for r in page],
            "total": review_query.count_reviews(book_id),
            "limit": config.clamp_page_size(limit),
            "offset": offset,
        })

    @app.route("/api/reviews/book/<book_id>/stats")
    def book_rating_stats(book_id: str):
        """Average rating and star distribution for a book."""
        return jsonify(ratings.get_stats(book_id).model_dump())

    @app.route("/api/reviews/book/<book_id>/user")
    def my_book_review(book_id: str):
        """The authenticated user's own review of a book."""
        review = reviews.get_user_review(book_id, current_user_id())
        payload = ReviewResponse.model_validate(review).model_dump() if review else None
        return jsonify({"review": payload})

    @app.route("/api/reviews/book/<book_id>", methods=["POST"])
    def create_review(book_id: str):
        """Write a review."""
        user_id = current_user_id()
        fields = _review_fields(_json_body())
        review = reviews.create_review(
            user_id,
            book_id,
            rating=fields.get("rating"),
            content=fields.get("content"),
        )
        return jsonify({"review": ReviewResponse.model_validate(review).model_dump()}), 201

    @app.route("/api/reviews/<review_id>", methods=["PUT"])
    def update_review(review_id: str):
        """Edit one's own review."""
        user_id = current_user_id()
        changes = _review_fields(_json_body())
        review = reviews.update_review(review_id, user_id, **changes)
        return jsonify({"review": ReviewResponse.model_validate(review).model_dump()})

    @app.route("/api/reviews/<review_id>", methods=["DELETE"])
    def delete_review(review_id: str):
        """Delete one's own review and its votes."""
        reviews.delete_review(review_id, current_user_id())
        return jsonify({"success": True})

    @app.route("/api/reviews/<review_id>/vote", methods=["POST"])
    def vote_on_review(review_id: str):
        """Mark a review helpful or not helpful."""
        user_id = current_user_id()
        data = _json_body()
        count = votes.vote(review_id, user_id, data.get("is_helpful"))
        return jsonify({"success": True, "helpful_votes": count})

    @app.route("/api/reviews/<review_id>/vote", methods=["DELETE"])
    def remove_review_vote(review_id: str):
        """Withdraw one's vote on a review."""
        count = votes.remove_vote(review_id, current_user_id())
        return jsonify({"success": True, "helpful_votes": count})

    # ------------------------------------------------------------------------
    # Reading list
    # ------------------------------------------------------------------------

    library_fields = ("title", "author", "cover_image", "isbn", "status", "rating", "notes")

    def catalog_details(book_id: str) -> dict[str, Any]:
        """Catalog title, author, cover and ISBN for a book, if the catalog knows it."""
        try:
            result = catalog.get_work(book_id)
        except OpenLibraryError as e:
            logger.warning("Catalog lookup for %s failed: %s", book_id, e)
            return {}
        return result.library_fields() if result else {}

    @app.route("/api/library")
    def list_library():
        """The authenticated user's reading list."""
        user_id = current_user_id()
        entries = library.list_entries(user_id, status=request.args.get("status") or None)
        return jsonify({
            "books": [LibraryEntryResponse.model_validate(e).model_dump(mode="json") for e in entries],
            "counts": library.status_counts(user_id),
        })

    @app.route("/api/library", methods=["POST"])
    def add_to_library():
        """Put a catalog book on the reading list."""
        user_id = current_user_id()
        data = _json_body()
        book_id = data.get("book_id")
        fields = _pick(data, library_fields)
        if isinstance(book_id, str) and book_id.strip() and not fields.get("title"):
            for key, value in catalog_details(book_id).items():
                if fields.get(key) is None:
                    fields[key] = value
        entry = library.add_book(user_id, book_id, **fields)
        return jsonify({"book": LibraryEntryResponse.model_validate(entry).model_dump(mode="json")}), 201

    @app.route("/api/library/<book_id>")
    def get_library_entry(book_id: str):
        """Reading status of one book."""
        entry = library.get_entry(current_user_id(), book_id)
        if not entry:
            raise NotFoundError("Book not found in library")
        return jsonify({"book": LibraryEntryResponse.model_validate(entry).model_dump(mode="json")})

    @app.route("/api/library/<book_id>", methods=["PUT"])
    def update_library_entry(book_id: str):
        """Change status, rating or notes of a listed book."""
        changes = _pick(_json_body(), ("status", "rating", "notes"))
        entry = library.update_entry(current_user_id(), book_id, **changes)
        return jsonify({"book": LibraryEntryResponse.model_validate(entry).model_dump(mode="json")})

    @app.route("/api/library/<book_id>", methods=["DELETE"])
    def remove_from_library(book_id: str):
        """Take a book off the reading list."""
        if not library.remove_book(current_user_id(), book_id):
            raise NotFoundError("Book not found in library")
        return jsonify({"success": True})

    # ------------------------------------------------------------------------
    # Memberships
    # ------------------------------------------------------------------------

    membership_fields = ("price", "status", "start_date", "end_date", "notes")

    @app.route("/api/memberships")
    def list_memberships():
        """The authenticated user's reading-service memberships."""
        items = memberships.list_memberships(
            current_user_id(), status=request.args.get("status") or None
        )
        return jsonify({
            "memberships": [
                MembershipResponse.model_validate(m).model_dump(mode="json") for m in items
            ]
        })

    @app.route("/api/memberships", methods=["POST"])
    def add_membership():
        """Record a membership."""
        user_id = current_user_id()
        data = _json_body()
        membership = memberships.add_membership(
            user_id,
            service=data.get("service"),
            membership_type=data.get("membership_type"),
            **_pick(data, membership_fields),
        )
        return jsonify({
            "membership": MembershipResponse.model_validate(membership).model_dump(mode="json")
        }), 201

    @app.route("/api/memberships/<membership_id>")
    def get_membership(membership_id: str):
        """One membership."""
        membership = memberships.get_membership(membership_id, current_user_id())
        return jsonify({
            "membership": MembershipResponse.model_validate(membership).model_dump(mode="json")
        })

    @app.route("/api/memberships/<membership_id>", methods=["PUT"])
    def update_membership(membership_id: str):
        """Edit a membership."""
        changes = _pick(_json_body(), ("membership_type",) + membership_fields)
        membership = memberships.update_membership(membership_id, current_user_id(), **changes)
        return jsonify({
            "membership": MembershipResponse.model_validate(membership).model_dump(mode="json")
        })

    @app.route("/api/memberships/<membership_id>", methods=["DELETE"])
    def remove_membership(membership_id: str):
        """Delete a membership."""
        memberships.remove_membership(membership_id, current_user_id())
        return jsonify({"success": True})

    return app


def run_server(host: str = "127.0.0.1", port: int = 5000, debug: bool = False) -> None:
    """Run the bookhub web server."""
    app = create_app()
    logger.info("bookhub API listening on http://%s:%d", host, port)
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run_server()
