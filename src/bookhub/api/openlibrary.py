"""Open Library catalog client.

Supplies the book search and detail lookups behind the review and
reading-list features. Open Library work ids (e.g. ``OL45804W``) are the
book identifiers stored with reviews and library entries.

No API key required.
"""

import time
from dataclasses import asdict, dataclass, field
from collections.abc import Iterable
from typing import Any, Optional

import requests

from .. import __version__
from ..log import get_logger

logger = get_logger(__name__)

SEARCH_FIELDS = (
    "key,title,author_name,first_publish_year,isbn,publisher,cover_i,"
    "number_of_pages_median,subject,language"
)

# Shortest window first
TRENDING_PERIODS = ("daily", "weekly", "monthly")


class OpenLibraryError(Exception):
    """Base exception for Open Library API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class OpenLibraryRateLimitError(OpenLibraryError):
    """Raised when rate limited by Open Library."""

    pass


@dataclass
class BookResult:
    """A book from the Open Library catalog."""

    book_id: str  # Open Library work ID
    title: str
    author: str
    authors: list[str] = field(default_factory=list)
    isbn: Optional[str] = None
    cover_url: Optional[str] = None
    first_publish_year: Optional[int] = None
    publisher: Optional[str] = None
    page_count: Optional[int] = None
    subjects: list[str] = field(default_factory=list)
    description: Optional[str] = None
    language: Optional[str] = None

    def library_fields(self) -> dict[str, Any]:
        """Catalog details cached on a reading list entry."""
        return {
            "title": self.title,
            "author": self.author,
            "cover_image": self.cover_url,
            "isbn": self.isbn,
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def unique_by_book_id(results: Iterable[Optional[BookResult]]) -> list[BookResult]:
    """Drop empty results and repeats of a work, keeping first-seen order."""
    seen: set[str] = set()
    unique = []
    for result in results:
        if result is None or result.book_id in seen:
            continue
        seen.add(result.book_id)
        unique.append(result)
    return unique


class OpenLibraryClient:
    """Client for Open Library API."""

    BASE_URL = "https://openlibrary.org"
    COVERS_URL = "https://covers.openlibrary.org"

    def __init__(self, timeout: int = 10, min_request_interval: float = 0.5):
        """Initialize client.

        Args:
            timeout: Request timeout in seconds
            min_request_interval: Minimum seconds between requests
        """
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": f"bookhub/{__version__}"})
        self._last_request_time = 0.0
        self._min_request_interval = min_request_interval

    def _rate_limit(self) -> None:
        """Enforce rate limiting between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_request_interval:
            time.sleep(self._min_request_interval - elapsed)
        self._last_request_time = time.time()

    def _get(self, url: str, params: Optional[dict] = None) -> dict:
        """Make GET request with error handling."""
        self._rate_limit()
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout:
            raise OpenLibraryError("Request timed out")
        except requests.exceptions.HTTPError as e:
            if e.response.status_code == 429:
                raise OpenLibraryRateLimitError("Rate limited by Open Library", status_code=429)
            raise OpenLibraryError(
                f"HTTP error: {e.response.status_code}",
                status_code=e.response.status_code,
            )
        except requests.exceptions.RequestException as e:
            raise OpenLibraryError(f"Request failed: {e}")

    # ========================================================================
    # Search
    # ========================================================================

    def search(
        self,
        query: str,
        author: Optional[str] = None,
        subject: Optional[str] = None,
        language: Optional[str] = None,
        limit: int = 20,
    ) -> list[BookResult]:
        """Search the catalog.

        Args:
            query: Free-text query
            author: Filter by author name
            subject: Filter by subject / genre
            language: Filter by language code (e.g. "eng")
            limit: Maximum results to return

        Returns:
            List of BookResult objects
        """
        params: dict[str, Any] = {"q": query, "limit": limit, "fields": SEARCH_FIELDS}
        if author:
            params["author"] = author
        if subject:
            params["subject"] = subject
        if language:
            params["language"] = language.lower()

        data = self._get(f"{self.BASE_URL}/search.json", params)

        results = []
        for doc in data.get("docs", []):
            result = self._doc_to_result(doc)
            if result:
                results.append(result)

        logger.debug("Open Library search %r returned %d results", query, len(results))
        return results

    def _doc_to_result(self, doc: dict) -> Optional[BookResult]:
        """Convert search document to BookResult."""
        title = doc.get("title")
        key = doc.get("key", "")
        if not title or not key:
            return None

        authors = doc.get("author_name", [])

        # Prefer ISBN-13
        isbns = doc.get("isbn", [])
        isbn = next((i for i in isbns if len(i) == 13), isbns[0] if isbns else None)

        publishers = doc.get("publisher", [])
        languages = doc.get("language", [])

        return BookResult(
            book_id=key.split("/")[-1],
            title=title,
            author=authors[0] if authors else "Unknown Author",
            authors=authors,
            isbn=isbn,
            cover_url=self.cover_url(doc.get("cover_i")),
            first_publish_year=doc.get("first_publish_year"),
            publisher=publishers[0] if publishers else None,
            page_count=doc.get("number_of_pages_median"),
            subjects=doc.get("subject", [])[:20],
            language=languages[0] if languages else None,
        )

    def trending(self, limit: int = 6) -> list[BookResult]:
        """Most-read works right now, merged across trending windows.

        Windows are tried shortest first until ``limit`` distinct works are
        collected. A window that fails is skipped.

        Raises:
            OpenLibraryError: If every window failed
        """
        results: list[BookResult] = []
        failures: list[OpenLibraryError] = []

        for period in TRENDING_PERIODS:
            try:
                data = self._get(f"{self.BASE_URL}/trending/{period}.json", {"limit": limit})
            except OpenLibraryError as e:
                logger.warning("Open Library trending/%s failed: %s", period, e)
                failures.append(e)
                continue

            works = [self._doc_to_result(doc) for doc in data.get("works", [])]
            results = unique_by_book_id(results + works)
            if len(results) >= limit:
                break

        if not results and failures:
            raise failures[-1]
        return results[:limit]

    def by_subject(self, subject: str, limit: int = 6) -> list[BookResult]:
        """Highest-rated works filed under a subject."""
        params = {
            "subject": subject.lower(),
            "sort": "rating",
            "limit": limit,
            "fields": SEARCH_FIELDS,
        }
        data = self._get(f"{self.BASE_URL}/search.json", params)
        return unique_by_book_id(self._doc_to_result(doc) for doc in data.get("docs", []))[:limit]

    # ========================================================================
    # Work Details
    # ========================================================================

    def get_work(self, work_id: str) -> Optional[BookResult]:
        """Get detailed work information.

        Args:
            work_id: Open Library work ID (e.g., "OL123456W")

        Returns:
            BookResult, or None if the catalog has no such work

        Raises:
            OpenLibraryError: On any other request failure
        """
        if not work_id.startswith("OL"):
            work_id = f"OL{work_id}"
        if not work_id.endswith("W"):
            work_id = f"{work_id}W"

        try:
            data = self._get(f"{self.BASE_URL}/works/{work_id}.json")
        except OpenLibraryError as e:
            if e.status_code == 404:
                return None
            raise

        authors = []
        for ak in data.get("authors", [])[:3]:  # Limit API calls
            key = ak.get("author", {}).get("key", "")
            if key:
                name = self._get_author_name(key)
                if name:
                    authors.append(name)

        description = data.get("description")
        if isinstance(description, dict):
            description = description.get("value")

        covers = data.get("covers", [])

        return BookResult(
            book_id=work_id,
            title=data.get("title", "Unknown Title"),
            author=authors[0] if authors else "Unknown Author",
            authors=authors,
            cover_url=self.cover_url(covers[0] if covers else None),
            subjects=data.get("subjects", [])[:20],
            description=description,
        )

    def _get_author_name(self, author_key: str) -> Optional[str]:
        """Fetch author name, or None when the lookup fails."""
        try:
            return self._get(f"{self.BASE_URL}{author_key}.json").get("name")
        except OpenLibraryError:
            return None

    def cover_url(self, cover_id: Optional[int], size: str = "M") -> Optional[str]:
        """Build a cover image URL from a cover id."""
        if not cover_id:
            return None
        return f"{self.COVERS_URL}/b/id/{cover_id}-{size}.jpg"
