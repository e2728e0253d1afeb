"""Configuration management for bookhub.

Loads configuration from environment variables and provides defaults.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int, problems: list[str]) -> int:
    """Read an integer from the environment, noting malformed values."""
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        problems.append(f"{name} must be an integer, got {value!r}")
        return default


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Logging
    log_level: str

    # Review policies
    allow_multiple_reviews: bool
    allow_self_votes: bool

    # Pagination
    default_page_size: int
    max_page_size: int  # 0 disables the cap

    # Open Library
    openlibrary_timeout: int  # seconds

    # Malformed environment values that fell back to defaults
    env_errors: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "BOOKHUB_DB_PATH",
            str(Path.home() / ".bookhub" / "bookhub.db"),
        )
        db_path = Path(db_path_str).expanduser()
        problems: list[str] = []

        return cls(
            db_path=db_path,
            log_level=os.environ.get("BOOKHUB_LOG_LEVEL", "INFO").upper(),
            allow_multiple_reviews=_env_bool("BOOKHUB_ALLOW_MULTIPLE_REVIEWS", True),
            allow_self_votes=_env_bool("BOOKHUB_ALLOW_SELF_VOTES", True),
            default_page_size=_env_int("BOOKHUB_DEFAULT_PAGE_SIZE", 10, problems),
            max_page_size=_env_int("BOOKHUB_MAX_PAGE_SIZE", 50, problems),
            openlibrary_timeout=_env_int("BOOKHUB_OPENLIBRARY_TIMEOUT", 10, problems),
            env_errors=problems,
        )

    @property
    def is_memory_db(self) -> bool:
        """Check if the database lives in memory."""
        return str(self.db_path) == ":memory:"

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = list(self.env_errors)

        if not isinstance(logging.getLevelName(self.log_level), int):
            errors.append(f"Unknown log level: {self.log_level}")

        if self.default_page_size <= 0:
            errors.append("Default page size must be positive")
        if self.max_page_size < 0:
            errors.append("Max page size cannot be negative")
        if self.max_page_size and self.default_page_size > self.max_page_size:
            errors.append("Default page size exceeds max page size")

        if self.openlibrary_timeout <= 0:
            errors.append("Open Library timeout must be positive")

        # Check database directory is writable
        if not self.is_memory_db and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors

    def clamp_page_size(self, limit: Optional[int]) -> int:
        """Resolve a requested page size against the configured bounds."""
        if limit is None:
            limit = self.default_page_size
        if self.max_page_size:
            return min(limit, self.max_page_size)
        return limit


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
