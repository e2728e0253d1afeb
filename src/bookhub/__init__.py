"""bookhub - book discovery, reviews and reading tracker."""

__version__ = "0.1.0"
