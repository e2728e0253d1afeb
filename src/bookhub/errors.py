"""Error taxonomy shared by every bookhub service.

- ValidationError: bad input, reported with the constraint that failed
- NotFoundError: missing record, or one the acting user does not own
- StorageError: persistence failure, internal detail withheld
"""

from typing import Any, Optional, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class BookHubError(Exception):
    """Base exception for bookhub errors."""

    pass


class ValidationError(BookHubError):
    """Raised when input breaks a field or business constraint."""

    def __init__(self, message: str, errors: Optional[list[dict]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class DuplicateReviewError(ValidationError):
    """Raised when the single-review policy rejects a second review."""

    pass


class NotFoundError(BookHubError):
    """Raised when a record is absent or not owned by the caller."""

    pass


class StorageError(BookHubError):
    """Raised when the underlying store fails."""

    pass


def parse_model(schema: type[ModelT], **values: Any) -> ModelT:
    """Build a schema instance, translating pydantic failures.

    Args:
        schema: Pydantic model class
        **values: Field values

    Returns:
        Validated model instance

    Raises:
        ValidationError: If any field is invalid
    """
    try:
        return schema(**values)
    except PydanticValidationError as e:
        problems = [
            {
                "field": ".".join(str(part) for part in err["loc"]),
                "message": err["msg"],
            }
            for err in e.errors()
        ]
        first = problems[0]
        message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
        raise ValidationError(message, problems) from None
