"""Error taxonomy for registry loading and query compilation."""

from typing import Optional


class QueryError(Exception):
    """Base class for every error raised by the compiler."""


class SchemaError(QueryError):
    """The variable registry source is inconsistent. Fatal at startup."""


class ValidationError(QueryError):
    """A request was rejected before any SQL was built."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict:
        return {"field": self.field, "detail": self.message}


class InvalidRangeError(ValidationError):
    """Distance bounds with min > max."""

    def __init__(self, minimum: float, maximum: float, field: Optional[str] = None):
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            field or "distance_bounds",
            f"min ({minimum}) must be <= max ({maximum}).",
        )
