"""Project-wide custom exception types."""


class InvalidRecordError(ValueError):
    """Raised when a row violates a record-store invariant (e.g. rating 1-5)."""

    def __init__(self, message: str) -> None:  # noqa: D401 – simple constructor
        super().__init__(message)


class TeamNotFoundError(LookupError):
    """Raised when a team id or name does not match any stored team."""
