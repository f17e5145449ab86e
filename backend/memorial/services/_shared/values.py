# comments in English; reST docstrings
"""Value objects and helpers shared by the service packages."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from memorial.services._shared.errors import InvalidArgumentError


def as_utc(value: datetime) -> datetime:
    """
    Return ``value`` as a timezone-aware UTC datetime.

    Naive datetimes (e.g. read back from SQLite) are labelled as UTC without
    conversion.

    :param value: Datetime to normalise.
    :type value: datetime
    :returns: Aware datetime in UTC.
    :rtype: datetime
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class UniversallyUniqueIdentifier:
    """
    UUID-formatted opaque identifier.

    Equality is by the underlying string. Subclasses only narrow the meaning.

    :param value: Canonical hyphenated UUID string.
    :type value: str
    :raises InvalidArgumentError: If ``value`` is not a UUID string.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or len(self.value) != 36:
            raise InvalidArgumentError(f"{type(self).__name__} must be a UUID string.")
        try:
            UUID(self.value)
        except ValueError as exc:
            raise InvalidArgumentError(f"{type(self).__name__} must be a UUID string.") from exc

    def __str__(self) -> str:
        return self.value
