"""
UTC datestamps and their granularity.

OAI-PMH supports two granularities:
- Day: YYYY-MM-DD
- Second: YYYY-MM-DDThh:mm:ssZ
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import total_ordering

from .exceptions import ValidationError


# OAI-PMH date format patterns
DATE_PATTERN = re.compile(r'[0-9]{4}-[0-9]{2}-[0-9]{2}')
DATETIME_PATTERN = re.compile(r'[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}Z')


class Granularity(str, Enum):
    """Precision of a datestamp."""

    DATE = 'YYYY-MM-DD'
    DATE_TIME_SECOND = 'YYYY-MM-DDThh:mm:ssZ'

    @classmethod
    def _missing_(cls, value):
        allowed = ', '.join(member.value for member in cls)
        raise ValidationError(
            'granularity', value,
            f"Invalid granularity: {value!r}. Allowed values are: {allowed}"
        )

    @property
    def pattern(self) -> 're.Pattern[str]':
        return DATE_PATTERN if self is Granularity.DATE else DATETIME_PATTERN

    @property
    def strptime_format(self) -> str:
        return '%Y-%m-%d' if self is Granularity.DATE else '%Y-%m-%dT%H:%M:%SZ'

    def __str__(self) -> str:
        return self.value


def detect_granularity(value: str) -> Granularity:
    """
    Get the granularity of an OAI-PMH date literal.

    Args:
        value: Date string

    Returns:
        Granularity.DATE for YYYY-MM-DD, Granularity.DATE_TIME_SECOND
        for YYYY-MM-DDThh:mm:ssZ

    Raises:
        ValidationError: If the literal matches neither form
    """
    if isinstance(value, str):
        if DATE_PATTERN.fullmatch(value):
            return Granularity.DATE
        if DATETIME_PATTERN.fullmatch(value):
            return Granularity.DATE_TIME_SECOND
    raise ValidationError(
        'datestamp', value,
        f"Invalid datestamp: {value!r}. Use YYYY-MM-DD or YYYY-MM-DDThh:mm:ssZ"
    )


@total_ordering
@dataclass(frozen=True)
class UTCdatetime:
    """
    A UTC datestamp literal paired with its granularity.

    The literal must match the granularity's pattern and denote a real
    calendar date and time. Two datestamps are equal only when both the
    literal and the granularity are equal; ordering compares instants.

    Example:
        >>> stamp = UTCdatetime('2024-05-01T12:00:00Z', Granularity.DATE_TIME_SECOND)
        >>> stamp.datetime.year
        2024
        >>> UTCdatetime.from_string('2024-05-01').granularity
        <Granularity.DATE: 'YYYY-MM-DD'>
    """
    value: str
    granularity: Granularity

    def __post_init__(self) -> None:
        # accepts the raw literals as well as enum members
        object.__setattr__(self, 'granularity', Granularity(self.granularity))

        if not isinstance(self.value, str) or not self.granularity.pattern.fullmatch(self.value):
            raise ValidationError(
                'datestamp', self.value,
                f"Datestamp {self.value!r} does not match granularity {self.granularity.value!r}"
            )
        try:
            datetime.strptime(self.value, self.granularity.strptime_format)
        except ValueError as e:
            raise ValidationError(
                'datestamp', self.value, f"Datestamp {self.value!r} is not a valid date"
            ) from e

    @classmethod
    def from_string(cls, value: str) -> 'UTCdatetime':
        """Build a datestamp, inferring the granularity from the literal."""
        return cls(value, detect_granularity(value))

    @classmethod
    def now(cls, granularity: Granularity = Granularity.DATE_TIME_SECOND) -> 'UTCdatetime':
        """Current time at the given granularity."""
        granularity = Granularity(granularity)
        return cls(
            datetime.now(timezone.utc).strftime(granularity.strptime_format),
            granularity
        )

    @property
    def datetime(self) -> datetime:
        """Timezone-aware datetime (midnight for day granularity)."""
        parsed = datetime.strptime(self.value, self.granularity.strptime_format)
        return parsed.replace(tzinfo=timezone.utc)

    def __lt__(self, other: 'UTCdatetime') -> bool:
        if not isinstance(other, UTCdatetime):
            return NotImplemented
        return self.datetime < other.datetime

    def __str__(self) -> str:
        return self.value
