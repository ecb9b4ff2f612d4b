"""
Common Value Objects

Value objects used across multiple domains:
- TimeRange: A half-open range of moments [start, end) (booking windows)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from shared.domain.base import ValueObject
from shared.domain.exceptions import InvalidTimeRangeError

ONE_HOUR = timedelta(hours=1)


@dataclass(frozen=True)
class TimeRange(ValueObject):
    """
    Time range value object

    Represents a range from start (inclusive) to end (exclusive), so
    back-to-back booking windows do not overlap.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise InvalidTimeRangeError()

    @property
    def billable_hours(self) -> int:
        """Number of started hours in the range (partial hours round up)."""
        hours, remainder = divmod(self.end - self.start, ONE_HOUR)
        return hours + (1 if remainder else 0)

    def __str__(self):
        return f"{self.start:%d.%m.%Y %H:%M} - {self.end:%d.%m.%Y %H:%M}"

    def __repr__(self):
        return f"TimeRange({self.start.isoformat()}, {self.end.isoformat()})"
