"""
Query Models
============

This module defines the logical query a user submits to browse a timelapse.

A query names a camera location, a sampling frequency, a capture time-of-day
and an inclusive date range. The resolver turns it into candidate frames.

Time-of-Day Tokens:
    Frames are stored with a hyphenated time token in their filename
    (e.g. ``2024-01-01_12-00.jpg``). Noon has a legacy spelling (``12``)
    that older captures still use; ``12-00`` is its canonical form.

Example:
    from datetime import date
    from timelapse_engine.models.query import Frequency, Query, TimeOfDay

    query = Query(
        location="side_yard",
        frequency=Frequency.DAILY,
        time_of_day=TimeOfDay.NOON,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 31),
    )
"""

from datetime import date
from enum import Enum
from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from timelapse_engine.models.errors import InvalidQueryError


class Frequency(str, Enum):
    """
    Sampling frequency of a timelapse query.

    Attributes:
        DAILY: One frame per day
        WEEKLY: One frame every 7 days
        MONTHLY: One frame per calendar month (day-of-month preserved)
    """

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TimeOfDay(str, Enum):
    """Capture time tokens as they appear in frame filenames."""

    MIDNIGHT = "00-00"
    EARLY_MORNING = "04-00"
    MORNING = "08-00"
    NOON = "12-00"
    NOON_LEGACY = "12"
    AFTERNOON = "16-00"
    EVENING = "20-00"

    @property
    def canonical(self) -> "TimeOfDay":
        """Canonical spelling of this token."""
        if self is TimeOfDay.NOON_LEGACY:
            return TimeOfDay.NOON
        return self

    @property
    def spellings(self) -> Tuple[str, ...]:
        """
        Every filename spelling of this time of day.

        The canonical spelling comes first; legacy aliases follow.
        """
        if self.canonical is TimeOfDay.NOON:
            return (TimeOfDay.NOON.value, TimeOfDay.NOON_LEGACY.value)
        return (self.value,)


class Query(BaseModel):
    """
    Logical timelapse query.

    Attributes:
        location: Camera location identifier (storage directory name)
        frequency: Sampling frequency
        time_of_day: Capture time token
        start_date: First date of the range (inclusive)
        end_date: Last date of the range (inclusive)
    """

    model_config = ConfigDict(frozen=True)

    location: str = Field(
        ...,
        min_length=1,
        description="Camera location identifier",
    )

    frequency: Frequency = Field(
        default=Frequency.DAILY,
        description="Sampling frequency",
    )

    time_of_day: TimeOfDay = Field(
        default=TimeOfDay.NOON,
        description="Capture time token (hyphenated)",
    )

    start_date: date = Field(
        ...,
        description="First date of the range (inclusive)",
    )

    end_date: date = Field(
        ...,
        description="Last date of the range (inclusive)",
    )

    @field_validator("time_of_day", mode="before")
    @classmethod
    def normalize_time_token(cls, v: Any) -> Any:
        """Accept ``12:00`` style tokens by converting them to ``12-00``."""
        if isinstance(v, str) and not isinstance(v, TimeOfDay):
            return v.replace(":", "-")
        return v

    @model_validator(mode="after")
    def validate_range(self) -> "Query":
        """Ensure the date range is not inverted."""
        if self.start_date > self.end_date:
            raise ValueError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )
        return self


def build_query(
    location: str,
    start_date: Any,
    end_date: Any,
    frequency: Any = Frequency.DAILY,
    time_of_day: Any = TimeOfDay.NOON,
) -> Query:
    """
    Validate raw user input into a Query.

    Dates may be ``date`` objects or ISO strings; enums may be given by value.

    Raises:
        InvalidQueryError: If any field is invalid or the range is inverted
    """
    try:
        return Query(
            location=location,
            frequency=frequency,
            time_of_day=time_of_day,
            start_date=start_date,
            end_date=end_date,
        )
    except ValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise InvalidQueryError(f"Invalid query: {messages}") from e
