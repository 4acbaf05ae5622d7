"""
Filename Derivation
===================

Maps (date, time-of-day) to the filenames storage uses for frames.

Format:
    YYYY-MM-DD_<time token><extension>

    2024-01-05_08-00.jpg
    2024-01-05_12-00.jpg   (canonical noon)
    2024-01-05_12.jpg      (legacy noon alias)

This rule is the only contract between the engine and frame storage:
frames stored under any other name are not discoverable.
"""

from datetime import date
from typing import List, Tuple

from timelapse_engine.models.frame import CandidateFrame
from timelapse_engine.models.query import Query, TimeOfDay
from timelapse_engine.resolver.dates import format_display_label, iter_dates


DEFAULT_EXTENSION = ".jpg"


def derive_filenames(
    day: date,
    time_of_day: TimeOfDay,
    extension: str = DEFAULT_EXTENSION,
) -> Tuple[str, ...]:
    """
    All filename spellings for a date and time-of-day.

    Args:
        day: Capture date
        time_of_day: Capture time token (either noon spelling accepted)
        extension: Image file extension including the dot

    Returns:
        Filenames with the canonical spelling first
    """
    stem = day.isoformat()
    return tuple(f"{stem}_{token}{extension}" for token in time_of_day.spellings)


def derive_filename(
    day: date,
    time_of_day: TimeOfDay,
    extension: str = DEFAULT_EXTENSION,
) -> str:
    """Canonical filename for a date and time-of-day."""
    return derive_filenames(day, time_of_day, extension)[0]


def build_candidates(
    query: Query,
    extension: str = DEFAULT_EXTENSION,
    include_aliases: bool = True,
) -> List[CandidateFrame]:
    """
    Generate one candidate frame per sampled date of a query.

    Args:
        query: Validated query
        extension: Image file extension
        include_aliases: Attach legacy spellings so they are probed too

    Returns:
        Candidates in chronological order
    """
    candidates: List[CandidateFrame] = []
    for day in iter_dates(query.start_date, query.end_date, query.frequency):
        names = derive_filenames(day, query.time_of_day, extension)
        candidates.append(
            CandidateFrame(
                date=day,
                display_label=format_display_label(day),
                filename=names[0],
                alternates=names[1:] if include_aliases else (),
            )
        )
    return candidates


def suggest_export_filename(
    query: Query,
    first_token: str,
    last_token: str,
) -> str:
    """
    Suggested download name for an exported animation.

    Example:
        side-yard_daily_1200_2024-01-01_to_2024-01-03.gif
    """
    location = query.location.replace("_", "-")
    time_token = query.time_of_day.value.replace("-", "", 1)
    return (
        f"{location}_{query.frequency.value}_{time_token}_"
        f"{first_token}_to_{last_token}.gif"
    )
