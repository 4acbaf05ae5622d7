"""
Frame Data Models
=================

Internal frame representations produced by the resolver.

Design Rules:
    - CandidateFrame is generated once per enumerated date and never mutated
    - ResolvedFrame carries a URI if and only if the frame exists
    - FrameSequence keeps every resolved frame in chronological order;
      its valid subsequence is derived, never stored separately
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class CandidateFrame:
    """
    A frame that may exist for one enumerated date.

    Attributes:
        date: Capture date
        display_label: Human readable date (e.g. "Jan 1, 2024")
        filename: Canonical filename for the date and time-of-day
        alternates: Legacy filename spellings probed alongside the canonical one
    """

    date: date
    display_label: str
    filename: str
    alternates: Tuple[str, ...] = ()

    @property
    def probe_names(self) -> Tuple[str, ...]:
        """All filenames to submit to the existence oracle, canonical first."""
        return (self.filename,) + self.alternates


@dataclass(frozen=True, slots=True)
class ResolvedFrame:
    """
    Candidate frame after the existence check.

    Attributes:
        date: Capture date
        display_label: Human readable date
        filename: Spelling found in storage (canonical when missing)
        exists: Whether the frame is present in storage
        uri: Resource URI of the frame bytes, None when missing
    """

    date: date
    display_label: str
    filename: str
    exists: bool
    uri: Optional[str] = None

    def __post_init__(self) -> None:
        if self.exists != (self.uri is not None):
            raise ValueError(
                f"Frame {self.filename}: uri must be set if and only if the frame exists"
            )

    @property
    def date_token(self) -> str:
        """Date portion of the filename (``YYYY-MM-DD``)."""
        return self.filename.split("_", 1)[0]

    def __repr__(self) -> str:
        return f"ResolvedFrame({self.filename}, exists={self.exists})"


@dataclass(frozen=True)
class FrameSequence:
    """
    Chronologically ordered frames resolved for a query.

    Missing frames stay in the sequence as placeholders so consumers can
    render gaps; playback and export operate on ``valid`` only.

    Attributes:
        frames: Every resolved frame, date ascending
        valid: Frames that exist, in the same relative order
    """

    frames: Tuple[ResolvedFrame, ...] = ()
    valid: Tuple[ResolvedFrame, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "valid", tuple(f for f in self.frames if f.exists)
        )

    @property
    def missing_count(self) -> int:
        """Number of placeholder frames."""
        return len(self.frames) - len(self.valid)

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self):
        return iter(self.frames)
