"""
Error Taxonomy
==============

Exceptions raised by the timelapse engine.

    TimelapseError
    ├── InvalidQueryError      query could not be built (bad range or token)
    ├── ResolutionFailure      batched existence call failed outright
    │   └── OracleProtocolError  oracle answered with a malformed payload
    ├── EmptySequenceError     nothing to play or export
    ├── FrameLoadError         frame bytes could not be fetched or decoded
    └── EncoderError           animation encoder failed

Browsing and playback degrade gracefully on per-frame problems; export
treats every failure as fatal to the job.
"""

from typing import Optional


class TimelapseError(Exception):
    """Base class for all engine errors."""
    pass


class InvalidQueryError(TimelapseError):
    """Raised when a query cannot be constructed."""
    pass


class ResolutionFailure(TimelapseError):
    """Raised when the batched existence check fails as a whole."""

    def __init__(self, message: str, location: Optional[str] = None) -> None:
        super().__init__(message)
        self.location = location


class OracleProtocolError(ResolutionFailure):
    """Raised when an oracle response does not match the typed contract."""
    pass


class EmptySequenceError(TimelapseError):
    """Raised when playback or export is requested on zero valid frames."""
    pass


class FrameLoadError(TimelapseError):
    """Raised when a frame cannot be loaded or decoded."""

    def __init__(self, message: str, uri: Optional[str] = None) -> None:
        super().__init__(message)
        self.uri = uri


class EncoderError(TimelapseError):
    """Raised when the animation encoder fails."""
    pass
