"""
Export Models
=============

Job and event types for the animated GIF export pipeline.

An ExportJob is a snapshot: it copies the valid subsequence at creation, so
a later re-resolve never changes what an in-flight export encodes.

Event Stream:
    ExportProgress(progress=33)
    ExportProgress(progress=66)
    ExportProgress(progress=99)
    ExportProgress(progress=100)
    ExportDone(data=b"GIF89a...", filename="side-yard_daily_1200_...gif")

    or, on any failure:
    ExportFailed(reason="...")

    or, when cancelled:
    ExportCancelled()
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from timelapse_engine.models.frame import ResolvedFrame


class ExportStatus(str, Enum):
    """
    Lifecycle of an export job.

    Attributes:
        PENDING: Created, no frame appended yet
        RUNNING: Frames are being composited and encoded
        DONE: Encoder finalised, bytes available
        FAILED: A frame or the encoder failed, nothing produced
        CANCELLED: Cancelled or superseded, nothing produced
    """

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    DONE = "DONE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


@dataclass
class ExportJob:
    """
    State of one export, owned by the pipeline running it.

    Attributes:
        frames: Snapshot of the valid subsequence
        frame_delay_ms: Delay between frames in the output
        canvas_size: Output (width, height) in pixels
        filename: Suggested download filename
        progress: Percentage of work done, 0-100
        status: Current lifecycle status
        error: Failure reason when FAILED
    """

    frames: Tuple[ResolvedFrame, ...]
    frame_delay_ms: int
    canvas_size: Tuple[int, int]
    filename: str = "timelapse.gif"
    progress: int = 0
    status: ExportStatus = ExportStatus.PENDING
    error: Optional[str] = None
    _cancel_requested: bool = field(default=False, repr=False)

    @property
    def total_frames(self) -> int:
        return len(self.frames)

    @property
    def finished(self) -> bool:
        """Whether the job reached a terminal status."""
        return self.status in (
            ExportStatus.DONE,
            ExportStatus.FAILED,
            ExportStatus.CANCELLED,
        )

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def cancel(self) -> None:
        """Request cancellation; honoured before the next frame is fed."""
        if not self.finished:
            self._cancel_requested = True


@dataclass(frozen=True, slots=True)
class ExportProgress:
    """Progress update, percentage in [0, 100]."""

    progress: int


@dataclass(frozen=True, slots=True)
class ExportDone:
    """Terminal success event carrying the encoded animation."""

    data: bytes
    filename: str

    def __repr__(self) -> str:
        return f"ExportDone(filename={self.filename!r}, size={len(self.data)})"


@dataclass(frozen=True, slots=True)
class ExportFailed:
    """Terminal failure event."""

    reason: str


@dataclass(frozen=True, slots=True)
class ExportCancelled:
    """Terminal event for a cancelled job."""

    pass


ExportEvent = Union[ExportProgress, ExportDone, ExportFailed, ExportCancelled]
