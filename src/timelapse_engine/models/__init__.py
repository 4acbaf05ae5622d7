"""
Data Models
===========

Typed models for the timelapse engine.

This module re-exports all data models for convenient access.

Models:
    Query:
        - Frequency, TimeOfDay: Query enums
        - Query: Location, frequency, time-of-day and date range

    Frames:
        - CandidateFrame: One enumerated date before the existence check
        - ResolvedFrame: Candidate plus existence flag and URI
        - FrameSequence: Ordered resolved frames and their valid subsequence

    Playback:
        - PlaybackPhase, PlaybackState: Viewer state machine snapshot

    Export:
        - ExportStatus, ExportJob: Export lifecycle
        - ExportProgress, ExportDone, ExportFailed, ExportCancelled: Events

    Oracle:
        - BatchCheckRequest, BatchCheckEntry, CheckResponse, LocationEntry
"""

from timelapse_engine.models.query import Frequency, Query, TimeOfDay, build_query
from timelapse_engine.models.frame import CandidateFrame, FrameSequence, ResolvedFrame
from timelapse_engine.models.playback import PlaybackPhase, PlaybackState
from timelapse_engine.models.export import (
    ExportCancelled,
    ExportDone,
    ExportEvent,
    ExportFailed,
    ExportJob,
    ExportProgress,
    ExportStatus,
)
from timelapse_engine.models.oracle import (
    BatchCheckEntry,
    BatchCheckRequest,
    CheckResponse,
    LocationEntry,
)
from timelapse_engine.models.errors import (
    EmptySequenceError,
    EncoderError,
    FrameLoadError,
    InvalidQueryError,
    OracleProtocolError,
    ResolutionFailure,
    TimelapseError,
)

__all__ = [
    # Query
    "Frequency",
    "TimeOfDay",
    "Query",
    "build_query",
    # Frames
    "CandidateFrame",
    "ResolvedFrame",
    "FrameSequence",
    # Playback
    "PlaybackPhase",
    "PlaybackState",
    # Export
    "ExportStatus",
    "ExportJob",
    "ExportEvent",
    "ExportProgress",
    "ExportDone",
    "ExportFailed",
    "ExportCancelled",
    # Oracle
    "BatchCheckRequest",
    "BatchCheckEntry",
    "CheckResponse",
    "LocationEntry",
    # Errors
    "TimelapseError",
    "InvalidQueryError",
    "ResolutionFailure",
    "OracleProtocolError",
    "EmptySequenceError",
    "FrameLoadError",
    "EncoderError",
]
