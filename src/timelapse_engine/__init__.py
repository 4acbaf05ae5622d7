"""
Timelapse Engine
================

Browse, play back and export date-indexed timelapse frames.

This package resolves a logical query (location, date range, frequency,
time-of-day) into the ordered frames that exist in storage, plays them back
through a timer-driven state machine and exports them as an animated GIF.

Components:
    - models: Query, frame, playback and export types plus the error taxonomy
    - resolver: Date stepping, filename derivation, batched existence resolution
    - storage: Resource locator, directory-backed frame store, frame loaders
    - cache: Best-effort prefetch of frame bytes
    - playback: Viewer state machine and key bindings
    - export: Letterbox compositing, GIF encoding, export pipeline
    - session: Orchestration with supersession of stale work
    - main: FastAPI collaborator service

Example:
    from timelapse_engine.session import TimelapseSession

    sequence = await session.load(query)
    session.play()
"""

__version__ = "0.1.0"
__author__ = "Timelapse Project"

__all__ = [
    "__version__",
]
