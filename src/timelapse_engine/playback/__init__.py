"""
Playback Module
===============

Viewer state machine and its key bindings.

Components:
    - PlaybackController: Owns cursor, phase and the single playback timer
    - handle_key: Keyboard shortcuts for the open viewer
"""

from timelapse_engine.playback.controller import (
    MAX_FRAME_DELAY_MS,
    MIN_FRAME_DELAY_MS,
    PlaybackController,
)
from timelapse_engine.playback.keys import KEY_BINDINGS, handle_key


__all__ = [
    "PlaybackController",
    "MIN_FRAME_DELAY_MS",
    "MAX_FRAME_DELAY_MS",
    "KEY_BINDINGS",
    "handle_key",
]
