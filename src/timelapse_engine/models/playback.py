"""
Playback State Models
=====================

Single source of truth for the viewer's playback state.

Core Concepts:
    - PlaybackPhase: Discrete phases (IDLE, PLAYING, PAUSED, ENDED)
    - PlaybackState: Phase plus the cursor into the valid subsequence

Transitions:
    IDLE → PLAYING:     start()
    PLAYING → PAUSED:   pause(), next(), previous(), select()
    PAUSED → PLAYING:   resume() (unless on the last frame)
    PLAYING → ENDED:    tick or next() reaching the last frame
    ENDED → PLAYING:    rewind()
    ENDED → PAUSED:     previous()
    any → IDLE:         stop()

The cursor is None only while IDLE. There is no separate "viewer open"
flag: the viewer shows a frame exactly when the phase is not IDLE.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PlaybackPhase(str, Enum):
    """
    Discrete playback phases.

    Attributes:
        IDLE: Viewer closed, no cursor
        PLAYING: Timer running, cursor advances every frame delay
        PAUSED: Viewer open on a frame, timer stopped
        ENDED: Cursor on the last frame after playing through
    """

    IDLE = "IDLE"
    PLAYING = "PLAYING"
    PAUSED = "PAUSED"
    ENDED = "ENDED"


@dataclass(frozen=True, slots=True)
class PlaybackState:
    """
    Immutable snapshot of the playback controller.

    Attributes:
        phase: Current phase
        cursor: Index into the valid subsequence, None while IDLE
    """

    phase: PlaybackPhase = PlaybackPhase.IDLE
    cursor: Optional[int] = None

    @property
    def viewer_open(self) -> bool:
        """Whether a frame is on screen."""
        return self.phase is not PlaybackPhase.IDLE
