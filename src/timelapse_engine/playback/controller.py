"""
Playback Controller
===================

Finite-state machine driving the timelapse viewer.

The controller owns the cursor into the valid subsequence, the playback
phase and the single timer that advances the cursor. Nothing else mutates
them; callers go through the transition methods below.

Transition Table:
    | From            | Event      | To              | Effect                           |
    |-----------------|------------|-----------------|----------------------------------|
    | any             | start()    | PLAYING         | cursor := 0, arm timer           |
    | PLAYING         | tick       | PLAYING / ENDED | cursor += 1, ENDED on last frame |
    | PLAYING         | pause()    | PAUSED          | clear timer                      |
    | PAUSED          | resume()   | PLAYING         | arm timer (not on last frame)    |
    | PLAYING/PAUSED  | next()     | PAUSED / ENDED  | clear timer, cursor += 1         |
    | PLAYING/PAUSED/ | previous() | PAUSED          | clear timer, cursor -= 1         |
    | ENDED           |            |                 |                                  |
    | ENDED           | rewind()   | PLAYING         | cursor := 0, arm timer           |
    | any             | select(i)  | PAUSED          | clear timer, cursor := i         |
    | any             | stop()     | IDLE            | clear timer, cursor := None      |

Timing:
    The timer period is the current frame delay (50-1000 ms). Changing the
    delay while playing re-arms the timer, so the new period applies from
    the next tick. Arming always clears the previous timer first: at most
    one tick stream exists at any time.

Design Rules:
    - Boundary moves (next at the end, previous at the start) are no-ops
    - Reaching the last frame while playing ends playback; it never loops
    - An empty subsequence rejects start() without any state change
    - Timer tasks need a running event loop; the transitions themselves are
      synchronous so a caller can drive ``tick`` directly
    - A transition that must arm the timer outside a running loop raises
      RuntimeError before touching cursor or phase
"""

import asyncio
import logging
from typing import Callable, List, Optional, Sequence, Union

from timelapse_engine.cache.prefetch import PrefetchCache
from timelapse_engine.models.errors import EmptySequenceError
from timelapse_engine.models.frame import ResolvedFrame
from timelapse_engine.models.playback import PlaybackPhase, PlaybackState


logger = logging.getLogger(__name__)


PlaybackListener = Callable[[PlaybackState, Optional[ResolvedFrame]], None]

MIN_FRAME_DELAY_MS = 50
MAX_FRAME_DELAY_MS = 1000


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class PlaybackController:
    """
    Playback state machine over a valid subsequence.

    Attributes:
        frames: Valid subsequence being played (read-only here)
        frame_delay_ms: Timer period in milliseconds
        cache: Optional prefetch cache warmed on forward steps
        prefetch_ahead: Frames to warm beyond the one shown

    Example:
        controller = PlaybackController(sequence.valid, frame_delay_ms=100)
        controller.add_listener(lambda state, frame: show(frame))

        controller.start()
        ...
        controller.pause()
        controller.next()
        controller.stop()
    """

    def __init__(
        self,
        frames: Sequence[ResolvedFrame] = (),
        frame_delay_ms: int = 100,
        cache: Optional[PrefetchCache] = None,
        prefetch_ahead: int = 5,
        min_frame_delay_ms: int = MIN_FRAME_DELAY_MS,
        max_frame_delay_ms: int = MAX_FRAME_DELAY_MS,
    ) -> None:
        self.min_frame_delay_ms = min_frame_delay_ms
        self.max_frame_delay_ms = max_frame_delay_ms
        self._check_delay(frame_delay_ms)

        self._frames: tuple = tuple(frames)
        self._frame_delay_ms = frame_delay_ms
        self.cache = cache
        self.prefetch_ahead = prefetch_ahead

        self._phase = PlaybackPhase.IDLE
        self._cursor: Optional[int] = None
        self._timer: Optional[asyncio.Task] = None
        self._listeners: List[PlaybackListener] = []

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def frames(self) -> tuple:
        return self._frames

    @property
    def state(self) -> PlaybackState:
        """Snapshot of phase and cursor."""
        return PlaybackState(phase=self._phase, cursor=self._cursor)

    @property
    def phase(self) -> PlaybackPhase:
        return self._phase

    @property
    def cursor(self) -> Optional[int]:
        return self._cursor

    @property
    def current_frame(self) -> Optional[ResolvedFrame]:
        """Frame on screen, None while IDLE."""
        if self._cursor is None:
            return None
        return self._frames[self._cursor]

    @property
    def frame_delay_ms(self) -> int:
        return self._frame_delay_ms

    @property
    def timer_active(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def _last_index(self) -> int:
        return len(self._frames) - 1

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def add_listener(self, listener: PlaybackListener) -> None:
        """Register a callback invoked after every state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: PlaybackListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def load(self, frames: Sequence[ResolvedFrame]) -> None:
        """Replace the subsequence; playback resets to IDLE."""
        self.stop()
        self._frames = tuple(frames)
        logger.debug(f"Playback loaded with {len(self._frames)} frames")

    def set_frame_delay(self, frame_delay_ms: int) -> None:
        """
        Change the timer period.

        Raises:
            ValueError: If the delay is outside the allowed range
        """
        self._check_delay(frame_delay_ms)
        if self._phase is PlaybackPhase.PLAYING:
            loop = self._running_loop()
            self._frame_delay_ms = frame_delay_ms
            self._arm_timer(loop)
        else:
            self._frame_delay_ms = frame_delay_ms

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self) -> PlaybackState:
        """
        Play from the first frame.

        Raises:
            EmptySequenceError: If there is nothing to play
            RuntimeError: If the timer cannot be armed (no running event loop)
        """
        if not self._frames:
            raise EmptySequenceError("No images to animate")

        self._play_from(0)
        return self.state

    def tick(self) -> PlaybackState:
        """Advance one frame; only meaningful while PLAYING."""
        if self._phase is not PlaybackPhase.PLAYING:
            return self.state

        if self._cursor >= self._last_index:
            self._finish()
            return self.state

        self._cursor += 1
        self._prefetch_ahead()
        if self._cursor == self._last_index:
            self._finish()
        else:
            self._emit()
        return self.state

    def pause(self) -> PlaybackState:
        if self._phase is PlaybackPhase.PLAYING:
            self._cancel_timer()
            self._phase = PlaybackPhase.PAUSED
            self._emit()
        return self.state

    def resume(self) -> PlaybackState:
        """Continue playing; no-op unless PAUSED before the last frame."""
        if self._phase is not PlaybackPhase.PAUSED:
            return self.state
        if self._cursor >= self._last_index:
            return self.state

        loop = self._running_loop()
        self._phase = PlaybackPhase.PLAYING
        self._arm_timer(loop)
        self._emit()
        return self.state

    def toggle(self) -> PlaybackState:
        """Pause when playing, otherwise resume unless ended."""
        if self._phase is PlaybackPhase.PLAYING:
            return self.pause()
        return self.resume()

    def next(self) -> PlaybackState:
        """Step forward one frame, pausing playback first."""
        if self._cursor is None or self._cursor >= self._last_index:
            return self.state

        self._cancel_timer()
        self._cursor += 1
        self._prefetch_ahead()
        if self._cursor == self._last_index:
            self._phase = PlaybackPhase.ENDED
        else:
            self._phase = PlaybackPhase.PAUSED
        self._emit()
        return self.state

    def previous(self) -> PlaybackState:
        """Step back one frame, pausing playback first."""
        if self._cursor is None or self._cursor <= 0:
            return self.state

        self._cancel_timer()
        self._cursor -= 1
        self._phase = PlaybackPhase.PAUSED
        self._emit()
        return self.state

    def rewind(self) -> PlaybackState:
        """Restart from the first frame; only honoured when ENDED."""
        if self._phase is not PlaybackPhase.ENDED:
            return self.state
        self._play_from(0)
        return self.state

    def select(self, target: Union[int, ResolvedFrame]) -> PlaybackState:
        """
        Show a specific frame, paused.

        Args:
            target: Index into the subsequence, or a frame from it

        A frame that is not part of the subsequence (e.g. a missing
        placeholder) or an out-of-range index leaves the state unchanged.
        """
        index = self._index_of(target)
        if index is None:
            logger.warning(f"Cannot select {target!r}: not in the playable frames")
            return self.state

        self._cancel_timer()
        self._cursor = index
        self._phase = PlaybackPhase.PAUSED
        self._emit()
        return self.state

    def stop(self) -> PlaybackState:
        """Stop playback and close the viewer."""
        self._cancel_timer()
        if self._phase is PlaybackPhase.IDLE:
            return self.state

        self._phase = PlaybackPhase.IDLE
        self._cursor = None
        self._emit()
        return self.state

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _play_from(self, index: int) -> None:
        loop = self._running_loop() if index < self._last_index else None
        self._cancel_timer()
        self._cursor = index
        if loop is None:
            self._phase = PlaybackPhase.ENDED
        else:
            self._phase = PlaybackPhase.PLAYING
            self._arm_timer(loop)
        self._emit()

    def _finish(self) -> None:
        self._cancel_timer()
        self._phase = PlaybackPhase.ENDED
        self._emit()
        logger.debug(f"Playback ended at frame {self._cursor}")

    def _running_loop(self) -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError as e:
            raise RuntimeError("Playback timer needs a running event loop") from e

    def _arm_timer(self, loop: asyncio.AbstractEventLoop) -> None:
        self._cancel_timer()
        self._timer = loop.create_task(self._run_timer(), name="playback_timer")

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done() and timer is not _current_task():
            timer.cancel()

    async def _run_timer(self) -> None:
        me = asyncio.current_task()
        while self._timer is me and self._phase is PlaybackPhase.PLAYING:
            await asyncio.sleep(self._frame_delay_ms / 1000.0)
            if self._timer is not me:
                break
            self.tick()

    def _prefetch_ahead(self) -> None:
        if self.cache is None or self.prefetch_ahead <= 0:
            return
        self.cache.prefetch(self._frames, start=self._cursor + 1, count=self.prefetch_ahead)

    def _index_of(self, target: Union[int, ResolvedFrame]) -> Optional[int]:
        if isinstance(target, int):
            return target if 0 <= target < len(self._frames) else None
        for i, frame in enumerate(self._frames):
            if frame == target or (frame.uri is not None and frame.uri == target.uri):
                return i
        return None

    def _check_delay(self, frame_delay_ms: int) -> None:
        if not self.min_frame_delay_ms <= frame_delay_ms <= self.max_frame_delay_ms:
            raise ValueError(
                f"frame_delay_ms must be within "
                f"[{self.min_frame_delay_ms}, {self.max_frame_delay_ms}], got {frame_delay_ms}"
            )

    def _emit(self) -> None:
        state = self.state
        frame = self.current_frame
        for listener in list(self._listeners):
            try:
                listener(state, frame)
            except Exception as e:
                logger.error(f"Playback listener failed: {e}")
