"""
Timelapse Session
=================

Orchestrates one viewer: query → resolve → {playback, export}.

The session is the seam where engine errors become user-visible status
messages, and where superseded work is discarded.

Supersession:
    Every ``load`` takes a generation number. When a resolve finishes, its
    result is published only if no newer ``load`` started in the meantime;
    otherwise it is logged and dropped. Publishing replaces the sequence as
    a whole and resets playback to IDLE. A failed resolve keeps whatever
    sequence was published before.

    Exports snapshot the valid subsequence when they start, so a later
    ``load`` never changes an export in flight; starting another export
    cancels the pending one.

Status Messages:
    "Loading images..."
    "Loaded 42 images (3 missing)"
    "Failed to load images"
    "No images to animate"
    "No images to export"
    "Failed to create GIF: <reason>"
"""

import logging
from typing import List, Optional, Tuple

from timelapse_engine.cache.prefetch import PrefetchCache
from timelapse_engine.config import Settings
from timelapse_engine.export.encoder import GifEncoder
from timelapse_engine.export.pipeline import ExportPipeline
from timelapse_engine.models.errors import EmptySequenceError, ResolutionFailure
from timelapse_engine.models.export import (
    ExportDone,
    ExportFailed,
    ExportJob,
    ExportProgress,
)
from timelapse_engine.models.frame import FrameSequence
from timelapse_engine.models.oracle import LocationEntry
from timelapse_engine.models.playback import PlaybackState
from timelapse_engine.models.query import Query
from timelapse_engine.playback.controller import PlaybackController
from timelapse_engine.resolver.filenames import suggest_export_filename
from timelapse_engine.resolver.oracle import HttpExistenceOracle, LocationCatalog
from timelapse_engine.resolver.resolver import FrameResolver
from timelapse_engine.storage.loader import HttpFrameLoader, StoreFrameLoader
from timelapse_engine.storage.locator import ResourceLocator
from timelapse_engine.storage.store import FrameStore


logger = logging.getLogger(__name__)


class TimelapseSession:
    """
    Viewer state for one user.

    Attributes:
        resolver: Query resolver
        cache: Prefetch cache shared by playback and export
        controller: Playback state machine
        pipeline: Export pipeline
        initial_prefetch: Frames warmed after each successful resolve
        canvas_size: Export canvas (width, height)
        query: Query of the published sequence
        sequence: Published sequence (empty until the first resolve)
        status: Latest user-visible status message
        progress: Resolution progress, 0-100
        export_progress: Export progress, 0-100
        last_error: Most recent failure, if any
    """

    def __init__(
        self,
        resolver: FrameResolver,
        cache: PrefetchCache,
        pipeline: ExportPipeline,
        controller: Optional[PlaybackController] = None,
        initial_prefetch: int = 20,
        canvas_size: Tuple[int, int] = (800, 600),
    ) -> None:
        self.resolver = resolver
        self.cache = cache
        self.pipeline = pipeline
        self.controller = controller or PlaybackController(cache=cache)
        self.initial_prefetch = initial_prefetch
        self.canvas_size = canvas_size

        self.query: Optional[Query] = None
        self.sequence = FrameSequence()
        self.status: str = ""
        self.loading: bool = False
        self.progress: float = 0.0
        self.export_progress: int = 0
        self.last_error: Optional[Exception] = None
        self.locations: List[LocationEntry] = []

        self._generation: int = 0

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def load(self, query: Query) -> Optional[FrameSequence]:
        """
        Resolve a query and publish the result.

        Returns:
            The published sequence, or None when the resolve failed or
            was superseded by a newer ``load``
        """
        self._generation += 1
        generation = self._generation

        self.loading = True
        self.progress = 0.0
        self.status = "Loading images..."

        def on_progress(percent: float) -> None:
            if generation == self._generation:
                self.progress = percent

        try:
            sequence = await self.resolver.resolve(query, on_progress=on_progress)
        except ResolutionFailure as e:
            if generation != self._generation:
                logger.warning(f"Ignoring failure of superseded resolve: {e}")
                return None
            self.last_error = e
            self.status = "Failed to load images"
            self.loading = False
            logger.error(f"Failed to load images: {e}")
            return None

        if generation != self._generation:
            logger.warning(
                f"Ignoring stale resolve for {query.location} "
                f"(generation {generation}, current {self._generation})"
            )
            return None

        self.query = query
        self.sequence = sequence
        self.controller.load(sequence.valid)
        self.cache.prefetch(sequence.valid, start=0, count=self.initial_prefetch)

        self.last_error = None
        self.loading = False
        self.progress = 100.0
        self.status = f"Loaded {len(sequence.valid)} images ({sequence.missing_count} missing)"
        return sequence

    async def load_locations(self, catalog: LocationCatalog) -> List[LocationEntry]:
        """Populate the location choices; failures leave the list empty."""
        try:
            self.locations = await catalog.list_locations()
        except Exception as e:
            logger.error(f"Failed to load locations: {e}")
            self.locations = []
        return self.locations

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def play(self) -> bool:
        """
        Start playback from the first frame.

        Returns:
            False (with a status notice) when there is nothing to play
        """
        try:
            self.controller.start()
        except EmptySequenceError as e:
            self.status = str(e)
            return False
        return True

    def set_frame_delay(self, frame_delay_ms: int) -> None:
        self.controller.set_frame_delay(frame_delay_ms)

    @property
    def playback(self) -> PlaybackState:
        return self.controller.state

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_filename(self) -> str:
        """Suggested download name for the current sequence."""
        if self.query is None:
            return "timelapse.gif"
        valid = self.sequence.valid
        first = valid[0].date_token if valid else self.query.start_date.isoformat()
        last = valid[-1].date_token if valid else self.query.end_date.isoformat()
        return suggest_export_filename(self.query, first, last)

    def start_export(self) -> Optional[ExportJob]:
        """
        Snapshot the valid subsequence into a new export job.

        Returns:
            The job, or None (with a status notice) when there is nothing to export
        """
        try:
            return self.pipeline.create_job(
                self.sequence.valid,
                frame_delay_ms=self.controller.frame_delay_ms,
                canvas_size=self.canvas_size,
                filename=self.export_filename(),
            )
        except EmptySequenceError as e:
            self.status = str(e)
            return None

    async def export(self) -> Optional[ExportDone]:
        """
        Run an export to completion.

        Returns:
            The Done event, or None when failed, cancelled or empty
        """
        job = self.start_export()
        if job is None:
            return None

        self.export_progress = 0
        result: Optional[ExportDone] = None
        async for event in self.pipeline.run(job):
            if isinstance(event, ExportProgress):
                if self.pipeline.current_job is job:
                    self.export_progress = event.progress
            elif isinstance(event, ExportDone):
                result = event
            elif isinstance(event, ExportFailed):
                self.status = f"Failed to create GIF: {event.reason}"

        if self.pipeline.current_job is job:
            self.export_progress = 0
        return result

    def cancel_export(self) -> None:
        self.pipeline.cancel()


def create_session(
    settings: Settings,
    store: Optional[FrameStore] = None,
) -> TimelapseSession:
    """
    Wire a session from settings.

    Args:
        settings: Loaded configuration
        store: Local frame store; when None the session talks to the
            collaborator service at ``settings.oracle.base_url``

    Returns:
        Ready-to-use session with playback reset to IDLE
    """
    locator = ResourceLocator()
    if store is not None:
        oracle = store
        loader = StoreFrameLoader(store, locator)
    else:
        oracle = HttpExistenceOracle(
            settings.oracle.base_url,
            timeout=settings.oracle.timeout_seconds,
        )
        loader = HttpFrameLoader(
            settings.oracle.base_url,
            timeout=settings.oracle.timeout_seconds,
        )

    resolver = FrameResolver(
        oracle,
        locator,
        extension=settings.storage.image_extension,
        probe_aliases=settings.oracle.probe_legacy_aliases,
    )
    cache = PrefetchCache(loader)
    controller = PlaybackController(
        frame_delay_ms=settings.playback.frame_delay_ms,
        cache=cache,
        prefetch_ahead=settings.prefetch.lookahead,
        min_frame_delay_ms=settings.playback.min_frame_delay_ms,
        max_frame_delay_ms=settings.playback.max_frame_delay_ms,
    )
    pipeline = ExportPipeline(
        cache,
        GifEncoder(),
        quality=settings.export.quality,
        background=settings.export.background,
    )
    return TimelapseSession(
        resolver,
        cache,
        pipeline,
        controller=controller,
        initial_prefetch=settings.prefetch.initial_count,
        canvas_size=settings.export.canvas_size,
    )
