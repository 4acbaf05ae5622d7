"""
Export Pipeline
===============

Encodes a snapshot of the valid subsequence as an animated GIF.

Algorithm (sequential, chronological):
    for each frame:
        1. load bytes through the prefetch cache (on-demand when cold)
        2. decode and letterbox onto the canvas
        3. append to the encoder with the configured delay
        4. emit progress = floor(appended * 100 / total), capped at 99
    finalize the encoder → progress 100 → Done(bytes, filename)

Design Rules:
    - All-or-nothing: any frame or encoder failure ends the job as FAILED
      with no output; frames are never skipped
    - Every exit other than DONE releases the encoder session
    - Cancellation is best effort: checked before each frame, after each
      suspension point and before the result is published
    - Starting a new job cancels the previous one; its late result is dropped
    - The job owns a private snapshot; a concurrent re-resolve cannot change it

Example:
    pipeline = ExportPipeline(cache, GifEncoder())

    async for event in pipeline.export(sequence.valid, 100, (800, 600)):
        if isinstance(event, ExportProgress):
            print(f"{event.progress}%")
        elif isinstance(event, ExportDone):
            Path(event.filename).write_bytes(event.data)
"""

import asyncio
import logging
from typing import AsyncIterator, Optional, Sequence, Tuple

from timelapse_engine.cache.prefetch import PrefetchCache
from timelapse_engine.export.compositor import Color, composite_frame
from timelapse_engine.export.encoder import EncoderSession, FrameEncoder
from timelapse_engine.models.errors import EmptySequenceError, EncoderError, FrameLoadError
from timelapse_engine.models.export import (
    ExportCancelled,
    ExportDone,
    ExportEvent,
    ExportFailed,
    ExportJob,
    ExportProgress,
    ExportStatus,
)
from timelapse_engine.models.frame import ResolvedFrame


logger = logging.getLogger(__name__)


class ExportPipeline:
    """
    Runs export jobs one at a time.

    Attributes:
        cache: Frame byte source (prefetch cache)
        encoder: Encoder factory
        quality: Encoder quality setting
        background: Letterbox padding colour (RGB)
    """

    def __init__(
        self,
        cache: PrefetchCache,
        encoder: FrameEncoder,
        quality: int = 10,
        background: Color = (0, 0, 0),
    ) -> None:
        self.cache = cache
        self.encoder = encoder
        self.quality = quality
        self.background = background
        self._active: Optional[ExportJob] = None

    @property
    def current_job(self) -> Optional[ExportJob]:
        """Most recently created job."""
        return self._active

    def create_job(
        self,
        frames: Sequence[ResolvedFrame],
        frame_delay_ms: int,
        canvas_size: Tuple[int, int],
        filename: str = "timelapse.gif",
    ) -> ExportJob:
        """
        Snapshot frames into a new job, superseding any pending one.

        Raises:
            EmptySequenceError: If there are no frames to export
        """
        snapshot = tuple(frames)
        if not snapshot:
            raise EmptySequenceError("No images to export")

        if self._active is not None and not self._active.finished:
            logger.info("Superseding pending export job")
            self._active.cancel()

        job = ExportJob(
            frames=snapshot,
            frame_delay_ms=frame_delay_ms,
            canvas_size=canvas_size,
            filename=filename,
        )
        self._active = job
        return job

    def cancel(self) -> None:
        """Cancel the active job, if any."""
        if self._active is not None:
            self._active.cancel()

    async def export(
        self,
        frames: Sequence[ResolvedFrame],
        frame_delay_ms: int,
        canvas_size: Tuple[int, int],
        filename: str = "timelapse.gif",
    ) -> AsyncIterator[ExportEvent]:
        """Create a job and run it, yielding its events."""
        job = self.create_job(frames, frame_delay_ms, canvas_size, filename)
        async for event in self.run(job):
            yield event

    async def run(self, job: ExportJob) -> AsyncIterator[ExportEvent]:
        """
        Execute a job, yielding progress and exactly one terminal event.

        Args:
            job: Job created by ``create_job``
        """
        width, height = job.canvas_size
        total = job.total_frames
        session: Optional[EncoderSession] = None
        job.status = ExportStatus.RUNNING

        try:
            session = self.encoder.create(width, height, self.quality)

            for appended, frame in enumerate(job.frames, start=1):
                if job.cancel_requested:
                    break

                if frame.uri is None:
                    raise FrameLoadError(f"Frame {frame.filename} has no URI")

                data = await self.cache.get(frame.uri)
                if job.cancel_requested:
                    break

                canvas = composite_frame(
                    data, job.canvas_size, background=self.background, uri=frame.uri
                )
                session.add_frame(canvas, job.frame_delay_ms)

                job.progress = min(appended * 100 // total, 99)
                yield ExportProgress(progress=job.progress)

            if job.cancel_requested:
                job.status = ExportStatus.CANCELLED
                logger.info(f"Export cancelled after {job.progress}%")
                yield ExportCancelled()
                return

            data = await asyncio.to_thread(session.finish)
            if job.cancel_requested:
                job.status = ExportStatus.CANCELLED
                logger.info("Export cancelled during finalization, result dropped")
                yield ExportCancelled()
                return

            job.progress = 100
            job.status = ExportStatus.DONE
            logger.info(f"Export finished: {job.filename} ({total} frames, {len(data)} bytes)")
            yield ExportProgress(progress=100)
            yield ExportDone(data=data, filename=job.filename)

        except (FrameLoadError, EncoderError) as e:
            job.status = ExportStatus.FAILED
            job.error = str(e)
            logger.error(f"Export failed: {e}")
            yield ExportFailed(reason=str(e))

        except asyncio.CancelledError:
            job.status = ExportStatus.CANCELLED
            raise

        finally:
            if job.status is not ExportStatus.DONE and session is not None:
                session.abort()
            if not job.finished:
                job.status = ExportStatus.CANCELLED
