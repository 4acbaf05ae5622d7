"""
Export Tests
============

Tests for letterbox compositing, GIF encoding and the export pipeline.
"""

import asyncio
import io

import numpy as np
import pytest
from PIL import Image

from timelapse_engine.cache.prefetch import PrefetchCache
from timelapse_engine.export.compositor import (
    composite_frame,
    decode_image,
    letterbox_geometry,
)
from timelapse_engine.export.encoder import GifEncoder, GifEncodingSession
from timelapse_engine.export.pipeline import ExportPipeline
from timelapse_engine.models.errors import EmptySequenceError, EncoderError, FrameLoadError
from timelapse_engine.models.export import (
    ExportCancelled,
    ExportDone,
    ExportFailed,
    ExportProgress,
    ExportStatus,
)

from conftest import encode_jpeg


CANVAS = (40, 30)


class RecordingEncoder(GifEncoder):
    """GifEncoder that keeps every session it creates."""

    def __init__(self):
        self.sessions = []

    def create(self, width, height, quality=10):
        session = super().create(width, height, quality)
        self.sessions.append(session)
        return session


class FailingSession(GifEncodingSession):
    """Session that fails on the n-th add_frame or on finish."""

    def __init__(self, width, height, quality=10, fail_on_frame=None, fail_on_finish=False):
        super().__init__(width, height, quality)
        self.fail_on_frame = fail_on_frame
        self.fail_on_finish = fail_on_finish
        self.aborted = False

    def add_frame(self, pixels, delay_ms):
        if self.frame_count + 1 == self.fail_on_frame:
            raise EncoderError("palette overflow")
        super().add_frame(pixels, delay_ms)

    def finish(self):
        if self.fail_on_finish:
            raise EncoderError("disk full")
        return super().finish()

    def abort(self):
        self.aborted = True
        super().abort()


class FailingEncoder(RecordingEncoder):
    def __init__(self, **failure):
        super().__init__()
        self.failure = failure

    def create(self, width, height, quality=10):
        session = FailingSession(width, height, quality, **self.failure)
        self.sessions.append(session)
        return session


def _collect(pipeline, job):
    async def scenario():
        return [event async for event in pipeline.run(job)]

    return asyncio.run(scenario())


class TestCompositor:
    """Tests for decoding and letterboxing."""

    def test_wide_source_is_pillarboxed_vertically(self):
        assert letterbox_geometry((1600, 900), (800, 600)) == (0, 75, 800, 450)

    def test_tall_source_is_padded_horizontally(self):
        assert letterbox_geometry((600, 800), (800, 600)) == (175, 0, 450, 600)

    def test_same_aspect_fills_canvas(self):
        assert letterbox_geometry((400, 300), (800, 600)) == (0, 0, 800, 600)

    def test_composite_has_canvas_size_and_padding(self):
        data = encode_jpeg((0, 0, 255), width=160, height=90)

        canvas = composite_frame(data, (80, 60), background=(0, 0, 0))

        assert canvas.shape == (60, 80, 3)
        assert canvas.dtype == np.uint8
        assert canvas[0, 40].tolist() == [0, 0, 0]
        r, g, b = canvas[30, 40].tolist()
        assert r > 200 and g < 60 and b < 60

    def test_background_colour_is_rgb(self):
        data = encode_jpeg((255, 255, 255), width=20, height=60)

        canvas = composite_frame(data, (80, 60), background=(10, 20, 30))

        assert canvas[30, 0].tolist() == [10, 20, 30]

    def test_corrupt_bytes_rejected(self):
        with pytest.raises(FrameLoadError):
            decode_image(b"definitely not a jpeg", uri="/api/image/a/b.jpg")

    def test_empty_bytes_rejected(self):
        with pytest.raises(FrameLoadError):
            decode_image(b"")


class TestEncoder:
    """Tests for the GIF encoding session."""

    def test_writes_looping_gif(self):
        session = GifEncodingSession(4, 3)
        for value in (0, 128, 255):
            session.add_frame(np.full((3, 4, 3), value, dtype=np.uint8), 200)

        data = session.finish()

        assert data.startswith(b"GIF89a")
        image = Image.open(io.BytesIO(data))
        assert image.size == (4, 3)
        assert image.n_frames == 3
        assert image.info["duration"] == 200
        assert image.info["loop"] == 0
        assert session.closed

    def test_wrong_frame_shape_rejected(self):
        session = GifEncodingSession(4, 3)
        with pytest.raises(EncoderError):
            session.add_frame(np.zeros((4, 3, 3), dtype=np.uint8), 100)

    def test_finish_without_frames_fails(self):
        with pytest.raises(EncoderError):
            GifEncodingSession(4, 3).finish()

    def test_invalid_settings(self):
        with pytest.raises(EncoderError):
            GifEncodingSession(0, 3)
        with pytest.raises(EncoderError):
            GifEncodingSession(4, 3, quality=31)

    def test_abort_closes_session(self):
        session = GifEncodingSession(4, 3)
        session.add_frame(np.zeros((3, 4, 3), dtype=np.uint8), 100)
        session.abort()

        assert session.closed
        with pytest.raises(EncoderError):
            session.add_frame(np.zeros((3, 4, 3), dtype=np.uint8), 100)


class TestPipeline:
    """Tests for the export pipeline."""

    def test_progress_then_done(self, frame_loader):
        frames, loader = frame_loader(3)
        pipeline = ExportPipeline(PrefetchCache(loader), GifEncoder())
        job = pipeline.create_job(frames, 100, CANVAS, filename="out.gif")

        events = _collect(pipeline, job)

        assert events[:4] == [
            ExportProgress(33),
            ExportProgress(66),
            ExportProgress(99),
            ExportProgress(100),
        ]
        done = events[4]
        assert isinstance(done, ExportDone)
        assert done.filename == "out.gif"
        assert len(events) == 5
        assert job.status is ExportStatus.DONE
        assert job.progress == 100

        image = Image.open(io.BytesIO(done.data))
        assert image.size == CANVAS
        assert image.n_frames == 3
        assert image.info["duration"] == 100

    def test_progress_capped_before_finalize(self, frame_loader):
        frames, loader = frame_loader(1)
        pipeline = ExportPipeline(PrefetchCache(loader), GifEncoder())

        events = _collect(pipeline, pipeline.create_job(frames, 100, CANVAS))

        assert events[0] == ExportProgress(99)
        assert events[1] == ExportProgress(100)
        assert isinstance(events[2], ExportDone)

    def test_frame_failure_fails_whole_job(self, frame_loader):
        frames, loader = frame_loader(3, failing_indexes=[1])
        encoder = RecordingEncoder()
        pipeline = ExportPipeline(PrefetchCache(loader), encoder)
        job = pipeline.create_job(frames, 100, CANVAS)

        events = _collect(pipeline, job)

        assert events[0] == ExportProgress(33)
        assert isinstance(events[1], ExportFailed)
        assert "Failed to load image" in events[1].reason
        assert len(events) == 2
        assert job.status is ExportStatus.FAILED
        assert job.error == events[1].reason
        assert encoder.sessions[0].closed
        assert frames[2].uri not in loader.calls

    def test_corrupt_frame_fails_job(self, frame_loader):
        frames, loader = frame_loader(2)
        loader.data[frames[0].uri] = b"garbage"
        pipeline = ExportPipeline(PrefetchCache(loader), GifEncoder())
        job = pipeline.create_job(frames, 100, CANVAS)

        events = _collect(pipeline, job)

        assert len(events) == 1
        assert isinstance(events[0], ExportFailed)
        assert job.status is ExportStatus.FAILED

    def test_cancel_mid_export(self, frame_loader):
        frames, loader = frame_loader(4)
        encoder = RecordingEncoder()
        pipeline = ExportPipeline(PrefetchCache(loader), encoder)
        job = pipeline.create_job(frames, 100, CANVAS)

        async def scenario():
            events = []
            async for event in pipeline.run(job):
                events.append(event)
                if event == ExportProgress(25):
                    pipeline.cancel()
            return events

        events = asyncio.run(scenario())

        assert events == [ExportProgress(25), ExportCancelled()]
        assert job.status is ExportStatus.CANCELLED
        assert encoder.sessions[0].closed

    def test_new_job_supersedes_pending_one(self, frame_loader):
        frames, loader = frame_loader(2)
        pipeline = ExportPipeline(PrefetchCache(loader), GifEncoder())

        first = pipeline.create_job(frames, 100, CANVAS)
        second = pipeline.create_job(frames, 100, CANVAS)

        assert first.cancel_requested
        assert pipeline.current_job is second
        assert _collect(pipeline, first) == [ExportCancelled()]
        assert first.status is ExportStatus.CANCELLED
        assert isinstance(_collect(pipeline, second)[-1], ExportDone)

    def test_job_is_a_snapshot(self, frame_loader):
        frames, loader = frame_loader(3)
        pipeline = ExportPipeline(PrefetchCache(loader), GifEncoder())

        job = pipeline.create_job(frames, 100, CANVAS)
        frames.pop()

        assert job.total_frames == 3

    def test_empty_export_rejected(self, frame_loader):
        _, loader = frame_loader(0)
        pipeline = ExportPipeline(PrefetchCache(loader), GifEncoder())

        with pytest.raises(EmptySequenceError, match="No images to export"):
            pipeline.create_job([], 100, CANVAS)

    def test_export_uses_warm_cache(self, frame_loader):
        frames, loader = frame_loader(2)
        cache = PrefetchCache(loader)
        pipeline = ExportPipeline(cache, GifEncoder())

        async def scenario():
            await asyncio.gather(*cache.prefetch(frames))
            return [event async for event in pipeline.export(frames, 100, CANVAS)]

        events = asyncio.run(scenario())

        assert isinstance(events[-1], ExportDone)
        assert len(loader.calls) == 2
        assert cache.hits == 2

    def test_encoder_frame_failure_fails_job(self, frame_loader):
        frames, loader = frame_loader(3)
        encoder = FailingEncoder(fail_on_frame=2)
        pipeline = ExportPipeline(PrefetchCache(loader), encoder)
        job = pipeline.create_job(frames, 100, CANVAS)

        events = _collect(pipeline, job)

        assert events == [ExportProgress(33), ExportFailed("palette overflow")]
        assert job.status is ExportStatus.FAILED
        assert job.error == "palette overflow"
        assert encoder.sessions[0].aborted

    def test_encoder_finish_failure_fails_job(self, frame_loader):
        frames, loader = frame_loader(3)
        encoder = FailingEncoder(fail_on_finish=True)
        pipeline = ExportPipeline(PrefetchCache(loader), encoder)
        job = pipeline.create_job(frames, 100, CANVAS)

        events = _collect(pipeline, job)

        assert events[-1] == ExportFailed("disk full")
        assert ExportProgress(100) not in events
        assert not any(isinstance(event, ExportDone) for event in events)
        assert job.status is ExportStatus.FAILED
        assert job.progress == 99
        assert encoder.sessions[0].aborted
