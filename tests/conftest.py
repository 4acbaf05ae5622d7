"""
Test Configuration
==================

Pytest fixtures and test doubles for the timelapse engine.
"""

import asyncio
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

import cv2
import numpy as np
import pytest

from timelapse_engine.models.errors import FrameLoadError, ResolutionFailure
from timelapse_engine.models.frame import ResolvedFrame
from timelapse_engine.models.oracle import BatchCheckEntry
from timelapse_engine.resolver.dates import format_display_label
from timelapse_engine.storage.locator import ResourceLocator


def encode_jpeg(color_bgr, width: int = 80, height: int = 60) -> bytes:
    """Solid-colour JPEG of the given size."""
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:] = color_bgr
    ok, encoded = cv2.imencode(".jpg", image)
    assert ok
    return encoded.tobytes()


class FakeOracle:
    """
    In-memory existence oracle.

    Records every call; answers in reverse request order to prove that
    callers never rely on response order.
    """

    def __init__(self, existing: Iterable[str] = (), fail_with: Optional[Exception] = None):
        self.existing = set(existing)
        self.fail_with = fail_with
        self.batch_calls: List[tuple] = []
        self.single_calls: List[tuple] = []

    async def check_batch(self, location: str, filenames: List[str]) -> List[BatchCheckEntry]:
        self.batch_calls.append((location, list(filenames)))
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        return [
            BatchCheckEntry(filename=name, exists=name in self.existing)
            for name in reversed(filenames)
        ]

    async def check(self, location: str, filename: str) -> bool:
        self.single_calls.append((location, filename))
        return filename in self.existing


class FakeLoader:
    """In-memory frame loader keyed by URI."""

    def __init__(self, data: Optional[Dict[str, bytes]] = None, failing: Iterable[str] = ()):
        self.data = dict(data or {})
        self.failing = set(failing)
        self.calls: List[str] = []

    async def load(self, uri: str) -> bytes:
        self.calls.append(uri)
        await asyncio.sleep(0)
        if uri in self.failing or uri not in self.data:
            raise FrameLoadError(f"Failed to load image: {uri}", uri=uri)
        return self.data[uri]


@pytest.fixture
def locator():
    return ResourceLocator()


@pytest.fixture
def make_frames(locator):
    """Factory for consecutive daily frames at noon, all existing."""

    def _make(count: int, location: str = "side_yard", start: date = date(2024, 1, 1)):
        frames = []
        for i in range(count):
            day = start + timedelta(days=i)
            filename = f"{day.isoformat()}_12-00.jpg"
            frames.append(
                ResolvedFrame(
                    date=day,
                    display_label=format_display_label(day),
                    filename=filename,
                    exists=True,
                    uri=locator.uri_for(location, filename),
                )
            )
        return frames

    return _make


@pytest.fixture
def palette():
    """Distinct BGR colours, so consecutive GIF frames never merge."""
    return [
        (0, 0, 255),
        (0, 255, 0),
        (255, 0, 0),
        (0, 255, 255),
        (255, 0, 255),
        (255, 255, 0),
    ]


@pytest.fixture
def frame_loader(make_frames, palette):
    """Factory: frames plus a loader that serves a JPEG for each of them."""

    def _make(count: int, failing_indexes: Iterable[int] = ()):
        frames = make_frames(count)
        data = {
            frame.uri: encode_jpeg(palette[i % len(palette)])
            for i, frame in enumerate(frames)
        }
        failing = {frames[i].uri for i in failing_indexes}
        return frames, FakeLoader(data, failing=failing)

    return _make


@pytest.fixture
def frame_dir(tmp_path, palette):
    """
    Frame tree on disk:

        side_yard/2024-01-01_12-00.jpg
        side_yard/2024-01-03_12.jpg        (legacy noon spelling)
        side_yard/notes.txt
        front_door/2024-01-01_08-00.jpg
    """
    side_yard = tmp_path / "side_yard"
    front_door = tmp_path / "front_door"
    side_yard.mkdir()
    front_door.mkdir()

    (side_yard / "2024-01-01_12-00.jpg").write_bytes(encode_jpeg(palette[0]))
    (side_yard / "2024-01-03_12.jpg").write_bytes(encode_jpeg(palette[1]))
    (side_yard / "notes.txt").write_text("not a frame")
    (front_door / "2024-01-01_08-00.jpg").write_bytes(encode_jpeg(palette[2]))
    (tmp_path / "README").write_text("stray file at the root")
    return tmp_path


@pytest.fixture
def oracle_failure():
    return ResolutionFailure("connection refused", location="side_yard")
