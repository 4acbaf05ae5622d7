"""
Frame Encoder
=============

Animated GIF encoding for the export pipeline.

Contract:
    session = encoder.create(width, height, quality)
    session.add_frame(pixels, delay_ms)     # RGB uint8 (height, width, 3)
    data = session.finish()                 # encoded bytes
    session.abort()                         # release without output

Frames are written in append order. A session is single use: after
``finish`` or ``abort`` it rejects further frames.

Quality:
    1-30 on the NeuQuant sample-factor scale used by browser GIF encoders
    (lower is better). 1-10 quantizes with median cut, above 10 with the
    faster octree.
"""

import io
import logging
from typing import List, Protocol

import numpy as np
from PIL import Image

from timelapse_engine.models.errors import EncoderError


logger = logging.getLogger(__name__)


class EncoderSession(Protocol):
    """One in-progress encoding."""

    def add_frame(self, pixels: np.ndarray, delay_ms: int) -> None:
        ...

    def finish(self) -> bytes:
        ...

    def abort(self) -> None:
        ...


class FrameEncoder(Protocol):
    """Factory for encoding sessions."""

    def create(self, width: int, height: int, quality: int) -> EncoderSession:
        ...


class GifEncodingSession:
    """
    Accumulates palette frames and writes them as one looping GIF.

    Attributes:
        width, height: Required frame dimensions
        quality: Quantization quality (1 best - 30 fastest)
        frame_count: Frames appended so far
    """

    def __init__(self, width: int, height: int, quality: int = 10) -> None:
        if width < 1 or height < 1:
            raise EncoderError(f"Invalid canvas size: {width}x{height}")
        if not 1 <= quality <= 30:
            raise EncoderError(f"Quality must be within [1, 30], got {quality}")

        self.width = width
        self.height = height
        self.quality = quality

        self._frames: List[Image.Image] = []
        self._delays: List[int] = []
        self._closed = False

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def closed(self) -> bool:
        return self._closed

    def add_frame(self, pixels: np.ndarray, delay_ms: int) -> None:
        """
        Append one RGB frame.

        Raises:
            EncoderError: If the session is closed or the frame has the wrong shape
        """
        if self._closed:
            raise EncoderError("Encoder session is closed")
        if pixels.shape != (self.height, self.width, 3) or pixels.dtype != np.uint8:
            raise EncoderError(
                f"Frame must be uint8 ({self.height}, {self.width}, 3), "
                f"got {pixels.dtype} {pixels.shape}"
            )

        image = Image.fromarray(pixels)
        method = Image.Quantize.MEDIANCUT if self.quality <= 10 else Image.Quantize.FASTOCTREE
        self._frames.append(image.quantize(colors=256, method=method))
        self._delays.append(int(delay_ms))

    def finish(self) -> bytes:
        """
        Write the animation and close the session.

        Raises:
            EncoderError: If no frame was appended or writing fails
        """
        if self._closed:
            raise EncoderError("Encoder session is closed")
        if not self._frames:
            raise EncoderError("Cannot finish an animation without frames")

        buffer = io.BytesIO()
        try:
            self._frames[0].save(
                buffer,
                format="GIF",
                save_all=True,
                append_images=self._frames[1:],
                duration=self._delays,
                loop=0,
            )
        except (OSError, ValueError) as e:
            raise EncoderError(f"GIF encoding failed: {e}") from e
        finally:
            self.abort()

        data = buffer.getvalue()
        logger.debug(f"Encoded GIF: {len(self._delays)} frames, {len(data)} bytes")
        return data

    def abort(self) -> None:
        """Release frame buffers without producing output."""
        for frame in self._frames:
            frame.close()
        self._frames.clear()
        self._closed = True


class GifEncoder:
    """FrameEncoder producing animated GIFs with Pillow."""

    def create(self, width: int, height: int, quality: int = 10) -> GifEncodingSession:
        return GifEncodingSession(width, height, quality)
