"""
Frame Compositor
================

Decodes frame bytes and letterboxes them onto a fixed-size canvas.

Letterbox Scaling:
    scale   = min(canvas_w / w, canvas_h / h)
    draw    = (w * scale, h * scale)       aspect ratio preserved
    offset  = ((canvas - draw) / 2)        centred
    padding = background colour            (black by default)

Every composited frame has exactly the canvas dimensions, whatever the
source size, so the encoder sees a uniform stream.

Design Rules:
    - This is the ONLY place in the codebase that decodes images
    - Corrupt bytes fail fast with FrameLoadError
    - Output is RGB uint8 (H, W, 3), the encoder's input format
"""

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from timelapse_engine.models.errors import FrameLoadError


logger = logging.getLogger(__name__)


Color = Tuple[int, int, int]


def decode_image(data: bytes, uri: Optional[str] = None) -> np.ndarray:
    """
    Decode encoded image bytes to a BGR array.

    Args:
        data: JPEG/PNG bytes
        uri: Frame URI, for error messages

    Returns:
        BGR image as np.ndarray (H, W, 3), dtype=uint8

    Raises:
        FrameLoadError: If decoding fails or the image is invalid
    """
    if not data:
        raise FrameLoadError(f"Empty image data for {uri}", uri=uri)

    nparr = np.frombuffer(data, np.uint8)
    bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)

    if bgr is None:
        raise FrameLoadError(
            f"Failed to decode {uri}: cv2.imdecode returned None", uri=uri
        )

    if len(bgr.shape) != 3 or bgr.shape[2] != 3:
        raise FrameLoadError(f"Invalid image shape for {uri}: {bgr.shape}", uri=uri)

    return bgr


def letterbox_geometry(
    source_size: Tuple[int, int],
    canvas_size: Tuple[int, int],
) -> Tuple[int, int, int, int]:
    """
    Placement of a source image inside the canvas.

    Args:
        source_size: (width, height) of the source
        canvas_size: (width, height) of the canvas

    Returns:
        (x, y, draw_width, draw_height)
    """
    src_w, src_h = source_size
    canvas_w, canvas_h = canvas_size
    aspect = src_w / src_h

    if aspect > canvas_w / canvas_h:
        draw_w = canvas_w
        draw_h = canvas_w / aspect
    else:
        draw_h = canvas_h
        draw_w = canvas_h * aspect

    draw_w = min(max(int(round(draw_w)), 1), canvas_w)
    draw_h = min(max(int(round(draw_h)), 1), canvas_h)
    x = (canvas_w - draw_w) // 2
    y = (canvas_h - draw_h) // 2
    return x, y, draw_w, draw_h


def letterbox(
    image: np.ndarray,
    canvas_size: Tuple[int, int],
    background: Color = (0, 0, 0),
) -> np.ndarray:
    """
    Fit an image inside a canvas without cropping or distortion.

    Args:
        image: Source image (H, W, 3)
        canvas_size: (width, height) of the output
        background: Padding colour, in the image's channel order

    Returns:
        Canvas (canvas_h, canvas_w, 3), dtype=uint8
    """
    canvas_w, canvas_h = canvas_size
    src_h, src_w = image.shape[:2]
    x, y, draw_w, draw_h = letterbox_geometry((src_w, src_h), canvas_size)

    interpolation = cv2.INTER_AREA if draw_w < src_w else cv2.INTER_LINEAR
    resized = cv2.resize(image, (draw_w, draw_h), interpolation=interpolation)

    canvas = np.empty((canvas_h, canvas_w, 3), dtype=np.uint8)
    canvas[:] = background
    canvas[y:y + draw_h, x:x + draw_w] = resized
    return canvas


def composite_frame(
    data: bytes,
    canvas_size: Tuple[int, int],
    background: Color = (0, 0, 0),
    uri: Optional[str] = None,
) -> np.ndarray:
    """
    Decode and letterbox a frame for the encoder.

    Args:
        data: Encoded image bytes
        canvas_size: (width, height) of the output
        background: Padding colour as RGB
        uri: Frame URI, for error messages

    Returns:
        RGB canvas (canvas_h, canvas_w, 3), dtype=uint8

    Raises:
        FrameLoadError: If the bytes cannot be decoded
    """
    bgr = decode_image(data, uri=uri)
    r, g, b = background
    canvas = letterbox(bgr, canvas_size, background=(b, g, r))
    return cv2.cvtColor(canvas, cv2.COLOR_BGR2RGB)
