"""
Export Module
=============

Frame-by-frame animated GIF export.

Components:
    - compositor: Image decoding and letterbox compositing (OpenCV)
    - FrameEncoder / GifEncoder: Encoder contract and Pillow GIF backend
    - ExportPipeline: Sequential, cancellable, all-or-nothing export jobs
"""

from timelapse_engine.export.compositor import (
    composite_frame,
    decode_image,
    letterbox,
    letterbox_geometry,
)
from timelapse_engine.export.encoder import (
    EncoderSession,
    FrameEncoder,
    GifEncoder,
    GifEncodingSession,
)
from timelapse_engine.export.pipeline import ExportPipeline


__all__ = [
    "composite_frame",
    "decode_image",
    "letterbox",
    "letterbox_geometry",
    "EncoderSession",
    "FrameEncoder",
    "GifEncoder",
    "GifEncodingSession",
    "ExportPipeline",
]
