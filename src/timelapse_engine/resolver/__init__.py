"""
Resolver Module
===============

Query → ordered frame sequence.

Components:
    - dates: Frequency stepping over an inclusive date range
    - filenames: Filename derivation and the legacy noon alias
    - ExistenceOracle / LocationCatalog: Collaborator protocols
    - HttpExistenceOracle: HTTP client for the collaborator service
    - FrameResolver: Batched existence resolution
"""

from timelapse_engine.resolver.dates import add_months, enumerate_dates, format_display_label
from timelapse_engine.resolver.filenames import (
    build_candidates,
    derive_filename,
    derive_filenames,
    suggest_export_filename,
)
from timelapse_engine.resolver.oracle import (
    ExistenceOracle,
    HttpExistenceOracle,
    LocationCatalog,
)
from timelapse_engine.resolver.resolver import FrameResolver


__all__ = [
    "add_months",
    "enumerate_dates",
    "format_display_label",
    "build_candidates",
    "derive_filename",
    "derive_filenames",
    "suggest_export_filename",
    "ExistenceOracle",
    "LocationCatalog",
    "HttpExistenceOracle",
    "FrameResolver",
]
