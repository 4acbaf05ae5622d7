"""
Storage Module
==============

Frame storage collaborators.

Components:
    - ResourceLocator: (location, filename) ⇄ frame URI
    - FrameStore: Directory-backed existence oracle, catalog and byte source
    - FrameLoader: Protocol for fetching frame bytes by URI
    - HttpFrameLoader, StoreFrameLoader: Loader implementations
"""

from timelapse_engine.storage.locator import ResourceLocator
from timelapse_engine.storage.store import FrameStore, location_label
from timelapse_engine.storage.loader import FrameLoader, HttpFrameLoader, StoreFrameLoader


__all__ = [
    "ResourceLocator",
    "FrameStore",
    "location_label",
    "FrameLoader",
    "HttpFrameLoader",
    "StoreFrameLoader",
]
