"""
Frame Loaders
=============

Fetch the bytes behind a frame URI.

This module provides:
    - FrameLoader: Protocol used by the prefetch cache and export pipeline
    - HttpFrameLoader: Fetches URIs over HTTP with requests
    - StoreFrameLoader: Reads URIs straight from a local FrameStore

Design Rules:
    - Every failure surfaces as FrameLoadError carrying the URI
    - Blocking I/O runs in a worker thread
"""

import asyncio
import logging
from typing import Optional, Protocol
from urllib.parse import urlsplit

import requests

from timelapse_engine.models.errors import FrameLoadError
from timelapse_engine.storage.locator import ResourceLocator
from timelapse_engine.storage.store import FrameStore


logger = logging.getLogger(__name__)


class FrameLoader(Protocol):
    """Protocol for frame byte sources."""

    async def load(self, uri: str) -> bytes:
        """
        Fetch frame bytes.

        Raises:
            FrameLoadError: If the bytes cannot be fetched
        """
        ...


class HttpFrameLoader:
    """
    Loads frames over HTTP.

    Relative URIs (as produced by a locator without a base URL) are
    appended to ``base_url``, keeping any path prefix it carries.
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self._session = session or requests.Session()

    async def load(self, uri: str) -> bytes:
        url = self._url_for(uri)
        try:
            response = await asyncio.to_thread(
                self._session.get, url, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise FrameLoadError(f"Failed to load image: {e}", uri=uri) from e
        return response.content

    def _url_for(self, uri: str) -> str:
        if not self.base_url or urlsplit(uri).scheme:
            return uri
        return self.base_url.rstrip("/") + "/" + uri.lstrip("/")


class StoreFrameLoader:
    """Loads frames from a local FrameStore, bypassing HTTP."""

    def __init__(self, store: FrameStore, locator: ResourceLocator) -> None:
        self.store = store
        self.locator = locator

    async def load(self, uri: str) -> bytes:
        try:
            location, filename = self.locator.parse(uri)
            return await self.store.read_async(location, filename)
        except (ValueError, OSError) as e:
            raise FrameLoadError(f"Failed to load image: {e}", uri=uri) from e
