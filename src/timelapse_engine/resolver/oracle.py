"""
Existence Oracle
================

Collaborator contract for "does this frame exist" queries, plus an HTTP
client for the collaborator service in ``timelapse_engine.main``.

This module provides:
    - ExistenceOracle: Protocol for batched and single existence checks
    - LocationCatalog: Protocol for enumerating locations
    - HttpExistenceOracle: requests-based client for both protocols

Design Rules:
    - The batch form answers for every requested filename; a filename the
      oracle cannot resolve is reported as missing, not as an error
    - Transport failures of the batch form raise ResolutionFailure
    - Malformed payloads raise OracleProtocolError
    - Blocking HTTP calls run in a worker thread, never on the event loop

Example:
    oracle = HttpExistenceOracle("http://localhost:8002")
    entries = await oracle.check_batch("side_yard", ["2024-01-01_12-00.jpg"])
"""

import asyncio
import logging
from typing import List, Optional, Protocol
from urllib.parse import quote

import requests
from pydantic import ValidationError

from timelapse_engine.models.errors import OracleProtocolError, ResolutionFailure
from timelapse_engine.models.oracle import (
    BatchCheckEntry,
    BatchCheckRequest,
    BatchCheckResponse,
    CheckResponse,
    LocationEntry,
    LocationList,
)


logger = logging.getLogger(__name__)


class ExistenceOracle(Protocol):
    """
    Protocol for existence backends.

    Implemented by:
        - HttpExistenceOracle (remote collaborator service)
        - FrameStore (local directory tree)
    """

    async def check_batch(
        self,
        location: str,
        filenames: List[str],
    ) -> List[BatchCheckEntry]:
        """
        Check many filenames in one round trip.

        Args:
            location: Camera location identifier
            filenames: Filenames to check

        Returns:
            One entry per filename (order not guaranteed)

        Raises:
            ResolutionFailure: If the call fails as a whole
        """
        ...

    async def check(self, location: str, filename: str) -> bool:
        """Check a single filename."""
        ...


class LocationCatalog(Protocol):
    """Protocol for location enumeration."""

    async def list_locations(self) -> List[LocationEntry]:
        ...


class HttpExistenceOracle:
    """
    HTTP client for the collaborator service.

    Attributes:
        base_url: Service root, e.g. ``http://localhost:8002``
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Service root URL
            timeout: Per-request timeout in seconds
            session: Optional requests session (shared connection pool)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

        logger.info(f"HttpExistenceOracle initialized: {self.base_url}")

    async def check_batch(
        self,
        location: str,
        filenames: List[str],
    ) -> List[BatchCheckEntry]:
        body = BatchCheckRequest(location=location, filenames=filenames)
        url = f"{self.base_url}/api/check-batch"

        try:
            response = await asyncio.to_thread(
                self._session.post,
                url,
                json=body.model_dump(),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise ResolutionFailure(
                f"Batch existence check failed for {location}: {e}",
                location=location,
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise OracleProtocolError(
                f"Batch existence response is not JSON: {e}",
                location=location,
            ) from e

        try:
            return BatchCheckResponse.validate_python(payload)
        except ValidationError as e:
            raise OracleProtocolError(
                f"Malformed batch existence response: {e.error_count()} invalid entries",
                location=location,
            ) from e

    async def check(self, location: str, filename: str) -> bool:
        """
        Check a single filename.

        Any failure is reported as "missing" rather than raised; the
        single-frame path only ever decorates a view.
        """
        url = f"{self.base_url}/api/check/{quote(location)}/{quote(filename)}"
        try:
            response = await asyncio.to_thread(
                self._session.get, url, timeout=self.timeout
            )
            response.raise_for_status()
            return CheckResponse.model_validate(response.json()).exists
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Existence check failed for {location}/{filename}: {e}")
            return False

    async def list_locations(self) -> List[LocationEntry]:
        url = f"{self.base_url}/api/locations"
        response = await asyncio.to_thread(
            self._session.get, url, timeout=self.timeout
        )
        response.raise_for_status()
        return LocationList.validate_python(response.json())
