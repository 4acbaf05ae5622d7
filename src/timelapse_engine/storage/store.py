"""
Frame Store
===========

Directory-backed frame storage.

Layout:
    {base_dir}/
        side_yard/
            2024-01-01_12-00.jpg
            2024-01-02_12.jpg
        front_door/
            ...

The store implements the ExistenceOracle and LocationCatalog protocols
directly, and is what the collaborator service in ``main`` serves.

Design Rules:
    - Path segments are validated; separators and ``..`` never reach the filesystem
    - Unsafe names are reported as missing, not raised, by existence checks
    - Filesystem calls run in a worker thread from the async methods
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Union

from timelapse_engine.models.oracle import BatchCheckEntry, LocationEntry


logger = logging.getLogger(__name__)


def location_label(name: str) -> str:
    """Human readable label for a location directory (``side_yard`` → ``Side Yard``)."""
    return " ".join(word[:1].upper() + word[1:] for word in name.split("_"))


def _is_safe_segment(segment: str) -> bool:
    return (
        bool(segment)
        and segment not in (".", "..")
        and "/" not in segment
        and "\\" not in segment
        and "\x00" not in segment
    )


class FrameStore:
    """
    Frame files under a base directory, one sub-directory per location.

    Attributes:
        base_dir: Root of the frame tree
    """

    def __init__(self, base_dir: Union[str, Path]) -> None:
        self.base_dir = Path(base_dir)
        logger.info(f"FrameStore initialized: {self.base_dir}")

    def path_for(self, location: str, filename: str) -> Path:
        """
        Filesystem path of a frame.

        Raises:
            ValueError: If either segment is unsafe
        """
        if not (_is_safe_segment(location) and _is_safe_segment(filename)):
            raise ValueError(f"Invalid frame path: {location!r}/{filename!r}")
        return self.base_dir / location / filename

    def exists(self, location: str, filename: str) -> bool:
        """Whether a frame file exists."""
        try:
            return self.path_for(location, filename).is_file()
        except ValueError:
            return False

    def read(self, location: str, filename: str) -> bytes:
        """
        Read a frame's bytes.

        Raises:
            ValueError: If the path is unsafe
            FileNotFoundError: If the frame does not exist
        """
        return self.path_for(location, filename).read_bytes()

    def locations(self) -> List[LocationEntry]:
        """
        Enumerate location directories, sorted by name.

        Raises:
            OSError: If the base directory cannot be read
        """
        entries = []
        for child in sorted(self.base_dir.iterdir()):
            if child.is_dir():
                entries.append(
                    LocationEntry(value=child.name, label=location_label(child.name))
                )
        return entries

    # ExistenceOracle / LocationCatalog protocol

    async def check(self, location: str, filename: str) -> bool:
        return await asyncio.to_thread(self.exists, location, filename)

    async def check_batch(
        self,
        location: str,
        filenames: List[str],
    ) -> List[BatchCheckEntry]:
        return await asyncio.to_thread(self._check_many, location, filenames)

    async def list_locations(self) -> List[LocationEntry]:
        return await asyncio.to_thread(self.locations)

    async def read_async(self, location: str, filename: str) -> bytes:
        return await asyncio.to_thread(self.read, location, filename)

    def _check_many(self, location: str, filenames: List[str]) -> List[BatchCheckEntry]:
        return [
            BatchCheckEntry(filename=name, exists=self.exists(location, name))
            for name in filenames
        ]
