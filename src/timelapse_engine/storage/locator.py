"""
Resource Locator
================

Maps (location, filename) to the URI frame bytes are served from, and back.

URI Format:
    {base_url}/api/image/{location}/{filename}

With an empty base URL the URI is the server-relative path, which is what
a browser client uses. Frames are immutable once stored, so a URI may be
cached indefinitely.
"""

from typing import Tuple
from urllib.parse import quote, unquote, urlsplit


IMAGE_ROUTE = "/api/image"


class ResourceLocator:
    """
    Builds and parses frame URIs.

    Attributes:
        base_url: Scheme and host prefix ("" for server-relative URIs)
    """

    def __init__(self, base_url: str = "") -> None:
        self.base_url = base_url.rstrip("/")

    def uri_for(self, location: str, filename: str) -> str:
        """Stable URI for a frame."""
        return f"{self.base_url}{IMAGE_ROUTE}/{quote(location)}/{quote(filename)}"

    def parse(self, uri: str) -> Tuple[str, str]:
        """
        Recover (location, filename) from a URI built by ``uri_for``.

        Raises:
            ValueError: If the URI does not point at the image route
        """
        path = urlsplit(uri).path
        prefix = IMAGE_ROUTE + "/"
        if not path.startswith(prefix):
            raise ValueError(f"Not a frame URI: {uri}")

        parts = path[len(prefix):].split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"Not a frame URI: {uri}")

        return unquote(parts[0]), unquote(parts[1])
