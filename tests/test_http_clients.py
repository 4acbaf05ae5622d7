"""
HTTP Client Tests
=================

Tests for the requests-based oracle client and frame loader, driven by a
stub session so no network is involved.
"""

import asyncio

import pytest
import requests

from timelapse_engine.models.errors import FrameLoadError, OracleProtocolError, ResolutionFailure
from timelapse_engine.resolver.oracle import HttpExistenceOracle
from timelapse_engine.storage.loader import HttpFrameLoader


class StubResponse:
    def __init__(self, payload=None, status_code=200, content=b"", invalid_json=False):
        self.payload = payload
        self.status_code = status_code
        self.content = content
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if self.invalid_json:
            raise requests.exceptions.JSONDecodeError("Expecting value", "<html>", 0)
        return self.payload


def html_response():
    """Real requests response whose body is not JSON."""
    response = requests.Response()
    response.status_code = 200
    response.encoding = "utf-8"
    response._content = b"<html>not json</html>"
    return response


class StubSession:
    """Records requests and replays a canned response or error."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def _reply(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        return self._reply("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._reply("POST", url, **kwargs)


class TestHttpExistenceOracle:
    """Tests for the collaborator service client."""

    def test_batch_request_and_response(self):
        session = StubSession(StubResponse([
            {"filename": "2024-01-01_12-00.jpg", "exists": True},
            {"filename": "2024-01-01_12.jpg", "exists": False},
        ]))
        oracle = HttpExistenceOracle("http://frames.local:8002/", timeout=3.0, session=session)

        entries = asyncio.run(
            oracle.check_batch("side_yard", ["2024-01-01_12-00.jpg", "2024-01-01_12.jpg"])
        )

        assert [(e.filename, e.exists) for e in entries] == [
            ("2024-01-01_12-00.jpg", True),
            ("2024-01-01_12.jpg", False),
        ]
        method, url, kwargs = session.requests[0]
        assert (method, url) == ("POST", "http://frames.local:8002/api/check-batch")
        assert kwargs["json"] == {
            "location": "side_yard",
            "filenames": ["2024-01-01_12-00.jpg", "2024-01-01_12.jpg"],
        }
        assert kwargs["timeout"] == 3.0

    def test_transport_failure(self):
        oracle = HttpExistenceOracle(
            "http://frames.local:8002",
            session=StubSession(error=requests.ConnectionError("refused")),
        )

        with pytest.raises(ResolutionFailure) as exc_info:
            asyncio.run(oracle.check_batch("side_yard", ["a.jpg"]))
        assert not isinstance(exc_info.value, OracleProtocolError)

    def test_http_error_status(self):
        oracle = HttpExistenceOracle(
            "http://frames.local:8002",
            session=StubSession(StubResponse(status_code=500)),
        )

        with pytest.raises(ResolutionFailure):
            asyncio.run(oracle.check_batch("side_yard", ["a.jpg"]))

    def test_non_json_payload(self):
        oracle = HttpExistenceOracle(
            "http://frames.local:8002",
            session=StubSession(StubResponse(invalid_json=True)),
        )

        with pytest.raises(OracleProtocolError):
            asyncio.run(oracle.check_batch("side_yard", ["a.jpg"]))

    def test_html_body_is_a_protocol_error(self):
        oracle = HttpExistenceOracle(
            "http://frames.local:8002",
            session=StubSession(html_response()),
        )

        with pytest.raises(OracleProtocolError, match="not JSON"):
            asyncio.run(oracle.check_batch("side_yard", ["a.jpg"]))

    @pytest.mark.parametrize("payload", [
        {"filename": "a.jpg", "exists": True},
        [{"filename": "a.jpg", "exists": "yes"}],
        [{"filename": "a.jpg"}],
    ])
    def test_malformed_payload(self, payload):
        oracle = HttpExistenceOracle(
            "http://frames.local:8002",
            session=StubSession(StubResponse(payload)),
        )

        with pytest.raises(OracleProtocolError):
            asyncio.run(oracle.check_batch("side_yard", ["a.jpg"]))

    def test_single_check(self):
        session = StubSession(StubResponse({"exists": True}))
        oracle = HttpExistenceOracle("http://frames.local:8002", session=session)

        assert asyncio.run(oracle.check("side yard", "a.jpg")) is True
        assert session.requests[0][1] == "http://frames.local:8002/api/check/side%20yard/a.jpg"

    def test_single_check_failure_reports_missing(self):
        oracle = HttpExistenceOracle(
            "http://frames.local:8002",
            session=StubSession(error=requests.Timeout("slow")),
        )

        assert asyncio.run(oracle.check("side_yard", "a.jpg")) is False

    def test_list_locations(self):
        session = StubSession(StubResponse([{"value": "side_yard", "label": "Side Yard"}]))
        oracle = HttpExistenceOracle("http://frames.local:8002", session=session)

        entries = asyncio.run(oracle.list_locations())

        assert entries[0].label == "Side Yard"
        assert session.requests[0][1] == "http://frames.local:8002/api/locations"


class TestHttpFrameLoader:
    """Tests for loading frame bytes over HTTP."""

    def test_relative_uri_joined_to_base(self):
        session = StubSession(StubResponse(content=b"\xff\xd8jpeg"))
        loader = HttpFrameLoader("http://frames.local:8002", session=session)

        data = asyncio.run(loader.load("/api/image/side_yard/a.jpg"))

        assert data == b"\xff\xd8jpeg"
        assert session.requests[0][1] == "http://frames.local:8002/api/image/side_yard/a.jpg"

    def test_base_url_path_prefix_kept(self):
        session = StubSession(StubResponse(content=b"jpeg"))
        loader = HttpFrameLoader("http://frames.local/timelapse/", session=session)

        asyncio.run(loader.load("/api/image/side_yard/a.jpg"))
        asyncio.run(loader.load("http://cdn.local/api/image/side_yard/b.jpg"))

        assert [request[1] for request in session.requests] == [
            "http://frames.local/timelapse/api/image/side_yard/a.jpg",
            "http://cdn.local/api/image/side_yard/b.jpg",
        ]

    def test_failure_raises_frame_load_error(self):
        loader = HttpFrameLoader(session=StubSession(StubResponse(status_code=404)))

        with pytest.raises(FrameLoadError, match="Failed to load image") as exc_info:
            asyncio.run(loader.load("http://frames.local/api/image/side_yard/a.jpg"))
        assert exc_info.value.uri == "http://frames.local/api/image/side_yard/a.jpg"
