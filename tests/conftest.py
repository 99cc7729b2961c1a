"""
Pytest configuration and fixtures for http-builder tests.
"""

from typing import Any, List, Optional

import pytest
import responses as responses_lib
from requests.cookies import RequestsCookieJar
from requests.structures import CaseInsensitiveDict

from http_builder import Client
from http_builder.core.config import TransportConfig
from http_builder.core.logging.config import LoggingConfig
from http_builder.core.transport import Transport, TransportResponse


class CountingStream:
    """Body stream double that counts reads and closes."""

    def __init__(self, data: bytes = b"", error: Optional[Exception] = None):
        self.data = data
        self.error = error
        self.reads = 0
        self.closes = 0

    def read(self) -> bytes:
        self.reads += 1
        if self.error is not None:
            raise self.error
        return self.data

    def close(self) -> None:
        self.closes += 1


def make_raw(
    status: int = 200,
    body: bytes = b"",
    headers: Optional[dict] = None,
    reason: str = "OK",
    cookies: Optional[dict] = None,
    url: str = "https://api.example.com/",
    error: Optional[Exception] = None,
) -> TransportResponse:
    """TransportResponse with a CountingStream body."""
    return TransportResponse(
        status_code=status,
        reason=reason,
        headers=CaseInsensitiveDict(headers or {}),
        stream=CountingStream(body, error),
        url=url,
        cookies=dict(cookies or {}),
    )


class FakeTransport(Transport):
    """
    Transport double.

    ``outcomes`` are consumed in order: a TransportResponse is returned, an
    exception is raised. The last outcome repeats.
    """

    def __init__(self, outcomes: Optional[List[Any]] = None):
        self.outcomes = list(outcomes or [make_raw()])
        self.calls: List[dict] = []
        self.configured: List[TransportConfig] = []
        self.closed = False
        self._config = TransportConfig()
        self._jar = RequestsCookieJar()

    def send(self, method, url, headers, body, timeout):
        self.calls.append({
            "method": method,
            "url": url,
            "headers": dict(headers),
            "body": body,
            "timeout": timeout,
        })
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def configure(self, config):
        self._config = config
        self.configured.append(config)

    @property
    def config(self):
        return self._config

    @property
    def cookie_store(self):
        return self._jar

    def set_cookie_store(self, jar):
        self._jar = jar

    def close(self):
        self.closed = True


@pytest.fixture
def base_url():
    """Base URL for testing."""
    return "https://api.example.com"


@pytest.fixture
def mock_responses():
    """Mock HTTP responses using responses library."""
    with responses_lib.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def client(base_url):
    """Client over the real requests transport (use with mock_responses)."""
    client = Client(base_url, timeout=10, sleep=lambda seconds: None)
    yield client
    client.close()


@pytest.fixture
def fake_transport():
    """Factory for FakeTransport doubles."""
    return FakeTransport


@pytest.fixture
def raw_response():
    """Factory for TransportResponse doubles."""
    return make_raw


@pytest.fixture
def fake_client(base_url):
    """Factory: Client bound to a FakeTransport with no retry sleeps."""
    created = []

    def factory(outcomes=None, **kwargs):
        transport = FakeTransport(outcomes)
        kwargs.setdefault("sleep", lambda seconds: None)
        c = Client(kwargs.pop("base_url", base_url), transport=transport, **kwargs)
        created.append(c)
        return c, transport

    yield factory
    for c in created:
        c.close()


@pytest.fixture
def logging_config_with_file(tmp_path):
    """LoggingConfig writing to a temporary file."""
    return LoggingConfig.create(
        level="DEBUG",
        enable_console=False,
        enable_file=True,
        file_path=str(tmp_path / "test.log")
    )
