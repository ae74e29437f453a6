"""Shared pytest fixtures for relay tests."""

from __future__ import annotations

import shutil
import tempfile
import time
from collections.abc import AsyncIterator, Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio

from genrelay.core.config import RelayConfig
from genrelay.core.relay import GenerationRelay
from genrelay.core.upstream import InferenceClient

UPSTREAM_BASE = "https://upstream.test/v1"


class FakeUpstream:
    """Scripted stand-in for the inference API.

    Serve it through ``httpx.MockTransport(fake.handler)``.  Each status
    request consumes the next entry of ``statuses``:

    - a status string such as ``"PENDING"`` is returned as ``{"status": ...}``,
    - a dict is returned as the JSON body,
    - an ``httpx.Response`` is returned as-is,
    - an exception instance (e.g. ``httpx.ConnectError``) is raised.

    Once the script runs out every further poll answers ``PENDING``.

    Attributes:
        requests: Every request received, in order.
        poll_times: ``time.monotonic()`` at each status request.
    """

    def __init__(self) -> None:
        self.request_id = "r1"
        self.statuses: list[Any] = []
        self.result: Any = {"images": [{"url": "https://cdn.test/r1/0.png"}]}
        self.submit_response: httpx.Response | None = None
        self.fetch_response: httpx.Response | None = None
        self.requests: list[httpx.Request] = []
        self.poll_times: list[float] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path.endswith("/async-invoke"):
            if self.submit_response is not None:
                return self.submit_response
            return httpx.Response(200, json={"request_id": self.request_id})

        if request.method == "GET" and path.endswith("/status"):
            self.poll_times.append(time.monotonic())
            step = self.statuses.pop(0) if self.statuses else "PENDING"
            if isinstance(step, Exception):
                raise step
            if isinstance(step, httpx.Response):
                return step
            if isinstance(step, dict):
                return httpx.Response(200, json=step)
            return httpx.Response(200, json={"status": step})

        if request.method == "GET" and "/async-invoke/" in path:
            if self.fetch_response is not None:
                return self.fetch_response
            return httpx.Response(200, json=self.result)

        return httpx.Response(404, json={"error": "not found"})

    def _count(self, predicate: Callable[[httpx.Request], bool]) -> int:
        return sum(1 for r in self.requests if predicate(r))

    @property
    def submit_count(self) -> int:
        return self._count(lambda r: r.method == "POST")

    @property
    def poll_count(self) -> int:
        return self._count(lambda r: r.url.path.endswith("/status"))

    @property
    def fetch_count(self) -> int:
        return self._count(
            lambda r: r.method == "GET" and not r.url.path.endswith("/status")
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def _isolate_relay_env(monkeypatch) -> None:
    """Keep the developer's environment out of RelayConfig."""
    for name in RelayConfig.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> RelayConfig:
    """Relay configuration with a credential and millisecond polling.

    Returns:
        RelayConfig instance for testing
    """
    return RelayConfig(
        _env_file=None,
        model_access_key="test-key",
        api_base_url=UPSTREAM_BASE,
        poll_interval_seconds=0.01,
        max_poll_attempts=5,
        request_timeout_seconds=5.0,
        public_dir=temp_dir / "public",
    )


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest_asyncio.fixture
async def http_client(fake_upstream: FakeUpstream) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=fake_upstream.transport) as client:
        yield client


@pytest.fixture
def make_relay(
    http_client: httpx.AsyncClient, test_config: RelayConfig
) -> Callable[..., GenerationRelay]:
    """Build a relay against the fake upstream, with config overrides.

    Returns:
        Callable taking RelayConfig field overrides as keyword arguments.
    """

    def _make(**overrides: Any) -> GenerationRelay:
        cfg = test_config.model_copy(update=overrides)
        return GenerationRelay(cfg, InferenceClient(http_client, cfg))

    return _make
