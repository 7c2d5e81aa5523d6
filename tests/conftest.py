"""Shared test fixtures for discosync.

Provides canned discovery documents, a fake HTTP server backed by
:class:`httpx.MockTransport`, and output managers that write plain text to
stderr so ``capsys`` can assert on diagnostics.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Union

import httpx
import pytest

from discosync.output import OutputFormat, OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Fake discovery server
# ---------------------------------------------------------------------------

Payload = Union[dict, list, int, Exception]


class FakeDiscovery:
    """Serve canned payloads by exact URL and record every request.

    A payload is a JSON-serialisable body (status 200), an ``int`` status
    code with an empty body, or an exception raised by the transport.
    Unknown URLs answer 404.
    """

    def __init__(self, routes: dict[str, Payload] | None = None) -> None:
        self.routes: dict[str, Payload] = dict(routes or {})
        self.requested: list[str] = []

    def _handle(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        payload = self.routes.get(url, 404)
        if isinstance(payload, Exception):
            raise payload
        if isinstance(payload, int):
            return httpx.Response(payload)
        return httpx.Response(200, json=payload)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)


@pytest.fixture
def fake_discovery() -> FakeDiscovery:
    return FakeDiscovery()


# ---------------------------------------------------------------------------
# Document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def discovery_index() -> dict[str, Any]:
    """Raw discovery index listing petstore v1/v2beta and adExchangeBuyer v1.4."""
    with open(FIXTURES_DIR / "discovery_index.json") as f:
        return json.load(f)


@pytest.fixture
def petstore_doc() -> dict[str, Any]:
    """Raw petstore v1 discovery document."""
    with open(FIXTURES_DIR / "petstore.v1.json") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager caches references to sys.stdout/sys.stderr; CliRunner and
    capsys swap those streams per test.
    """
    yield
    reset_output()


@pytest.fixture
def plain_output() -> OutputManager:
    """Plain, uncoloured, verbose output so capsys sees every diagnostic."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()
