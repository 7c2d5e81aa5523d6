"""Blocking HTTP retrieval of JSON documents.

:class:`DocumentFetcher` wraps :class:`httpx.Client` and turns every kind of
retrieval failure -- transport errors, HTTP error statuses, bodies that are
not a JSON object -- into a single :class:`~discosync.exceptions.PerApiFetchError`.
Callers decide whether that failure is recoverable: the dispatcher skips to
the next candidate URL, the catalog escalates it to
:class:`~discosync.exceptions.CatalogFetchError`.

There is no retry here. The only fallback in the system is the ordered
candidate list handled by the dispatcher.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx

from discosync.exceptions import PerApiFetchError
from discosync.output import debug


class DocumentFetcher:
    """Fetch JSON documents over HTTP.

    Must be used as a context manager so the underlying connection pool is
    opened and closed once per run.

    Args:
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, used by tests to serve canned
            responses.

    Example::

        with DocumentFetcher(timeout=30) as fetcher:
            index = fetcher.get_json("https://www.googleapis.com/discovery/v1/apis")
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def __enter__(self) -> DocumentFetcher:
        self._client = httpx.Client(
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def get_json(self, url: str) -> dict[str, Any]:
        """GET *url* and decode the body as a JSON object.

        Raises:
            PerApiFetchError: On an invalid URL or any network, HTTP status
                or decoding failure.
            RuntimeError: If called outside the context manager.
        """
        if self._client is None:
            raise RuntimeError("DocumentFetcher must be used as a context manager")

        debug(f"GET {url}")
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PerApiFetchError(
                f"HTTP {exc.response.status_code} fetching {url}", url
            ) from exc
        except httpx.RequestError as exc:
            raise PerApiFetchError(f"Failed to fetch {url}: {exc}", url) from exc
        except (httpx.InvalidURL, UnicodeError) as exc:
            # Bad hosts (IDNA labels, control characters) fail before any I/O.
            raise PerApiFetchError(f"Invalid URL {url!r}: {exc}", url) from exc

        try:
            data = json.loads(response.text)
        except json.JSONDecodeError as exc:
            raise PerApiFetchError(f"Invalid JSON from {url}: {exc}", url) from exc
        if not isinstance(data, dict):
            raise PerApiFetchError(
                f"Expected a JSON object from {url}, got {type(data).__name__}", url
            )
        return data
