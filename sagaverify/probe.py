"""
HTTP probe: one request, one structured response.

The probe never retries and never judges a status code: a 500 comes back as a
``ProbeResponse`` like a 200 does, and the caller decides what it means.
Only socket-level failures (connect, DNS, timeout) raise, as TransportError.

Usage:
    >>> async with HTTPProbe(config) as probe:
    ...     response = await probe.send("GET", config.url_for("orders", 42))
    ...     state = response.expect_status(200).extract("state")
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx

from sagaverify.core.config import HarnessConfig
from sagaverify.core.exceptions import MissingFieldError, TransportError, UnexpectedStatusError
from sagaverify.core.logger import get_logger

_MISSING = object()


@dataclass(frozen=True)
class ProbeResponse:
    method: str
    url: str
    status_code: int
    body: Any = None
    """Parsed JSON body, or None when the body is empty or not JSON."""
    text: str = ""

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> ProbeResponse:
        text = response.text
        body = None
        if text.strip():
            try:
                body = json.loads(text)
            except ValueError:
                body = None
        return cls(
            method=response.request.method,
            url=str(response.request.url),
            status_code=response.status_code,
            body=body,
            text=text,
        )

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def expect_status(self, *codes: int) -> ProbeResponse:
        """Raise UnexpectedStatusError unless the status is one of ``codes`` (default 200)."""
        expected = codes or (200,)
        if self.status_code not in expected:
            raise UnexpectedStatusError(expected, self.status_code, self.url, self.text)
        return self

    def extract(self, path: str) -> Any:
        """
        Read a field from the JSON body by dotted path.

        Integer segments index into lists: ``"lineItems.0.quantity"``.
        A field that is present with a null value counts as missing.
        """
        value = self.get(path, _MISSING)
        if value is _MISSING or value is None:
            raise MissingFieldError(path, self.url)
        return value

    def get(self, path: str, default: Any = None) -> Any:
        node = self.body
        for segment in path.split("."):
            if isinstance(node, dict):
                if segment not in node:
                    return default
                node = node[segment]
            elif isinstance(node, list):
                # plain non-negative indices only; "-1" is a missing field, not the last item
                if not (segment.isascii() and segment.isdigit()):
                    return default
                index = int(segment)
                if index >= len(node):
                    return default
                node = node[index]
            else:
                return default
        return node


class HTTPProbe:
    """
    Thin async wrapper around ``httpx.AsyncClient``.

    Args:
        config: Harness configuration (request timeout)
        client: Pre-built client, e.g. one using ``httpx.MockTransport``.
                An injected client is not closed by the probe.
    """

    def __init__(self, config: HarnessConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.request_timeout)

    async def __aenter__(self) -> HTTPProbe:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def send(self, method: str, url: str, body: Any = None) -> ProbeResponse:
        """Issue a single request; ``body`` is sent as JSON when given."""
        method = method.upper()
        get_logger(__name__).debug(f"{method} url={url}")
        try:
            if body is None:
                response = await self._client.request(method, url)
            else:
                response = await self._client.request(method, url, json=body)
        except httpx.TransportError as e:
            raise TransportError(method, url, e) from e

        result = ProbeResponse.from_httpx(response)
        get_logger(__name__).debug(f"{method} {url} -> {result.status_code}")
        return result

    async def get(self, url: str) -> ProbeResponse:
        return await self.send("GET", url)

    async def post(self, url: str, body: Any = None) -> ProbeResponse:
        return await self.send("POST", url, body)
