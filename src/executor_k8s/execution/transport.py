"""Resilient HTTP transport for the cluster API.

Every REST call the executor makes (job create/delete, pod list, health)
goes through ``ResilientTransport.execute``, which guards a shared
``httpx.AsyncClient`` with a ``CircuitBreaker``. Log streaming bypasses the
breaker: it is a long-lived response, not a discrete call.

Architecture:

    .. code-block:: text

        K8sExecutor
          ├── execute(RequestSpec) ──► CircuitBreaker.call_async
          │                              ├── open      → CircuitOpenError
          │                              ├── transport → record_failure, re-raise
          │                              └── any HTTP status → record_success
          │                                                    → PlatformResponse
          └── open_log_stream(url) ──► client.send(stream=True) → LogStream

Only ``httpx.TransportError`` (connection refused, timeouts, DNS) counts
against the breaker. A 4xx/5xx answer is a healthy round trip; turning it
into an application error is the executor's job.

Tags:
    transport, httpx, circuit-breaker, resilience, kubernetes
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import httpx

from executor_k8s.core.logging import get_logger
from executor_k8s.execution.circuit_breaker import CircuitBreaker

logger = get_logger(__name__)


@dataclass(frozen=True)
class RequestSpec:
    """One REST call against the cluster API."""

    method: str
    url: str
    json: Any = None


@dataclass(frozen=True)
class PlatformResponse:
    """Normalized outcome of a REST call.

    ``body`` is the decoded JSON payload, or the raw text when the payload
    is not JSON.
    """

    status_code: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def build_async_client(
    token: str,
    *,
    verify_ssl: bool = False,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the ``httpx.AsyncClient`` shared by all platform calls.

    The bearer token and TLS policy live on the client, so the breaker-wrapped
    calls and the direct log request carry identical auth and verification.
    """
    return httpx.AsyncClient(
        headers={"Authorization": f"Bearer {token}"},
        verify=verify_ssl,
        timeout=httpx.Timeout(timeout),
        transport=transport,
    )


def _is_transport_failure(exc: BaseException) -> bool:
    return isinstance(exc, httpx.TransportError)


def decode_body(response: httpx.Response) -> Any:
    """JSON payload of ``response``, or its text when it is not JSON."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class ResilientTransport:
    """Circuit-breaker guarded REST calls.

    One instance (and so one breaker) is owned by each executor. Breaker
    state is shared by every call made through the instance.
    """

    def __init__(self, client: httpx.AsyncClient, breaker: CircuitBreaker | None = None) -> None:
        self._client = client
        self._breaker = breaker or CircuitBreaker(name="kubernetes")

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    async def execute(self, spec: RequestSpec) -> PlatformResponse:
        """Issue ``spec`` through the breaker.

        Raises:
            CircuitOpenError: Breaker is open; no request was sent.
            httpx.TransportError: Network-level failure, unchanged.
        """
        return await self._breaker.call_async(
            self._send, spec, is_failure=_is_transport_failure
        )

    async def _send(self, spec: RequestSpec) -> PlatformResponse:
        logger.debug("transport.request", method=spec.method, url=spec.url)
        try:
            response = await self._client.request(spec.method, spec.url, json=spec.json)
        except httpx.TransportError as exc:
            logger.warning(
                "transport.failed",
                method=spec.method,
                url=spec.url,
                error=repr(exc),
            )
            raise
        logger.debug(
            "transport.response",
            method=spec.method,
            url=spec.url,
            status_code=response.status_code,
        )
        return PlatformResponse(status_code=response.status_code, body=decode_body(response))

    async def open_log_stream(self, url: str) -> LogStream:
        """GET ``url`` in streaming mode, outside the breaker.

        The read timeout is lifted so a followed log can stay idle.
        """
        request = self._client.build_request(
            "GET",
            url,
            timeout=httpx.Timeout(self._client.timeout.connect, read=None),
        )
        response = await self._client.send(request, stream=True)
        return LogStream(response)

    async def aclose(self) -> None:
        await self._client.aclose()


class LogStream:
    """Readable stream over a live pod log response.

    Async-iterating a ``LogStream`` yields text lines. The caller owns it and
    must close it (``aclose()`` or ``async with``).

    Example:
        >>> async with await executor.stream(StreamRequest(build_id)) as logs:
        ...     async for line in logs:
        ...         print(line)
    """

    def __init__(self, response: httpx.Response) -> None:
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def closed(self) -> bool:
        return self.response.is_closed

    def __aiter__(self) -> AsyncIterator[str]:
        return self.aiter_lines()

    async def aiter_lines(self) -> AsyncIterator[str]:
        async for line in self.response.aiter_lines():
            yield line

    def aiter_text(self) -> AsyncIterator[str]:
        return self.response.aiter_text()

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        return self.response.aiter_bytes()

    async def aclose(self) -> None:
        await self.response.aclose()

    async def __aenter__(self) -> LogStream:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, LogStream):
            return self.response is other.response
        return NotImplemented

    def __hash__(self) -> int:
        return id(self.response)

    def __repr__(self) -> str:
        return f"LogStream(url={str(self.response.request.url)!r}, status={self.response.status_code})"
