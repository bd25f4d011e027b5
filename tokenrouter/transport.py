# tokenrouter/transport.py
"""
Transport — issues HTTP requests against the TokenRouter API.

Responsibilities:
  - Build requests with the bearer token, JSON content type, library
    User-Agent and caller headers (caller headers win on collision).
  - Map non-2xx responses to exactly one error kind.
  - Retry 5xx responses with a 2 ** attempt second backoff, at most
    max_retries times. Nothing else is retried.
  - Open streaming responses for the SSE decoder.

The httpx.AsyncClient and the sleep function are injectable so tests can
run without network I/O or real delays.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import Any

import httpx

from ._version import __version__
from .config import ClientConfig
from .constants import MAX_CONNECTIONS, MAX_KEEPALIVE_CONNECTIONS
from .exceptions import (
    APIConnectionError,
    APITimeoutError,
    ErrorKind,
    TokenRouterError,
    error_from_response,
)

logger = logging.getLogger(__name__)

USER_AGENT = f"tokenrouter-python/{__version__}"


def _clean_params(params: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Drop None values and render booleans the way the service expects."""
    if not params:
        return None
    cleaned: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned or None


def _parse_body(response: httpx.Response) -> Any:
    """Parsed JSON when possible, raw text otherwise, None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    raise error_from_response(
        response.status_code,
        body=_parse_body(response),
        headers=dict(response.headers),
        reason=response.reason_phrase,
    )


class Transport:
    """
    Thin request executor over httpx.AsyncClient.

    Parameters
    ----------
    config:
        Connection settings (api_key is required).
    http_client:
        Optional pre-configured AsyncClient. When omitted the transport
        creates and owns one.
    sleep:
        Coroutine function used for retry backoff. Defaults to asyncio.sleep.
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self._config = config
        self._sleep = sleep or asyncio.sleep
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout),
            limits=httpx.Limits(
                max_connections=MAX_CONNECTIONS,
                max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
            ),
        )

    @property
    def max_retries(self) -> int:
        return self._config.max_retries

    # ------------------------------------------------------------------
    # Request construction
    # ------------------------------------------------------------------

    def default_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            **self._config.headers,
        }

    def _build(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> httpx.Request:
        headers = {**self.default_headers(), **(extra_headers or {})}
        try:
            content = json.dumps(body).encode() if body is not None else None
            return self._client.build_request(
                method,
                f"{self._config.base_url}{path}",
                content=content,
                params=_clean_params(params),
                headers=headers,
                timeout=self._config.timeout,
            )
        except (TypeError, ValueError, httpx.InvalidURL) as exc:
            raise TokenRouterError(f"Request failed: {exc}") from exc

    async def _send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        logger.debug("%s %s", request.method, request.url)
        try:
            return await self._client.send(request, stream=stream)
        except httpx.TimeoutException as exc:
            raise APITimeoutError(
                f"Request timed out after {self._config.timeout}s: {exc}"
            ) from exc
        except httpx.TransportError as exc:
            raise APIConnectionError(f"Connection failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
        extra_headers: Mapping[str, str] | None = None,
        attempt: int = 0,
    ) -> Any:
        """
        Execute one request and return the parsed JSON body.

        Raises
        ------
        TokenRouterError
            One member of the error taxonomy. 5xx responses are retried
            first, up to max_retries times.
        """
        request = self._build(method, path, body, params, extra_headers)
        response = await self._send(request)
        try:
            _raise_for_status(response)
        except TokenRouterError as exc:
            if (
                exc.kind is ErrorKind.API_STATUS
                and exc.status_code is not None
                and exc.status_code >= 500
                and attempt < self.max_retries
            ):
                delay = 2**attempt
                logger.warning(
                    "%s %s returned %d (attempt %d/%d), retrying in %ds",
                    method,
                    path,
                    exc.status_code,
                    attempt + 1,
                    self.max_retries + 1,
                    delay,
                )
                await self._sleep(delay)
                return await self.request(
                    method, path, body, params, extra_headers, attempt + 1
                )
            raise
        return _parse_body(response)

    async def open_stream(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """
        Send a streaming request and return the open response.

        The caller owns the returned response and must close it. A non-2xx
        status is read, closed and raised as the matching error; streams
        are never retried.
        """
        headers = {"Accept": "text/event-stream", **(extra_headers or {})}
        request = self._build(method, path, body, params, headers)
        response = await self._send(request, stream=True)
        if not response.is_success:
            try:
                await response.aread()
            except httpx.HTTPError as exc:
                raise APIConnectionError(f"Failed to read error body: {exc}") from exc
            finally:
                await response.aclose()
            _raise_for_status(response)
        return response

    async def iter_bytes(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """Yield body chunks, mapping httpx failures onto the error taxonomy."""
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.TimeoutException as exc:
            raise APITimeoutError(f"Stream read timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise APIConnectionError(f"Stream read failed: {exc}") from exc

    async def close(self) -> None:
        """Close the underlying AsyncClient if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
