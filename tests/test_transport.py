# tests/test_transport.py
"""
Unit tests for Transport.

Verifies:
  - Auth, content-type and library headers; caller headers win on collision.
  - 2xx bodies are returned unchanged.
  - Non-2xx responses raise the mapped error with status and body populated.
  - 5xx responses are retried with 2 ** attempt backoff, max_retries times.
  - Non-5xx errors, connection failures and timeouts are never retried.
  - Serialisation failures raise before any network I/O.
  - Streams open with the SSE Accept header and classify failures.
"""

from __future__ import annotations

import json

import httpx
import pytest

from tokenrouter.config import ClientConfig
from tokenrouter.exceptions import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    InvalidRequestError,
    QuotaExceededError,
    RateLimitError,
    TokenRouterError,
)
from tokenrouter.transport import USER_AGENT, Transport


class CountingHandler:
    """Returns *fail_times* copies of *failure*, then *success*."""

    def __init__(self, failure: httpx.Response, success: httpx.Response | None = None, fail_times: int = 10**6) -> None:
        self.failure = failure
        self.success = success
        self.fail_times = fail_times
        self.calls = 0
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        self.requests.append(request)
        if self.calls <= self.fail_times or self.success is None:
            return self.failure
        return self.success


def make_transport(handler, mock_http, sleep, **config_kwargs) -> Transport:
    config = ClientConfig(
        api_key="tr-test",
        base_url="https://api.test/api",
        **{"max_retries": 3, **config_kwargs},
    )
    return Transport(config, http_client=mock_http(handler), sleep=sleep)


@pytest.mark.asyncio
class TestRequestConstruction:
    async def test_default_headers_and_json_body(self, mock_http, sleep):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        transport = make_transport(handler, mock_http, sleep)
        result = await transport.request("POST", "/v1/responses", body={"input": "hi"})

        assert result == {"ok": True}
        request = seen[0]
        assert request.url == "https://api.test/api/v1/responses"
        assert request.headers["Authorization"] == "Bearer tr-test"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["User-Agent"] == USER_AGENT
        assert json.loads(request.content) == {"input": "hi"}

    async def test_extra_headers_take_precedence(self, mock_http, sleep):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        transport = make_transport(handler, mock_http, sleep, headers={"X-Team": "core"})
        await transport.request(
            "GET",
            "/v1/responses/r1",
            extra_headers={"User-Agent": "custom-agent", "X-Trace": "t1"},
        )

        headers = seen[0].headers
        assert headers["User-Agent"] == "custom-agent"
        assert headers["X-Trace"] == "t1"
        assert headers["X-Team"] == "core"

    async def test_query_params_drop_none_and_render_booleans(self, mock_http, sleep):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        transport = make_transport(handler, mock_http, sleep)
        await transport.request("GET", "/v1/x", params={"a": None, "stream": True, "limit": 5})

        params = seen[0].url.params
        assert "a" not in params
        assert params["stream"] == "true"
        assert params["limit"] == "5"

    async def test_empty_success_body_returns_none(self, mock_http, sleep):
        transport = make_transport(lambda r: httpx.Response(204), mock_http, sleep)
        assert await transport.request("DELETE", "/v1/x") is None

    async def test_unserialisable_body_fails_before_io(self, mock_http, sleep):
        handler = CountingHandler(httpx.Response(200, json={}))
        transport = make_transport(handler, mock_http, sleep)

        with pytest.raises(TokenRouterError) as exc_info:
            await transport.request("POST", "/v1/x", body={"bad": object()})

        assert type(exc_info.value) is TokenRouterError
        assert handler.calls == 0


@pytest.mark.asyncio
class TestErrorMapping:
    @pytest.mark.parametrize(
        "status, detail, expected",
        [
            (401, "bad key", AuthenticationError),
            (403, "not allowed", AuthenticationError),
            (400, "missing input", InvalidRequestError),
            (403, "quota exceeded", QuotaExceededError),
            (429, "slow down", RateLimitError),
            (500, "boom", APIStatusError),
            (502, "bad gateway", APIStatusError),
        ],
    )
    async def test_status_maps_to_error(self, mock_http, sleep, status, detail, expected):
        handler = CountingHandler(httpx.Response(status, json={"detail": detail}))
        transport = make_transport(handler, mock_http, sleep, max_retries=0)

        with pytest.raises(expected) as exc_info:
            await transport.request("POST", "/v1/responses", body={})

        err = exc_info.value
        assert type(err) is expected
        assert err.status_code == status
        assert err.body == {"detail": detail}
        assert err.message == detail

    async def test_rate_limit_reads_retry_after(self, mock_http, sleep):
        failure = httpx.Response(429, json={"detail": "later"}, headers={"Retry-After": "7"})
        transport = make_transport(CountingHandler(failure), mock_http, sleep)

        with pytest.raises(RateLimitError) as exc_info:
            await transport.request("GET", "/v1/x")

        assert exc_info.value.retry_after == 7
        assert exc_info.value.headers["retry-after"] == "7"


@pytest.mark.asyncio
class TestRetryPolicy:
    @pytest.mark.parametrize("k", [0, 1, 2])
    async def test_recovers_after_k_failures(self, mock_http, sleep, k):
        handler = CountingHandler(
            httpx.Response(500, json={"detail": "boom"}),
            success=httpx.Response(200, json={"id": "ok"}),
            fail_times=k,
        )
        transport = make_transport(handler, mock_http, sleep)

        assert await transport.request("POST", "/v1/x", body={}) == {"id": "ok"}
        assert handler.calls == k + 1
        assert sleep.delays == [2**i for i in range(k)]

    async def test_always_failing_exhausts_retries(self, mock_http, sleep):
        handler = CountingHandler(httpx.Response(503, json={"detail": "down"}))
        transport = make_transport(handler, mock_http, sleep)

        with pytest.raises(APIStatusError) as exc_info:
            await transport.request("POST", "/v1/x", body={})

        assert exc_info.value.status_code == 503
        assert handler.calls == 4
        assert sleep.delays == [1, 2, 4]

    async def test_retries_resend_same_body(self, mock_http, sleep):
        handler = CountingHandler(
            httpx.Response(500),
            success=httpx.Response(200, json={}),
            fail_times=1,
        )
        transport = make_transport(handler, mock_http, sleep)
        await transport.request("POST", "/v1/x", body={"n": 1}, extra_headers={"X-A": "1"})

        first, second = handler.requests
        assert first.content == second.content
        assert second.headers["X-A"] == "1"

    @pytest.mark.parametrize("status", [400, 401, 404, 429])
    async def test_non_server_errors_are_not_retried(self, mock_http, sleep, status):
        handler = CountingHandler(httpx.Response(status, json={"detail": "no"}))
        transport = make_transport(handler, mock_http, sleep)

        with pytest.raises(TokenRouterError):
            await transport.request("GET", "/v1/x")

        assert handler.calls == 1
        assert sleep.delays == []

    async def test_zero_retries(self, mock_http, sleep):
        handler = CountingHandler(httpx.Response(500))
        transport = make_transport(handler, mock_http, sleep, max_retries=0)

        with pytest.raises(APIStatusError):
            await transport.request("GET", "/v1/x")
        assert handler.calls == 1


@pytest.mark.asyncio
class TestTransportFailures:
    async def test_connection_error_is_not_retried(self, mock_http, sleep):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("connection refused", request=request)

        transport = make_transport(handler, mock_http, sleep)
        with pytest.raises(APIConnectionError):
            await transport.request("GET", "/v1/x")
        assert calls == 1
        assert sleep.delays == []

    async def test_timeout_maps_to_timeout_error(self, mock_http, sleep):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        transport = make_transport(handler, mock_http, sleep)
        with pytest.raises(APITimeoutError):
            await transport.request("GET", "/v1/x")
        assert sleep.delays == []


@pytest.mark.asyncio
class TestOpenStream:
    async def test_sets_accept_header(self, mock_http, sleep):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"data: [DONE]\n\n")

        transport = make_transport(handler, mock_http, sleep)
        response = await transport.open_stream("POST", "/v1/responses", body={"stream": True})
        try:
            assert seen[0].headers["Accept"] == "text/event-stream"
            assert response.status_code == 200
        finally:
            await response.aclose()

    async def test_error_status_is_classified_and_not_retried(self, mock_http, sleep):
        handler = CountingHandler(httpx.Response(500, json={"detail": "stream broke"}))
        transport = make_transport(handler, mock_http, sleep)

        with pytest.raises(APIStatusError) as exc_info:
            await transport.open_stream("POST", "/v1/responses", body={})

        assert exc_info.value.message == "stream broke"
        assert handler.calls == 1

    async def test_auth_failure_on_open(self, mock_http, sleep):
        handler = CountingHandler(httpx.Response(401, json={"detail": "bad key"}))
        transport = make_transport(handler, mock_http, sleep)

        with pytest.raises(AuthenticationError):
            await transport.open_stream("GET", "/v1/responses/r1")
