# tests/conftest.py
"""
Shared pytest fixtures for tokenrouter tests.

Network I/O is replaced by httpx.MockTransport and retry backoff by a
recorder, so no test touches the network or sleeps.
"""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from tokenrouter import TokenRouter
from tokenrouter.config import ClientConfig

BASE_URL = "https://api.test/api"


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def client_config():
    return ClientConfig(api_key="tr-test", base_url=BASE_URL, max_retries=3)


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    def _factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _factory


@pytest.fixture
def make_client(mock_http, sleep):
    """Build a TokenRouter whose requests are answered by *handler*."""

    def _factory(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> TokenRouter:
        kwargs.setdefault("api_key", "tr-test")
        kwargs.setdefault("base_url", BASE_URL)
        kwargs.setdefault("environ", {})
        return TokenRouter(http_client=mock_http(handler), sleep=sleep, **kwargs)

    return _factory


def sse_body(*frames: str) -> bytes:
    """Encode SSE frames, one ``data:`` payload each."""
    return "".join(f"data: {frame}\n\n" for frame in frames).encode("utf-8")


@pytest.fixture
def completed_response() -> dict[str, Any]:
    return {
        "id": "resp_123",
        "object": "response",
        "status": "completed",
        "model": "gpt-4o-mini",
        "routed_model": "gpt-4o-mini",
        "output": [
            {
                "type": "message",
                "id": "msg_1",
                "role": "assistant",
                "content": [{"type": "output_text", "text": "Hello, "}],
            },
            {"type": "reasoning", "id": "rs_1"},
            {
                "type": "message",
                "id": "msg_2",
                "role": "assistant",
                "content": [{"type": "output_text", "text": "world"}],
            },
        ],
        "usage": {"input_tokens": 5, "output_tokens": 2, "total_tokens": 7},
        "cost_usd": 0.00012,
        "latency_ms": 321.0,
    }


@pytest.fixture
def sse():
    return sse_body
