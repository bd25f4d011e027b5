# tokenrouter/streaming.py
"""
Server-Sent Events decoding.

State machine
-------------
READING → normal operation. Each network read is decoded and appended to a
          text buffer; the buffer is split on newlines and the trailing,
          possibly incomplete, fragment is kept for the next read.
DONE    → the termination sentinel was seen or the byte stream ended.
          No further reads happen.
FAILED  → a read raised. The failure reaches the consumer as an
          APIConnectionError (or the TokenRouterError the transport raised).

A payload that is not a JSON object, or that the transform rejects as
malformed, is dropped so unknown event shapes never break a stream.

Ownership
---------
SSEDecoder knows nothing about HTTP. Stream pairs a decoder with the
release callable of the underlying response and guarantees the release
runs exactly once, whichever way iteration ends. That includes a consumer
that breaks out of the loop and drops the stream: the release sits in the
event generator's finally block, which asyncio runs when it finalizes the
generator.
"""

from __future__ import annotations

import codecs
import enum
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from .constants import SSE_DATA_PREFIX, SSE_DONE_SENTINEL, SSE_EVENT_PREFIX
from .exceptions import APIConnectionError, TokenRouterError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DecoderState(str, enum.Enum):
    READING = "reading"
    DONE = "done"
    FAILED = "failed"


class _Sentinel(Exception):
    """Raised internally when the termination payload is reached."""


class SSEDecoder(Generic[T]):
    """
    Turn a byte stream of SSE frames into a lazy sequence of events.

    Parameters
    ----------
    sentinel:
        Data payload that ends the stream.
    transform:
        Applied to every parsed JSON payload before it is yielded. Defaults
        to the identity.

    A decoder instance holds the buffer of one stream and must not be
    shared between concurrent streams.
    """

    def __init__(
        self,
        sentinel: str = SSE_DONE_SENTINEL,
        transform: Callable[[Any], T] | None = None,
    ) -> None:
        self._sentinel = sentinel
        self._transform = transform
        self._buffer = ""
        self._text = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.state = DecoderState.READING

    # ------------------------------------------------------------------
    # Line handling
    # ------------------------------------------------------------------

    def feed(self, chunk: bytes) -> list[str]:
        """Buffer *chunk* and return the complete lines it finishes."""
        self._buffer += self._text.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return [line.rstrip("\r") for line in lines]

    def parse_line(self, line: str) -> tuple[bool, Any]:
        """
        Interpret one complete line.

        Returns ``(True, payload)`` when the line carries an event and
        ``(False, None)`` when it carries nothing. Raises _Sentinel at the
        termination payload.
        """
        if not line or line.startswith(":"):
            return False, None

        if line.startswith(SSE_EVENT_PREFIX):
            logger.debug("SSE event: %s", line[len(SSE_EVENT_PREFIX):].strip())
            return False, None

        if not line.startswith(SSE_DATA_PREFIX):
            return False, None

        data = line[len(SSE_DATA_PREFIX):]
        if data.startswith(" "):
            data = data[1:]
        if data.strip() == self._sentinel:
            raise _Sentinel

        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("Dropping unparseable SSE payload: %.200s", data)
            return False, None
        if not isinstance(payload, dict):
            logger.debug("Dropping non-object SSE payload: %.200s", data)
            return False, None

        if self._transform is not None:
            try:
                payload = self._transform(payload)
            except ValidationError as exc:
                logger.debug("Dropping SSE payload of unexpected shape: %s", exc)
                return False, None
        return True, payload

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    async def iter_events(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[T]:
        """Yield events from *chunks* in arrival order."""
        reader = chunks.__aiter__()
        try:
            while True:
                try:
                    chunk = await reader.__anext__()
                except StopAsyncIteration:
                    break
                except TokenRouterError:
                    self.state = DecoderState.FAILED
                    raise
                except Exception as exc:
                    self.state = DecoderState.FAILED
                    raise APIConnectionError(f"Stream read failed: {exc}") from exc

                for line in self.feed(chunk):
                    try:
                        has_event, event = self.parse_line(line)
                    except _Sentinel:
                        self.state = DecoderState.DONE
                        return
                    if has_event:
                        yield event
        finally:
            aclose = getattr(reader, "aclose", None)
            if aclose is not None:
                await aclose()

        if self._buffer.strip():
            logger.debug("Discarding unterminated SSE fragment: %.200s", self._buffer)
        self._buffer = ""
        self.state = DecoderState.DONE


class _ReleaseOnce:
    """Wraps a release callable so repeated calls after the first do nothing."""

    def __init__(self, release: Callable[[], Awaitable[None]]) -> None:
        self._release = release
        self.done = False

    async def __call__(self) -> None:
        if self.done:
            return
        self.done = True
        await self._release()


async def _release_after(events: AsyncIterator[T], release: _ReleaseOnce) -> AsyncIterator[T]:
    # Holds no reference to the Stream, so dropping the Stream lets asyncio
    # finalize this generator and run the release.
    try:
        async for event in events:
            yield event
    finally:
        try:
            await events.aclose()  # type: ignore[attr-defined]
        finally:
            await release()


class Stream(Generic[T]):
    """
    Lazy, finite, non-restartable sequence of stream events.

    Iterate with ``async for``. The underlying response is released when the
    stream ends or fails, when ``close()`` is called or the ``async with``
    block exits, and when an abandoned stream is garbage collected. Use
    ``async with`` (or ``close()``) when stopping early to release promptly.

    Example:
        >>> async with await client.responses.create(input="Hi", stream=True) as stream:
        ...     async for event in stream:
        ...         print(event.type)
    """

    def __init__(
        self,
        chunks: AsyncIterable[bytes],
        release: Callable[[], Awaitable[None]],
        decoder: SSEDecoder[T] | None = None,
    ) -> None:
        self.decoder: SSEDecoder[T] = decoder if decoder is not None else SSEDecoder()
        self._release = _ReleaseOnce(release)
        self._events = _release_after(self.decoder.iter_events(chunks), self._release)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "Stream[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._events.__anext__()
        except BaseException:
            await self.close()
            raise

    async def close(self) -> None:
        """Stop decoding and release the underlying response. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._events.aclose()  # type: ignore[attr-defined]
        finally:
            # An unstarted generator skips its finally block on aclose().
            await self._release()

    async def __aenter__(self) -> "Stream[T]":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
