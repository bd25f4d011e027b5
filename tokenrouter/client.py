# tokenrouter/client.py
"""
TokenRouter — the primary class the developer interacts with.

OpenAI-compatible surface:
  client.responses.create / get / delete / cancel / list_input_items
  client.chat.completions.create

Non-streaming calls return frozen pydantic models. Streaming calls return a
Stream that yields typed events; every streaming call site shares one
SSEDecoder implementation and differs only in the per-event transform.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from .config import ClientConfig
from .constants import (
    CHAT_COMPLETIONS_PATH,
    DEFAULT_CHAT_MODEL,
    RESPONSES_PATH,
    SSE_DONE_SENTINEL,
)
from .exceptions import AuthenticationError, InvalidRequestError, TokenRouterError
from .keys import KeyEncryptor, ProviderKeyEnvelope
from .models import (
    ChatCompletion,
    ChatCompletionChunk,
    ChatCompletionParams,
    DeletedResponse,
    InputItemsList,
    Response,
    ResponseCreateParams,
    ResponseStreamEvent,
)
from .normalize import normalize_response_event, with_output_text
from .streaming import SSEDecoder, Stream
from .transport import Transport

M = TypeVar("M", bound=BaseModel)


def _validate_params(model: type[M], params: Mapping[str, Any]) -> M:
    try:
        return model.model_validate(params)
    except ValidationError as exc:
        raise InvalidRequestError(f"Invalid request parameters: {exc}") from exc


def _hydrate(model: type[M], payload: Any) -> M:
    if not isinstance(payload, Mapping):
        raise TokenRouterError(f"Unexpected response body: {payload!r:.200}", body=payload)
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise TokenRouterError(
            f"Malformed {model.__name__} in response body: {exc}", body=payload
        ) from exc


def _to_response(payload: Any) -> Response:
    if not isinstance(payload, Mapping):
        raise TokenRouterError(f"Unexpected response body: {payload!r:.200}", body=payload)
    return _hydrate(Response, with_output_text(payload))


def _to_response_event(payload: dict[str, Any]) -> ResponseStreamEvent:
    return ResponseStreamEvent.model_validate(normalize_response_event(payload))


class Responses:
    """The ``client.responses`` namespace."""

    def __init__(self, client: "TokenRouter") -> None:
        self._client = client

    async def create(self, **params: Any) -> Response | Stream[ResponseStreamEvent]:
        """
        Create a model response.

        Accepts every Responses API option (``input``, ``instructions``,
        ``model``, ``tools``, ...) plus the routing hints ``mode`` and
        ``key_mode``. Unknown options are forwarded unchanged.

        Returns
        -------
        Response
            When ``stream`` is false. ``output_text`` is populated.
        Stream[ResponseStreamEvent]
            When ``stream=True``. ``response.completed`` events carry a
            populated ``response.output_text``.
        """
        request = _validate_params(ResponseCreateParams, params)
        headers = await self._client._key_headers(request.key_mode)
        body = request.to_body()

        if request.stream:
            return await self._client._stream(
                "POST", RESPONSES_PATH, _to_response_event, body=body, extra_headers=headers
            )

        payload = await self._client._request(
            "POST", RESPONSES_PATH, body=body, extra_headers=headers
        )
        return _to_response(payload)

    async def get(
        self,
        response_id: str,
        *,
        include: list[str] | None = None,
        include_obfuscation: bool | None = None,
        starting_after: int | None = None,
        stream: bool = False,
    ) -> Response | Stream[ResponseStreamEvent]:
        """Retrieve a response by ID, optionally replaying it as a stream."""
        path = f"{RESPONSES_PATH}/{quote(response_id, safe='')}"
        params: dict[str, Any] = {
            "include": include,
            "include_obfuscation": include_obfuscation,
            "starting_after": starting_after,
        }
        if stream:
            return await self._client._stream(
                "GET", path, _to_response_event, params={**params, "stream": True}
            )
        return _to_response(await self._client._request("GET", path, params=params))

    async def delete(self, response_id: str) -> DeletedResponse:
        """Delete a stored response. An empty success body counts as deleted."""
        path = f"{RESPONSES_PATH}/{quote(response_id, safe='')}"
        payload = await self._client._request("DELETE", path)
        if payload is None:
            return DeletedResponse(id=response_id, deleted=True)
        return _hydrate(DeletedResponse, payload)

    async def cancel(self, response_id: str) -> Response:
        """Cancel a background response."""
        path = f"{RESPONSES_PATH}/{quote(response_id, safe='')}/cancel"
        return _to_response(await self._client._request("POST", path))

    async def list_input_items(
        self,
        response_id: str,
        *,
        after: str | None = None,
        include: list[str] | None = None,
        limit: int | None = None,
        order: str | None = None,
    ) -> InputItemsList:
        if order is not None and order not in ("asc", "desc"):
            raise InvalidRequestError(f"order must be 'asc' or 'desc', got '{order}'")
        path = f"{RESPONSES_PATH}/{quote(response_id, safe='')}/input_items"
        params = {"after": after, "include": include, "limit": limit, "order": order}
        return _hydrate(InputItemsList, await self._client._request("GET", path, params=params))


class Completions:
    """The ``client.chat.completions`` namespace."""

    def __init__(self, client: "TokenRouter") -> None:
        self._client = client

    async def create(
        self,
        messages: list[dict[str, Any]],
        *,
        model: str = DEFAULT_CHAT_MODEL,
        mode: str | None = None,
        stream: bool = False,
        **params: Any,
    ) -> ChatCompletion | Stream[ChatCompletionChunk]:
        """
        Create a chat completion; ``model="auto"`` lets the service route.

        ``mode`` biases routing towards cost, quality, latency or a balance.
        """
        request = _validate_params(
            ChatCompletionParams,
            {"messages": messages, "model": model, "mode": mode, "stream": stream, **params},
        )
        headers = await self._client._key_headers(request.key_mode)
        body = request.to_body()

        if request.stream:
            return await self._client._stream(
                "POST",
                CHAT_COMPLETIONS_PATH,
                ChatCompletionChunk.model_validate,
                body=body,
                extra_headers=headers,
            )

        payload = await self._client._request(
            "POST", CHAT_COMPLETIONS_PATH, body=body, extra_headers=headers
        )
        return _hydrate(ChatCompletion, payload)


class Chat:
    def __init__(self, client: "TokenRouter") -> None:
        self.completions = Completions(client)


class TokenRouter:
    """
    Async client for the TokenRouter API.

    Parameters
    ----------
    api_key:
        Bearer token. Falls back to TOKENROUTER_API_KEY.
    base_url:
        Service root. Falls back to TOKENROUTER_BASE_URL, then the hosted API.
    timeout:
        Per-request timeout in seconds. Falls back to TOKENROUTER_TIMEOUT.
    max_retries:
        Retries for 5xx responses. Falls back to TOKENROUTER_MAX_RETRIES.
    headers:
        Extra headers sent with every request.
    config:
        A complete ClientConfig; when given, the environment is not read.
    http_client:
        A pre-configured httpx.AsyncClient. The client does not close it.
    provider_keys:
        Provider API keys sent (encrypted) for key_mode "inline" / "mixed".
    key_encryptor:
        Callable ``(public_key, plaintext) -> str`` producing the header value.
    sleep:
        Coroutine function used for retry backoff (tests pass a no-op).
    environ:
        Mapping read instead of os.environ when config is not given.

    Raises
    ------
    AuthenticationError
        When no API key is available.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        headers: Mapping[str, str] | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        provider_keys: Mapping[str, str] | None = None,
        key_encryptor: KeyEncryptor | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        overrides = {
            "api_key": api_key,
            "base_url": base_url,
            "timeout": timeout,
            "max_retries": max_retries,
            "headers": dict(headers) if headers is not None else None,
        }
        try:
            if config is None:
                config = ClientConfig.from_env(environ, **overrides)
            else:
                config = ClientConfig.from_dict(config.model_dump(), **overrides)
        except ValidationError as exc:
            raise TokenRouterError(f"Invalid client configuration: {exc}") from exc

        if not config.api_key:
            raise AuthenticationError(
                "API key is required. Set TOKENROUTER_API_KEY environment variable "
                "or pass api_key."
            )

        self._config = config
        self._transport = Transport(config, http_client=http_client, sleep=sleep)
        self._keys = ProviderKeyEnvelope(self._transport, provider_keys, key_encryptor)
        self.responses = Responses(self)
        self.chat = Chat(self)

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> "TokenRouter":
        """Construct from a plain Python dictionary."""
        return cls(config=ClientConfig.from_dict(data), **kwargs)

    @classmethod
    def from_yaml(cls, path: str, **kwargs: Any) -> "TokenRouter":
        """Construct from a YAML config file."""
        return cls(config=ClientConfig.from_yaml(path), **kwargs)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "TokenRouter":
        """Construct from environment variables."""
        return cls(config=ClientConfig.from_env(), **kwargs)

    @property
    def config(self) -> ClientConfig:
        return self._config

    # ------------------------------------------------------------------
    # Internal plumbing shared by the namespaces
    # ------------------------------------------------------------------

    async def _key_headers(self, key_mode: str | None) -> dict[str, str]:
        return await self._keys.headers_for(key_mode)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        return await self._transport.request(method, path, **kwargs)

    async def _stream(
        self,
        method: str,
        path: str,
        transform: Callable[[dict[str, Any]], Any],
        **kwargs: Any,
    ) -> Stream[Any]:
        if kwargs.get("body") is not None:
            kwargs["body"] = {**kwargs["body"], "stream": True}
        response = await self._transport.open_stream(method, path, **kwargs)
        return Stream(
            self._transport.iter_bytes(response),
            release=response.aclose,
            decoder=SSEDecoder(sentinel=SSE_DONE_SENTINEL, transform=transform),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Release the HTTP connection pool (when the client created it)."""
        await self._transport.close()

    async def __aenter__(self) -> "TokenRouter":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
