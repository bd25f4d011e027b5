# tokenrouter/models.py
"""
Pydantic v2 data models used throughout tokenrouter.

Response-side models allow extra fields so new server fields survive a
round trip without an SDK upgrade. Request-side models validate the
routing hints and pass every other option through verbatim.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import VALID_KEY_MODES, VALID_ROUTING_MODES


def _check_choice(value: str | None, allowed: frozenset[str], name: str) -> str | None:
    if value is not None and value not in allowed:
        raise ValueError(f"{name} must be one of {sorted(allowed)}, got '{value}'")
    return value


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class _RequestParams(BaseModel):
    model_config = ConfigDict(extra="allow")

    model: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    tools: list[dict[str, Any]] | None = None
    tool_choice: str | dict[str, Any] | None = None
    stream: bool = False
    mode: str | None = Field(
        default=None,
        description="Routing mode hint: 'cost' | 'quality' | 'latency' | 'balanced'.",
    )
    key_mode: str | None = Field(
        default=None,
        description="Provider-key handling: 'inline' | 'stored' | 'mixed'.",
    )

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str | None) -> str | None:
        return _check_choice(v, VALID_ROUTING_MODES, "mode")

    @field_validator("key_mode")
    @classmethod
    def validate_key_mode(cls, v: str | None) -> str | None:
        return _check_choice(v, VALID_KEY_MODES, "key_mode")

    def to_body(self) -> dict[str, Any]:
        """Serialise to a request body, omitting options left unset."""
        return self.model_dump(exclude_none=True)


class ResponseCreateParams(_RequestParams):
    """Options for POST /v1/responses."""

    input: str | list[dict[str, Any]] | None = None
    instructions: str | None = None
    max_output_tokens: int | None = None
    previous_response_id: str | None = None
    metadata: dict[str, str] | None = None


class ChatCompletionParams(_RequestParams):
    """Options for POST /v1/chat/completions."""

    messages: list[dict[str, Any]] = Field(..., description="Chat messages in OpenAI format.")
    max_tokens: int | None = None


# ---------------------------------------------------------------------------
# Responses API
# ---------------------------------------------------------------------------


class _ServerModel(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


class OutputContent(_ServerModel):
    type: str = ""
    text: str | None = None
    annotations: list[Any] | None = None


class OutputItem(_ServerModel):
    type: str = ""
    id: str | None = None
    status: str | None = None
    role: str | None = None
    content: list[OutputContent] | None = None


class Usage(_ServerModel):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class ErrorDetail(_ServerModel):
    code: str | None = None
    message: str | None = None


class Response(_ServerModel):
    """
    A materialised model response.

    ``output_text`` is derived once from ``output`` by the normalizer before
    the model is built; the model is frozen afterwards.
    """

    id: str = ""
    object: str = "response"
    created_at: int | None = None
    status: str | None = Field(
        default=None,
        description="completed | failed | in_progress | cancelled | queued | incomplete",
    )
    model: str | None = None
    output: list[OutputItem] = Field(default_factory=list)
    output_text: str = ""
    usage: Usage | None = None
    error: ErrorDetail | None = None
    cost_usd: float | None = None
    latency_ms: float | None = None
    routed_model: str | None = None


class ResponseStreamEvent(_ServerModel):
    """One event of a streamed Responses call, tagged by ``type``."""

    type: str = ""
    response: Response | None = None
    delta: Any = None
    error: Any = None
    event_id: str | None = None
    metadata: dict[str, Any] | None = None


class DeletedResponse(_ServerModel):
    id: str
    object: str = "response"
    deleted: bool = False


class InputItemsList(_ServerModel):
    object: str = "list"
    data: list[dict[str, Any]] = Field(default_factory=list)
    first_id: str | None = None
    last_id: str | None = None
    has_more: bool = False


# ---------------------------------------------------------------------------
# Chat Completions API
# ---------------------------------------------------------------------------


class ChatMessage(_ServerModel):
    role: str = "assistant"
    content: str | None = None
    tool_calls: list[dict[str, Any]] | None = None


class ChatChoice(_ServerModel):
    index: int = 0
    message: ChatMessage | None = None
    finish_reason: str | None = None


class ChatUsage(_ServerModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletion(_ServerModel):
    id: str = ""
    object: str = "chat.completion"
    created: int | None = None
    model: str | None = None
    choices: list[ChatChoice] = Field(default_factory=list)
    usage: ChatUsage | None = None
    cost_usd: float | None = None
    latency_ms: float | None = None


class ChatDelta(_ServerModel):
    role: str | None = None
    content: str | None = None
    tool_calls: list[dict[str, Any]] | None = None


class ChatChunkChoice(_ServerModel):
    index: int = 0
    delta: ChatDelta = Field(default_factory=ChatDelta)
    finish_reason: str | None = None


class ChatCompletionChunk(_ServerModel):
    id: str = ""
    object: str = "chat.completion.chunk"
    created: int | None = None
    model: str | None = None
    choices: list[ChatChunkChoice] = Field(default_factory=list)
    usage: ChatUsage | None = None
