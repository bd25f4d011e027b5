# tokenrouter/__init__.py
"""
tokenrouter — async Python client for the TokenRouter LLM-routing API.

Public API surface:
  TokenRouter          — main client; responses.* and chat.completions.*
  ClientConfig         — connection settings (kwargs / dict / YAML / env)
  Response             — materialised response with derived output_text
  ResponseStreamEvent  — one event of a streamed response
  Stream               — lazy event sequence returned by streaming calls
  SSEDecoder           — shared Server-Sent-Events decoder
  derive_output_text   — concatenated text of a response's output
  TokenRouterError     — base of every error raised by the client
"""

import logging

from ._version import __version__
from .client import TokenRouter
from .config import ClientConfig
from .exceptions import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    ErrorKind,
    InvalidRequestError,
    QuotaExceededError,
    RateLimitError,
    TimeoutError,
    TokenRouterError,
)
from .models import (
    ChatCompletion,
    ChatCompletionChunk,
    DeletedResponse,
    InputItemsList,
    Response,
    ResponseStreamEvent,
)
from .normalize import derive_output_text
from .streaming import SSEDecoder, Stream

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "TokenRouter",
    "ClientConfig",
    "Response",
    "ResponseStreamEvent",
    "ChatCompletion",
    "ChatCompletionChunk",
    "DeletedResponse",
    "InputItemsList",
    "Stream",
    "SSEDecoder",
    "derive_output_text",
    "ErrorKind",
    "TokenRouterError",
    "AuthenticationError",
    "RateLimitError",
    "InvalidRequestError",
    "QuotaExceededError",
    "APIStatusError",
    "APIConnectionError",
    "APITimeoutError",
    "TimeoutError",
    "__version__",
]
