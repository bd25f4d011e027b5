# tokenrouter/constants.py
"""
Default constants for the TokenRouter client.
All tunable values are centralised here so they can be overridden via
ClientConfig without touching internal logic.
"""

# ---------------------------------------------------------------------------
# Connection defaults
# ---------------------------------------------------------------------------
DEFAULT_BASE_URL: str = "https://api.tokenrouter.io/api"

DEFAULT_TIMEOUT_SECONDS: float = 60.0
"""Per-request timeout applied to every HTTP call."""

DEFAULT_MAX_RETRIES: int = 3
"""Retries allowed for 5xx responses (total attempts = max_retries + 1)."""

MAX_CONNECTIONS: int = 100
MAX_KEEPALIVE_CONNECTIONS: int = 20

# ---------------------------------------------------------------------------
# Environment variables
# ---------------------------------------------------------------------------
ENV_API_KEY: str = "TOKENROUTER_API_KEY"
ENV_BASE_URL: str = "TOKENROUTER_BASE_URL"
ENV_TIMEOUT: str = "TOKENROUTER_TIMEOUT"
ENV_MAX_RETRIES: str = "TOKENROUTER_MAX_RETRIES"

# ---------------------------------------------------------------------------
# Server-Sent Events
# ---------------------------------------------------------------------------
SSE_DONE_SENTINEL: str = "[DONE]"
SSE_DATA_PREFIX: str = "data:"
SSE_EVENT_PREFIX: str = "event:"

EVENT_RESPONSE_COMPLETED: str = "response.completed"

# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
RESPONSES_PATH: str = "/v1/responses"
CHAT_COMPLETIONS_PATH: str = "/v1/chat/completions"
PUBLIC_KEY_PATH: str = "/v1/keys/public-key"

ENCRYPTED_KEYS_HEADER: str = "X-Encrypted-Provider-Keys"

# ---------------------------------------------------------------------------
# Request hints
# ---------------------------------------------------------------------------
VALID_ROUTING_MODES = frozenset({"cost", "quality", "latency", "balanced"})

VALID_KEY_MODES = frozenset({"inline", "stored", "mixed"})
KEY_MODES_NEEDING_KEYS = frozenset({"inline", "mixed"})

DEFAULT_CHAT_MODEL: str = "auto"
