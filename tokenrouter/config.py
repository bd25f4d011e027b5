# tokenrouter/config.py
"""
ClientConfig — connection settings for the TokenRouter client.

Supports construction from:
  - Keyword arguments → ClientConfig(api_key=..., base_url=...)
  - Python dict       → ClientConfig.from_dict(data)
  - YAML file         → ClientConfig.from_yaml("tokenrouter.yaml")
  - Environment       → ClientConfig.from_env()
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .constants import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    ENV_API_KEY,
    ENV_BASE_URL,
    ENV_MAX_RETRIES,
    ENV_TIMEOUT,
)

_ENV_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


class ClientConfig(BaseModel):
    """
    Top-level configuration for the TokenRouter client.

    Instantiate directly or use one of the factory class methods:
      ClientConfig.from_dict(data)
      ClientConfig.from_yaml(path)
      ClientConfig.from_env()
    """

    model_config = {"frozen": True}

    api_key: str | None = Field(
        default=None,
        description="Bearer token sent on every request.",
        repr=False,
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Service root; a trailing slash is stripped.",
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        gt=0,
        description="Per-request timeout in seconds.",
    )
    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        description="Retries allowed for 5xx responses.",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra headers sent on every request.",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], **kwargs: Any) -> "ClientConfig":
        """Build config from a plain Python dictionary."""
        merged = {**data, **{k: v for k, v in kwargs.items() if v is not None}}
        return cls.model_validate(merged)

    @classmethod
    def from_yaml(
        cls,
        path: str,
        environ: Mapping[str, str] | None = None,
        **kwargs: Any,
    ) -> "ClientConfig":
        """
        Build config from a YAML file.

        Environment variable interpolation is supported:
          api_key: "${TOKENROUTER_API_KEY}"
        """
        try:
            import yaml  # type: ignore[import]
        except ImportError as exc:
            raise ImportError(
                "PyYAML is required for from_yaml(). Install it with: pip install pyyaml"
            ) from exc

        env = os.environ if environ is None else environ

        with open(path) as f:
            raw = f.read()

        def _replace(match: re.Match) -> str:  # type: ignore[type-arg]
            var = match.group(1)
            value = env.get(var)
            if value is None:
                raise EnvironmentError(
                    f"Environment variable '{var}' referenced in '{path}' is not set."
                )
            return value

        raw = _ENV_PLACEHOLDER.sub(_replace, raw)
        data = yaml.safe_load(raw) or {}
        return cls.from_dict(data, **kwargs)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **kwargs: Any,
    ) -> "ClientConfig":
        """
        Build config from environment variables.

        Reads:
          TOKENROUTER_API_KEY     → api_key
          TOKENROUTER_BASE_URL    → base_url
          TOKENROUTER_TIMEOUT     → timeout (seconds)
          TOKENROUTER_MAX_RETRIES → max_retries

        Keyword arguments that are not None take precedence over the
        environment.
        """
        env = os.environ if environ is None else environ

        data: dict[str, Any] = {}
        for env_var, field_name in (
            (ENV_API_KEY, "api_key"),
            (ENV_BASE_URL, "base_url"),
            (ENV_TIMEOUT, "timeout"),
            (ENV_MAX_RETRIES, "max_retries"),
        ):
            value = env.get(env_var)
            if value:
                data[field_name] = value

        return cls.from_dict(data, **kwargs)
