# tokenrouter/keys.py
"""
Provider-key envelope.

When a request asks for key_mode "inline" or "mixed", the caller's
provider API keys travel with it, encrypted for the service. The SDK does
not implement the cryptography: the caller supplies a KeyEncryptor that
takes the service public key and the plaintext and returns the header
value. The public key is fetched once per client and cached.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Protocol

from .constants import ENCRYPTED_KEYS_HEADER, KEY_MODES_NEEDING_KEYS, PUBLIC_KEY_PATH
from .exceptions import InvalidRequestError, TokenRouterError
from .transport import Transport


class KeyEncryptor(Protocol):
    def __call__(self, public_key: str, plaintext: bytes) -> str: ...


class ProviderKeyEnvelope:
    """
    Builds the encrypted provider-key header for a request.

    The cached public key may be populated by concurrent requests; the
    value is the same either way, so the last write wins.
    """

    def __init__(
        self,
        transport: Transport,
        provider_keys: Mapping[str, str] | None = None,
        encryptor: KeyEncryptor | None = None,
    ) -> None:
        self._transport = transport
        self._provider_keys = dict(provider_keys or {})
        self._encryptor = encryptor
        self._public_key: str | None = None

    async def public_key(self) -> str:
        if self._public_key is None:
            payload = await self._transport.request("GET", PUBLIC_KEY_PATH)
            key = payload.get("public_key") if isinstance(payload, Mapping) else None
            if not isinstance(key, str) or not key:
                raise TokenRouterError("Public key response did not contain 'public_key'")
            self._public_key = key
        return self._public_key

    async def headers_for(self, key_mode: str | None) -> dict[str, str]:
        """Return the extra headers *key_mode* calls for (possibly none)."""
        if key_mode not in KEY_MODES_NEEDING_KEYS:
            return {}
        if not self._provider_keys:
            return {}
        if self._encryptor is None:
            raise InvalidRequestError(
                f"key_mode '{key_mode}' sends provider keys but no key_encryptor was configured."
            )
        plaintext = json.dumps(self._provider_keys, sort_keys=True).encode()
        token = self._encryptor(await self.public_key(), plaintext)
        return {ENCRYPTED_KEYS_HEADER: token}
