# examples/byoc.py
"""
BYOC — Bring Your Own Client.

The developer keeps a fully configured httpx.AsyncClient (proxies, custom
transport, connection limits) and hands it to TokenRouter. Provider keys can
travel with a request, encrypted by a callable the developer supplies.

Run with:
  TOKENROUTER_API_KEY=... OPENAI_API_KEY=... python examples/byoc.py
"""

import asyncio
import base64
import os

import httpx

from tokenrouter import TokenRouter


def encrypt_for_service(public_key: str, plaintext: bytes) -> str:
    # Replace with real envelope encryption against public_key.
    return base64.b64encode(plaintext).decode()


async def main():
    http_client = httpx.AsyncClient(
        timeout=30,
        limits=httpx.Limits(max_connections=10),
    )

    client = TokenRouter(
        http_client=http_client,
        provider_keys={"openai": os.environ["OPENAI_API_KEY"]},
        key_encryptor=encrypt_for_service,
    )

    async with http_client, client:
        response = await client.responses.create(
            input="Explain SSE in one sentence.",
            key_mode="inline",
            mode="latency",
        )
        print(response.output_text)


if __name__ == "__main__":
    asyncio.run(main())
