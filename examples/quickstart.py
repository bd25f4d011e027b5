# examples/quickstart.py
"""
Quickstart — one routed response.

Run with:
  TOKENROUTER_API_KEY=... python examples/quickstart.py
"""

import asyncio

from tokenrouter import TokenRouter


async def main():
    async with TokenRouter.from_env() as client:
        response = await client.responses.create(
            input="Summarise the benefits of functional programming.",
            mode="balanced",
        )
        print(response.output_text)
        print(f"\nModel: {response.routed_model or response.model}")
        if response.usage:
            print(f"Tokens: {response.usage.total_tokens}")
        if response.cost_usd is not None:
            print(f"Cost: ${response.cost_usd:.6f}")

        chat = await client.chat.completions.create(
            messages=[{"role": "user", "content": "Write a haiku about programming"}],
            mode="cost",
            max_tokens=50,
        )
        print(f"\n{chat.model}: {chat.choices[0].message.content}")


if __name__ == "__main__":
    asyncio.run(main())
