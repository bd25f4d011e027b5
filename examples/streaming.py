# examples/streaming.py
"""
Streaming response.

Run with:
  TOKENROUTER_API_KEY=... python examples/streaming.py
"""

import asyncio

from tokenrouter import TokenRouter


async def main():
    async with TokenRouter.from_env() as client:
        print("Streaming response:\n")
        stream = await client.responses.create(
            input="Tell me a short story about a robot learning to paint.",
            stream=True,
        )
        async with stream:
            async for event in stream:
                if event.type == "response.output_text.delta":
                    print(event.delta, end="", flush=True)
                elif event.type == "response.completed":
                    print(f"\n\nFull text length: {len(event.response.output_text)}")
        print("\nDone.")


if __name__ == "__main__":
    asyncio.run(main())
