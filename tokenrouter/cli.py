# tokenrouter/cli.py
"""
CLI entry point for tokenrouter.

Available commands:
  tokenrouter ask "prompt" [--model auto] [--mode cost] [--stream] [--config tokenrouter.yaml]
  tokenrouter get RESPONSE_ID [--config tokenrouter.yaml]

Requires: pip install "tokenrouter[cli]"
"""

from __future__ import annotations

import asyncio
from typing import Optional

try:
    import typer
    from rich.console import Console
    from rich.table import Table
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "CLI dependencies missing. Install with: pip install 'tokenrouter[cli]'"
    ) from exc

from .client import TokenRouter
from .constants import EVENT_RESPONSE_COMPLETED
from .exceptions import ErrorKind, TokenRouterError
from .models import Response

app = typer.Typer(
    name="tokenrouter",
    help="Call the TokenRouter API from the command line.",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


def _load_client(config_path: Optional[str]) -> TokenRouter:
    if config_path:
        return TokenRouter.from_yaml(config_path)
    return TokenRouter.from_env()


def _build_table(response: Response) -> Table:
    """Render response metadata as a Rich table."""
    table = Table(title="TokenRouter — Response", show_lines=True)
    table.add_column("Field", style="bold cyan", no_wrap=True)
    table.add_column("Value")

    usage = response.usage
    rows = [
        ("id", response.id),
        ("status", response.status or "-"),
        ("model", response.routed_model or response.model or "-"),
        ("tokens", f"{usage.input_tokens} in / {usage.output_tokens} out" if usage else "-"),
        ("cost", f"${response.cost_usd:.6f}" if response.cost_usd is not None else "-"),
        ("latency", f"{response.latency_ms}ms" if response.latency_ms is not None else "-"),
    ]
    for name, value in rows:
        table.add_row(name, str(value))
    return table


async def _ask(
    prompt: str,
    model: Optional[str],
    mode: Optional[str],
    stream: bool,
    config_path: Optional[str],
) -> Optional[Response]:
    params = {"input": prompt, "model": model, "mode": mode}
    async with _load_client(config_path) as client:
        if not stream:
            response = await client.responses.create(**params)
            console.print(response.output_text, markup=False)
            return response

        final: Optional[Response] = None
        async with await client.responses.create(**params, stream=True) as events:
            async for event in events:
                if event.type.endswith("output_text.delta") and isinstance(event.delta, str):
                    console.print(event.delta, end="", markup=False, highlight=False)
                elif event.type == EVENT_RESPONSE_COMPLETED:
                    final = event.response
        console.print()
        return final


async def _get(response_id: str, config_path: Optional[str]) -> Response:
    async with _load_client(config_path) as client:
        return await client.responses.get(response_id)


def _fail(exc: TokenRouterError) -> None:
    err_console.print(f"[red]{exc.kind.value}[/red]: {exc.message}")
    retry_after = getattr(exc, "retry_after", None)
    if exc.kind is ErrorKind.RATE_LIMIT and retry_after:
        err_console.print(f"Retry after {retry_after}s.")
    raise typer.Exit(1)


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Prompt sent as the response input"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model to request"),
    mode: Optional[str] = typer.Option(
        None, "--mode", help="Routing mode: cost | quality | latency | balanced"
    ),
    stream: bool = typer.Option(False, "--stream", "-s", help="Print text as it arrives"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to tokenrouter.yaml"),
) -> None:
    """Send a prompt and print the routed model's answer."""
    try:
        response = asyncio.run(_ask(prompt, model, mode, stream, config))
    except TokenRouterError as exc:
        _fail(exc)
        return
    if response is not None:
        console.print(_build_table(response))


@app.command()
def get(
    response_id: str = typer.Argument(..., help="ID of a stored response"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to tokenrouter.yaml"),
) -> None:
    """Fetch a stored response and print its text and metadata."""
    try:
        response = asyncio.run(_get(response_id, config))
    except TokenRouterError as exc:
        _fail(exc)
        return
    console.print(response.output_text, markup=False)
    console.print(_build_table(response))
