"""CLI — One-shot command invocation."""

from __future__ import annotations

import json
from typing import Annotated

import typer
from rich.console import Console

from garden_bridge.protocol.constants import DEFAULT_HTTP_PORT

console = Console()


def invoke(
    command: Annotated[str, typer.Argument(help="Dot-namespaced command, e.g. file.list.")],
    params: Annotated[
        str | None, typer.Option("--params", "-p", help="Command params as a JSON object.")
    ] = None,
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(DEFAULT_HTTP_PORT),
    token: Annotated[str | None, typer.Option(envvar="GARDEN_SERVER__API_TOKEN")] = None,
    timeout: float = typer.Option(60.0, help="Request timeout in seconds."),
) -> None:
    """Send one command to the running daemon and print the envelope."""
    import httpx

    from garden_bridge.client import BridgeClient

    parsed: dict[str, object] | None = None
    if params is not None:
        try:
            parsed = json.loads(params)
        except json.JSONDecodeError as exc:
            console.print(f"[red]Invalid --params JSON: {exc}[/red]")
            raise typer.Exit(2)
        if not isinstance(parsed, dict):
            console.print("[red]--params must be a JSON object[/red]")
            raise typer.Exit(2)

    try:
        with BridgeClient(
            base_url=f"http://{host}:{port}", api_token=token, timeout=timeout
        ) as client:
            result = client.invoke(command, parsed)
    except httpx.HTTPError as exc:
        console.print(f"[red]Daemon unreachable: {exc}[/red]")
        raise typer.Exit(1)

    console.print_json(data=result)
    if not result.get("ok"):
        raise typer.Exit(1)
