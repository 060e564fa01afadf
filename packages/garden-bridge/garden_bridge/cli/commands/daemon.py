"""CLI — Daemon management commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from garden_bridge.protocol.constants import DEFAULT_HTTP_PORT

app = typer.Typer(help="Start and inspect the GardenBridge daemon.")
console = Console()


@app.command("start")
def start(
    host: Annotated[str | None, typer.Option(help="Host to bind to.")] = None,
    port: Annotated[int | None, typer.Option(help="Port to listen on.")] = None,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    no_gateway: bool = typer.Option(False, "--no-gateway", help="Serve HTTP only."),
    log_level: str = typer.Option("info", help="uvicorn log level."),
) -> None:
    """Start the GardenBridge daemon."""
    from garden_bridge.api.server import create_app
    from garden_bridge.config import Settings, override_settings

    settings = Settings.load(config_file=config)
    if host is not None:
        settings.server.host = host
    if port is not None:
        settings.server.port = port
    if no_gateway:
        settings.gateway.enabled = False
    override_settings(settings)

    console.print(
        f"[bold green]Starting GardenBridge on {settings.server.host}:{settings.server.port}[/bold green]"
    )
    if settings.gateway.enabled:
        console.print(f"Gateway: {settings.gateway.url()}")

    uvicorn.run(
        create_app(settings=settings),
        host=settings.server.host,
        port=settings.server.port,
        log_level=log_level,
    )


@app.command("status")
def status(
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(DEFAULT_HTTP_PORT),
) -> None:
    """Check daemon status."""
    from garden_bridge.client import BridgeClient

    try:
        with BridgeClient(base_url=f"http://{host}:{port}", timeout=5.0) as client:
            data = client.health()
    except Exception as exc:
        console.print(f"[red]Daemon unreachable: {exc}[/red]")
        raise typer.Exit(1)

    table = Table(title="GardenBridge Status")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for k, v in data.items():
        if isinstance(v, dict):
            for sub_key, sub_value in v.items():
                table.add_row(f"{k}.{sub_key}", str(sub_value))
        else:
            table.add_row(str(k), str(v))
    console.print(table)
