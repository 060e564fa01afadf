"""CLI — Device identity commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(help="Inspect or rotate the device identity used to pair with the gateway.")
console = Console()

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
]


@app.command("show")
def show(config: ConfigOption = None) -> None:
    """Print the device id and public key (generating a key on first use)."""
    from garden_bridge.config import Settings
    from garden_bridge.gateway.identity import DeviceIdentity, TokenStore

    settings = Settings.load(config_file=config)
    identity = DeviceIdentity.load(settings.identity.key_path)
    token = TokenStore(settings.identity.state_path).load()

    table = Table(title="Device identity")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("device_id", identity.device_id)
    table.add_row("public_key", identity.public_key)
    table.add_row("key_path", str(identity.key_path))
    table.add_row("paired", "yes" if token else "no")
    console.print(table)


@app.command("reset")
def reset(
    config: ConfigOption = None,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete the device key and stored token; the next start pairs as a new device."""
    from garden_bridge.config import Settings
    from garden_bridge.gateway.identity import TokenStore

    settings = Settings.load(config_file=config)
    if not yes:
        typer.confirm("This rotates the device id and forgets the gateway token. Continue?", abort=True)

    settings.identity.key_path.unlink(missing_ok=True)
    TokenStore(settings.identity.state_path).clear()
    console.print("[green]Device identity reset.[/green]")
