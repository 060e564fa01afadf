"""GardenBridge CLI — Entry point.

Usage:
    garden-bridge daemon start [--no-gateway]
    garden-bridge daemon status
    garden-bridge invoke <command> --params '{"path": "/"}'
    garden-bridge identity show
    garden-bridge identity reset
"""

from __future__ import annotations

import typer

from garden_bridge.cli.commands import daemon, identity, invoke

app = typer.Typer(
    name="garden-bridge",
    help="GardenBridge — Local automation bridge exposing host capabilities to a controller.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

app.add_typer(daemon.app, name="daemon")
app.add_typer(identity.app, name="identity")
app.command("invoke")(invoke.invoke)


@app.callback()
def main_callback() -> None:
    pass


if __name__ == "__main__":
    app()
