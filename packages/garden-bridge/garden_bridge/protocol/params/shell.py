"""Typed parameter models for the ``shell`` capability."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

from garden_bridge.protocol.params.base import WireParams


class ShellExecuteParams(WireParams):
    command: str = Field(min_length=1, description="Command line passed to '<shell> -c'.")
    cwd: str | None = Field(default=None, description="Working directory.")
    timeout: Annotated[float, Field(gt=0)] | None = Field(
        default=None, description="Seconds before the process tree is terminated."
    )
    env: dict[str, str] | None = Field(
        default=None, description="Extra environment variables merged over the daemon's."
    )
    shell: str | None = Field(default=None, description="Interpreter; defaults to the configured shell.")


class ShellWhichParams(WireParams):
    command: str = Field(min_length=1)
