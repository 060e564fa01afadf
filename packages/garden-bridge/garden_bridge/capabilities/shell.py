"""Shell capability — run command lines and locate executables.

``shell.execute`` is partial-output-capable: on timeout the whole process
tree is killed and whatever was captured so far is returned with
``timedOut: true`` rather than as a failure.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import time
from pathlib import Path
from typing import Any

import psutil

from garden_bridge.capabilities.base import CapabilityHandler, Platform
from garden_bridge.exceptions import CommandError
from garden_bridge.logging import get_logger
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.params.shell import ShellExecuteParams, ShellWhichParams

log = get_logger(__name__)

_READ_CHUNK = 64 * 1024
_DRAIN_GRACE = 2.0


def kill_process_tree(pid: int, timeout: float = 3.0) -> list[int]:
    """Kill *pid* and all of its descendants.  Returns the pids signalled."""
    try:
        root = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return []
    procs = [*root.children(recursive=True), root]
    killed: list[int] = []
    for proc in procs:
        try:
            proc.kill()
            killed.append(proc.pid)
        except psutil.NoSuchProcess:
            continue
    psutil.wait_procs(procs, timeout=timeout)
    return killed


async def _drain(stream: asyncio.StreamReader | None, buf: bytearray) -> None:
    if stream is None:
        return
    while chunk := await stream.read(_READ_CHUNK):
        buf.extend(chunk)


class ShellHandler(CapabilityHandler):
    NAMESPACE = "shell"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.LINUX, Platform.MACOS]
    PERMISSION = "shell"
    COMMANDS = {
        "execute": ShellExecuteParams,
        "which": ShellWhichParams,
    }

    def __init__(
        self,
        permissions: PermissionGate | None = None,
        shell: str = "/bin/sh",
        default_timeout: float = 30.0,
        max_timeout: float = 600.0,
    ) -> None:
        super().__init__(permissions)
        self._shell = shell
        self._default_timeout = default_timeout
        self._max_timeout = max_timeout

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _action_execute(self, p: ShellExecuteParams) -> dict[str, Any]:
        timeout = min(p.timeout or self._default_timeout, self._max_timeout)
        cwd = Path(p.cwd).expanduser() if p.cwd else None
        if cwd is not None and not cwd.is_dir():
            raise CommandError.not_found(f"Working directory not found: {cwd}")

        env = os.environ.copy()
        if p.env:
            env.update(p.env)

        start = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                p.shell or self._shell,
                "-c",
                p.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd else None,
                env=env,
                start_new_session=True,
            )
        except OSError as exc:
            raise CommandError("EXEC_FAILED", f"Failed to start command: {exc}") from exc

        stdout, stderr = bytearray(), bytearray()
        readers = [
            asyncio.create_task(_drain(proc.stdout, stdout)),
            asyncio.create_task(_drain(proc.stderr, stderr)),
        ]
        timed_out = False
        try:
            await asyncio.wait_for(proc.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            timed_out = True
            killed = await asyncio.to_thread(kill_process_tree, proc.pid)
            log.warning("shell_timeout", timeout=timeout, killed_pids=killed)
            await proc.wait()
        except asyncio.CancelledError:
            await asyncio.to_thread(kill_process_tree, proc.pid)
            for reader in readers:
                reader.cancel()
            raise
        finally:
            _, pending = await asyncio.wait(readers, timeout=_DRAIN_GRACE)
            for reader in pending:
                reader.cancel()

        exit_code = proc.returncode if proc.returncode is not None else -1
        return {
            "exitCode": exit_code,
            "stdout": stdout.decode("utf-8", errors="replace"),
            "stderr": stderr.decode("utf-8", errors="replace"),
            "success": exit_code == 0 and not timed_out,
            "timedOut": timed_out,
            "duration": round(time.monotonic() - start, 3),
        }

    async def _action_which(self, p: ShellWhichParams) -> dict[str, Any]:
        path = shutil.which(p.command)
        return {"command": p.command, "found": path is not None, "path": path}
