"""File capability — read, write, list and inspect paths.

All path operations use pathlib and expand ``~``.  Blocking filesystem
calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import shutil
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from garden_bridge.capabilities.base import CapabilityHandler, Platform
from garden_bridge.exceptions import CommandError
from garden_bridge.protocol.params.file import (
    FileDeleteParams,
    FileListParams,
    FilePathParams,
    FileReadParams,
    FileWriteParams,
)


def _resolve(path: str) -> Path:
    return Path(path).expanduser()


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _created_at(st: Any) -> float:
    # st_birthtime exists on macOS/BSD; Linux only exposes ctime.
    return getattr(st, "st_birthtime", st.st_ctime)


class FileHandler(CapabilityHandler):
    NAMESPACE = "file"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.ALL]
    PERMISSION = "file"
    COMMANDS = {
        "read": FileReadParams,
        "write": FileWriteParams,
        "list": FileListParams,
        "exists": FilePathParams,
        "delete": FileDeleteParams,
        "info": FilePathParams,
    }

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _action_read(self, p: FileReadParams) -> dict[str, Any]:
        path = _resolve(p.path)
        if not path.exists():
            raise CommandError.not_found(f"File not found: {path}")
        if path.is_dir():
            raise CommandError("IS_DIRECTORY", f"Path is a directory: {path}")

        data = await asyncio.to_thread(path.read_bytes)
        if p.binary:
            return {
                "content": base64.b64encode(data).decode("ascii"),
                "encoding": "base64",
                "size": len(data),
            }
        try:
            text = data.decode(p.encoding)
        except LookupError:
            raise CommandError.invalid_params("encoding") from None
        except UnicodeDecodeError as exc:
            raise CommandError(
                "DECODE_FAILED",
                f"File is not valid {p.encoding}; read it with binary=true ({exc.reason})",
            ) from exc
        return {"content": text, "encoding": p.encoding, "size": len(data)}

    async def _action_write(self, p: FileWriteParams) -> dict[str, Any]:
        path = _resolve(p.path)
        if path.is_dir():
            raise CommandError("IS_DIRECTORY", f"Path is a directory: {path}")

        if p.binary:
            try:
                data = base64.b64decode(p.content, validate=True)
            except (binascii.Error, ValueError):
                raise CommandError("INVALID_BASE64", "Content is not valid base64") from None
        else:
            try:
                data = p.content.encode(p.encoding)
            except LookupError:
                raise CommandError.invalid_params("encoding") from None

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("ab" if p.append else "wb") as fh:
                fh.write(data)

        await asyncio.to_thread(_write)
        return {"success": True, "path": str(path), "size": len(data)}

    async def _action_list(self, p: FileListParams) -> dict[str, Any]:
        path = _resolve(p.path)
        if not path.exists():
            raise CommandError.not_found(f"Directory not found: {path}")
        if not path.is_dir():
            raise CommandError("NOT_DIRECTORY", f"Path is not a directory: {path}")

        def _scan() -> list[dict[str, Any]]:
            entries = path.rglob("*") if p.recursive else path.iterdir()
            items = []
            for entry in sorted(entries):
                rel_parts = entry.relative_to(path).parts
                if not p.include_hidden and any(part.startswith(".") for part in rel_parts):
                    continue
                try:
                    st = entry.stat()
                except OSError:
                    continue
                items.append(
                    {
                        "name": entry.name,
                        "path": str(entry),
                        "isDirectory": entry.is_dir(),
                        "size": st.st_size,
                        "modifiedAt": _iso(st.st_mtime),
                    }
                )
            return items

        items = await asyncio.to_thread(_scan)
        return {"items": items, "count": len(items), "path": str(path)}

    async def _action_exists(self, p: FilePathParams) -> dict[str, Any]:
        path = _resolve(p.path)
        return {"exists": path.exists(), "isDirectory": path.is_dir(), "path": str(path)}

    async def _action_delete(self, p: FileDeleteParams) -> dict[str, Any]:
        path = _resolve(p.path)
        if not path.exists() and not path.is_symlink():
            raise CommandError.not_found(f"Path not found: {path}")

        def _delete() -> None:
            if path.is_dir() and not path.is_symlink():
                if p.recursive:
                    shutil.rmtree(path)
                elif any(path.iterdir()):
                    raise CommandError(
                        "DIRECTORY_NOT_EMPTY",
                        f"Directory is not empty: {path} (pass recursive=true)",
                    )
                else:
                    path.rmdir()
            else:
                path.unlink()

        await asyncio.to_thread(_delete)
        return {"success": True, "path": str(path)}

    async def _action_info(self, p: FilePathParams) -> dict[str, Any]:
        path = _resolve(p.path)
        if not path.exists():
            raise CommandError.not_found(f"Path not found: {path}")
        st = await asyncio.to_thread(path.stat)
        return {
            "path": str(path),
            "name": path.name,
            "isDirectory": path.is_dir(),
            "isFile": path.is_file(),
            "isSymlink": path.is_symlink(),
            "size": st.st_size,
            "createdAt": _iso(_created_at(st)),
            "modifiedAt": _iso(st.st_mtime),
            "permissions": format(stat.S_IMODE(st.st_mode), "o"),
        }
