"""Typed parameter models for the ``file`` capability."""

from __future__ import annotations

from pydantic import Field

from garden_bridge.protocol.params.base import WireParams


class FileReadParams(WireParams):
    path: str = Field(min_length=1, description="File path; '~' is expanded.")
    encoding: str = Field(default="utf-8", description="Text encoding.")
    binary: bool = Field(default=False, description="Return content base64-encoded.")


class FileWriteParams(WireParams):
    path: str = Field(min_length=1)
    content: str = Field(description="Text content, or base64 when binary=true.")
    binary: bool = False
    append: bool = False
    encoding: str = "utf-8"


class FileListParams(WireParams):
    path: str = Field(min_length=1)
    recursive: bool = False
    include_hidden: bool = False


class FilePathParams(WireParams):
    path: str = Field(min_length=1)


class FileDeleteParams(WireParams):
    path: str = Field(min_length=1)
    recursive: bool = Field(default=False, description="Delete non-empty directories.")
