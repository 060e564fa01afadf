"""Protocol layer — Command request and the uniform response envelope.

Every invocation, whichever transport carried it, answers with exactly one
envelope::

    {"ok": true,  "payload": {...}}
    {"ok": false, "error": {"code": "NOT_FOUND", "message": "..."}}
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, Field, field_validator

from garden_bridge.protocol.constants import ErrorCode


class CommandRequest(BaseModel):
    """An opaque ``(command, params)`` pair plus a correlation id."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    command: str = Field(min_length=1, description="Dot-namespaced command, e.g. 'file.read'.")
    params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("params", mode="before")
    @classmethod
    def none_means_empty(cls, v: object) -> object:
        return {} if v is None else v


class ErrorBody(BaseModel):
    code: str
    message: str


class CommandResult(BaseModel):
    """Discriminated success/failure outcome of one invocation.

    Build with :meth:`success` or :meth:`failure` rather than the
    constructor so that exactly one variant is populated.
    """

    ok: bool
    payload: Any = None
    error: ErrorBody | None = None

    @classmethod
    def success(cls, payload: Any = None) -> CommandResult:
        return cls(ok=True, payload=payload)

    @classmethod
    def failure(cls, code: str | ErrorCode, message: str) -> CommandResult:
        code_str = code.value if isinstance(code, ErrorCode) else code
        return cls(ok=False, error=ErrorBody(code=code_str, message=message))

    @property
    def code(self) -> str | None:
        return self.error.code if self.error else None

    def to_wire(self) -> dict[str, Any]:
        if self.ok:
            wire: dict[str, Any] = {"ok": True}
            if self.payload is not None:
                wire["payload"] = self.payload
            return wire
        assert self.error is not None
        return {"ok": False, "error": self.error.model_dump()}
