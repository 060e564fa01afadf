"""Service layer — errors shared by platform data-source backends.

Backends raise these; capability handlers translate them into the
command failure taxonomy.
"""

from __future__ import annotations


class ServiceError(Exception):
    """A backend failed for a domain reason (store unavailable, bad input)."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ItemNotFoundError(ServiceError):
    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"{kind} not found: {item_id}", code="NOT_FOUND")
        self.kind = kind
        self.item_id = item_id


class ServiceUnavailableError(ServiceError):
    """No backend for this data source exists on the host."""
