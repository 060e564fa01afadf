"""GardenBridge — Permission gate.

Handlers consult the gate before touching a sensitive capability.  The
bridge does not prompt or track OS authorisation itself; the gate is a
boolean view supplied by the host (config, or a platform permission check).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable


class PermissionGate(ABC):
    @abstractmethod
    def is_granted(self, name: str) -> bool:
        """Return True when the capability permission *name* may be used."""

    @abstractmethod
    def snapshot(self) -> dict[str, bool]:
        """Return ``{permission: granted}`` for every known permission."""


class StaticPermissionGate(PermissionGate):
    """Permission gate built from explicit grant and deny lists.

    A permission is granted when it appears in *granted* and not in
    *denied*.  Unknown names are denied.
    """

    def __init__(self, granted: Iterable[str], denied: Iterable[str] = ()) -> None:
        granted = list(granted)
        self._denied = frozenset(denied)
        self._known = tuple(dict.fromkeys([*granted, *self._denied]))
        self._granted = frozenset(granted) - self._denied

    def is_granted(self, name: str) -> bool:
        return name in self._granted

    def snapshot(self) -> dict[str, bool]:
        return {name: name in self._granted for name in self._known}

    def grant(self, name: str) -> None:
        self._granted = self._granted | {name}
        self._denied = self._denied - {name}
        if name not in self._known:
            self._known = (*self._known, name)

    def revoke(self, name: str) -> None:
        self._granted = self._granted - {name}
