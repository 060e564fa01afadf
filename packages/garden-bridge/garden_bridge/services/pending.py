"""Single-resolution future for callback-driven backends.

Platform delegates report through callbacks that may fire more than once,
from another thread, or never.  ``PendingResult`` turns that into one await:
the first ``resolve``/``reject`` wins, later calls are ignored, and
``wait(timeout)`` raises ``asyncio.TimeoutError`` when nothing arrives.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Generic, TypeVar

T = TypeVar("T")


class PendingResult(Generic[T]):
    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[T] = self._loop.create_future()
        self._claimed = False
        self._guard = threading.Lock()

    @property
    def done(self) -> bool:
        return self._claimed

    def _claim(self) -> bool:
        with self._guard:
            if self._claimed:
                return False
            self._claimed = True
            return True

    def resolve(self, value: T) -> bool:
        """Deliver *value*.  Returns False if the result was already settled."""
        if not self._claim():
            return False
        self._loop.call_soon_threadsafe(self._settle, value, None)
        return True

    def reject(self, error: BaseException) -> bool:
        if not self._claim():
            return False
        self._loop.call_soon_threadsafe(self._settle, None, error)
        return True

    def _settle(self, value: T | None, error: BaseException | None) -> None:
        if self._future.done():
            return
        if error is not None:
            self._future.set_exception(error)
        else:
            self._future.set_result(value)  # type: ignore[arg-type]

    async def wait(self, timeout: float) -> T:
        try:
            return await asyncio.wait_for(asyncio.shield(self._future), timeout)
        except asyncio.TimeoutError:
            self._claim()
            raise
