"""Timeout watcher - advisory "taking longer than expected" timers."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

log = logging.getLogger(__name__)


class WatcherHandle:
    """One armed timer. Fires at most once; cancel() is idempotent."""

    def __init__(self, key: str, budget: float) -> None:
        self.key = key
        self.budget = budget
        self.fired = False
        self._timer: asyncio.TimerHandle | None = None

    @property
    def armed(self) -> bool:
        return self._timer is not None and not self.fired

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class TimeoutWatcher:
    """Keeps at most one armed timer per key (request id).

    Firing only invokes the callback; it never changes orchestrator state.
    """

    def __init__(self) -> None:
        self._handles: dict[str, WatcherHandle] = {}

    def arm(
        self,
        budget: float,
        on_fire: Callable[[], None],
        key: str = "",
    ) -> WatcherHandle:
        """Arm a timer for ``key``. Re-arming a key disarms the previous timer."""
        previous = self._handles.get(key)
        if previous is not None:
            self.disarm(previous)

        handle = WatcherHandle(key, budget)
        loop = asyncio.get_running_loop()
        handle._timer = loop.call_later(budget, self._fire, handle, on_fire)
        self._handles[key] = handle
        log.debug("Watcher armed for %s (%.1fs)", key or "?", budget)
        return handle

    def disarm(self, handle: WatcherHandle | None) -> None:
        if handle is None:
            return
        handle.cancel()
        if self._handles.get(handle.key) is handle:
            del self._handles[handle.key]

    def disarm_all(self) -> None:
        for handle in list(self._handles.values()):
            self.disarm(handle)

    def active(self) -> list[str]:
        return [key for key, handle in self._handles.items() if handle.armed]

    def _fire(self, handle: WatcherHandle, on_fire: Callable[[], None]) -> None:
        handle._timer = None
        if self._handles.get(handle.key) is handle:
            del self._handles[handle.key]
        handle.fired = True
        try:
            on_fire()
        except Exception as exc:
            log.error("Watcher callback for %s failed: %s", handle.key, exc, exc_info=True)
