"""Day-boundary detection for the current working day."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from calorie_tracker.services.clock import (
    Clock,
    seconds_until_next_midnight,
    today_key,
)
from calorie_tracker.services.ledger import LedgerStore

DAY_SECONDS = 24 * 60 * 60

_logger = logging.getLogger(__name__)

ResetListener = Callable[[str], None]


class ResetState(str, Enum):
    """Whether the reset marker matches today."""

    CURRENT = "current"
    STALE = "stale"


@dataclass
class ResetScheduler:
    """Advances the reset marker when the local date changes.

    Checks run at startup, at the next local midnight, every 24 hours after
    that, and whenever the client reports it is visible again. Ledgers are
    never deleted here.
    """

    store: LedgerStore
    clock: Clock
    interval_seconds: float = DAY_SECONDS
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    listeners: list[ResetListener] = field(default_factory=list)
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)

    @property
    def state(self) -> ResetState:
        """Return CURRENT when the marker already holds today's key."""
        if self.store.load_reset_marker() == today_key(self.clock):
            return ResetState.CURRENT
        return ResetState.STALE

    def add_listener(self, listener: ResetListener) -> None:
        """Register a callback invoked with the new date key."""
        self.listeners.append(listener)

    def check(self) -> bool:
        """Advance the marker if the day changed; return True when it did."""
        today = today_key(self.clock)
        if self.store.load_reset_marker() == today:
            return False
        self.store.save_reset_marker(today)
        _logger.info("Reset marker advanced to %s", today)
        for listener in list(self.listeners):
            try:
                listener(today)
            except Exception:
                _logger.exception("Reset listener failed", extra={"day": today})
        return True

    def on_visibility_change(self, visible: bool) -> bool:
        """Run a check when the client comes back to the foreground."""
        if not visible:
            return False
        return self.check()

    async def run(self) -> None:
        """Check now, at the next midnight, then every interval."""
        self._safe_check()
        await self.sleep(seconds_until_next_midnight(self.clock))
        while True:
            self._safe_check()
            await self.sleep(self.interval_seconds)

    def start(self) -> None:
        """Start the timer loop on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Cancel the timer loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _safe_check(self) -> None:
        try:
            self.check()
        except Exception:
            _logger.exception("Daily reset check failed")
