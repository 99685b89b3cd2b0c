# throttled delivery of parse snapshots to a consumer
import time
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ThrottledPresenter:
    """Coalesce rapid snapshots so the consumer sees at most one per interval.

    Last write wins: a snapshot submitted inside the interval replaces any
    snapshot still waiting, and flush() delivers whatever is left.
    """

    def __init__(self, callback: Callable[[Any], None], min_interval: float = 1 / 60,
                 clock: Callable[[], float] = time.monotonic):
        self.callback = callback
        self.min_interval = min_interval
        self.clock = clock
        self._pending: Optional[Any] = None
        self._has_pending = False
        self._last_emit: Optional[float] = None
        self.emitted = 0
        self.dropped = 0

    # store the snapshot and emit it if the interval has passed
    def submit(self, snapshot: Any) -> bool:
        if self._has_pending:
            self.dropped += 1
        self._pending = snapshot
        self._has_pending = True

        now = self.clock()
        if self._last_emit is None or now - self._last_emit >= self.min_interval:
            self._emit(now)
            return True
        return False

    def flush(self) -> bool:
        if not self._has_pending:
            return False
        self._emit(self.clock())
        return True

    def _emit(self, now: float):
        snapshot = self._pending
        self._pending = None
        self._has_pending = False
        self._last_emit = now
        self.emitted += 1
        self.callback(snapshot)
