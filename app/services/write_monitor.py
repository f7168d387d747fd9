from collections import Counter, deque
from datetime import datetime, timedelta
from typing import Callable, Deque, Dict, NamedTuple, Optional

from logger_config import setup_logger

logger = setup_logger()


class WriteFailure(NamedTuple):
    at: datetime
    name: str
    cause: str


def failure_cause(exc: BaseException) -> str:
    """Short label for why a write failed, taken from the underlying OS error."""
    root = exc.__cause__ or exc
    strerror = getattr(root, "strerror", None)
    return strerror or type(root).__name__


class WriteMonitor:
    """Watches durable writes and raises an alert when the disk keeps refusing them.

    Failures are remembered per file name and cause inside a sliding window.
    Once the window holds ``failure_threshold`` failures the alert handler is
    called with the affected names and the dominant cause. It is not called
    again until the window drains below the threshold. A successful write of a
    name clears that name's failure streak.
    """

    def __init__(self, failure_threshold: int, window_seconds: int = 60,
                 alert_handler: Optional[Callable[[str], None]] = None):
        if failure_threshold <= 0:
            raise ValueError("Failure threshold must be positive")

        self._failure_threshold = failure_threshold
        self._window = timedelta(seconds=window_seconds)
        self._alert_handler = alert_handler or logger.critical
        self._failures: Deque[WriteFailure] = deque()
        self._streaks: Dict[str, int] = {}
        self._alerted = False

    def _drop_expired(self, now: datetime) -> None:
        while self._failures and self._failures[0].at < now - self._window:
            self._failures.popleft()
        if len(self._failures) < self._failure_threshold:
            self._alerted = False

    def record_success(self, name: str) -> None:
        self._streaks.pop(name, None)
        self._drop_expired(datetime.now())

    def record_failure(self, name: str, exc: BaseException) -> None:
        now = datetime.now()
        cause = failure_cause(exc)
        self._failures.append(WriteFailure(now, name, cause))
        self._streaks[name] = self._streaks.get(name, 0) + 1
        logger.warning(f"Write of {name} failed ({cause}), {self._streaks[name]} in a row for this name")

        self._drop_expired(now)
        if len(self._failures) >= self._failure_threshold and not self._alerted:
            self._alerted = True
            self._alert_handler(self._describe())

    def _describe(self) -> str:
        names = sorted({failure.name for failure in self._failures})
        cause, hits = Counter(failure.cause for failure in self._failures).most_common(1)[0]
        window_seconds = int(self._window.total_seconds())
        return (
            f"{len(self._failures)} failed writes within {window_seconds}s "
            f"affecting {', '.join(names)}; most common cause: {cause} ({hits}x)"
        )
