"""Progress publishing between the repair flow and the display worker.

The main flow publishes its current step to a :class:`StatusChannel`.
An :class:`ElapsedTicker` thread reads the channel and renders the step
with the elapsed time. Data only flows from the main flow to the
display; the worker never writes back.
"""

import logging
import threading
import time
from collections.abc import Callable
from types import TracebackType

logger = logging.getLogger(__name__)


class StatusChannel:
    """Latest-value slot for the current step of a run.

    Writers replace the value; readers always see the most recent one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._message = ""
        self._updates = 0

    def publish(self, message: str) -> None:
        """Publish the current step."""
        with self._lock:
            self._message = message
            self._updates += 1
        logger.debug("Status: %s", message)

    def read(self) -> tuple[str, int]:
        """Read the latest message and the number of updates so far."""
        with self._lock:
            return self._message, self._updates


def format_elapsed(seconds: float) -> str:
    """Format elapsed seconds as MM:SS (or H:MM:SS past an hour)."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class ElapsedTicker:
    """Background worker rendering the current step and elapsed time.

    The worker is a daemon thread, so it never keeps the process alive.
    :meth:`stop` signals it and waits at most ``join_timeout`` seconds.

    Args:
        channel: Channel to read from.
        render: Called with the text to display on every tick.
        on_stop: Called once after the worker stops, to restore the display.
        interval: Seconds between ticks.
        join_timeout: Maximum seconds :meth:`stop` waits for the worker.
        clock: Monotonic clock, replaceable in tests.
    """

    def __init__(
        self,
        channel: StatusChannel,
        render: Callable[[str], None],
        *,
        on_stop: Callable[[], None] | None = None,
        interval: float = 1.0,
        join_timeout: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._channel = channel
        self._render = render
        self._on_stop = on_stop
        self._interval = interval
        self._join_timeout = join_timeout
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._started_at = 0.0

    @property
    def running(self) -> bool:
        """Check if the worker thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def text(self) -> str:
        """Text for the current tick."""
        message, _ = self._channel.read()
        elapsed = format_elapsed(self._clock() - self._started_at)
        return f"[{elapsed}] {message}" if message else f"[{elapsed}]"

    def start(self) -> None:
        """Start the worker thread."""
        if self.running:
            return
        self._stop_event.clear()
        self._started_at = self._clock()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="psmodfix-ticker",
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the worker to stop and restore the display."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(self._join_timeout)
            if self._thread.is_alive():
                logger.debug("Ticker did not stop within %.1fs", self._join_timeout)
            self._thread = None
        if self._on_stop is not None:
            self._on_stop()

    def _run(self) -> None:
        while True:
            try:
                self._render(self.text())
            except Exception:  # noqa: BLE001 - display errors must not reach the main flow
                logger.debug("Ticker render failed", exc_info=True)
                return
            if self._stop_event.wait(self._interval):
                return

    def __enter__(self) -> "ElapsedTicker":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
