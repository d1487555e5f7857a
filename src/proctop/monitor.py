"""Sampling and presentation loop for proctop."""

import dataclasses
import threading
from collections.abc import Callable
from enum import Enum
from queue import Empty, Queue

import structlog

from proctop.enumerator import EnumerationError, ProcessEnumerator
from proctop.merger import join
from proctop.metrics import MetricsProvider, MetricsSource
from proctop.models import Frame, SortKey
from proctop.sorter import order

log = structlog.get_logger()

# Seconds the loop waits for a key between ticks
TICK_INTERVAL = 0.25

QUIT_KEY = "q"

SORT_KEYS: dict[str, SortKey] = {
    "c": SortKey.CPU,
    "m": SortKey.MEMORY,
    "p": SortKey.PID,
    "n": SortKey.NAME,
}

FrameSink = Callable[[Frame], None]


class LoopState(Enum):
    """Lifecycle of the render loop."""

    RUNNING = "running"
    TERMINATED = "terminated"


class RenderLoop:
    """
    Drives the refresh, enumerate, merge, sort, render, poll cycle.

    Each tick refreshes metrics first so CPU deltas are measured against the
    freshest baseline, then builds a Frame and hands it to the sink. The only
    wait is the bounded poll on the key queue.

    The loop can run on the calling thread via run(), or on a daemon thread
    via start()/stop(). Either way, all sampling happens on one thread.
    """

    def __init__(
        self,
        sink: FrameSink,
        enumerator: ProcessEnumerator | None = None,
        metrics: MetricsSource | None = None,
        keys: "Queue[str] | None" = None,
        sort_key: SortKey = SortKey.CPU,
    ) -> None:
        """
        Initialize the RenderLoop.

        Args:
            sink: Called with every frame, once per tick.
            enumerator: Process table source. Defaults to psutil.
            metrics: CPU/memory source. Defaults to a MetricsProvider.
            keys: Queue of single-character key presses.
            sort_key: Initial ordering.
        """
        self._sink = sink
        self._enumerator = enumerator if enumerator is not None else ProcessEnumerator()
        self._metrics = metrics if metrics is not None else MetricsProvider()
        self._keys: Queue[str] = keys if keys is not None else Queue()
        self._sort_key = sort_key
        self._state = LoopState.RUNNING
        self._tick = 0
        self._last_frame: Frame | None = None
        self._thread: threading.Thread | None = None
        self._error: BaseException | None = None

    @property
    def state(self) -> LoopState:
        """Get the current loop state."""
        return self._state

    @property
    def sort_key(self) -> SortKey:
        """Get the active sort key."""
        return self._sort_key

    @property
    def tick_count(self) -> int:
        """Number of ticks run so far."""
        return self._tick

    @property
    def last_frame(self) -> Frame | None:
        """The frame most recently handed to the sink."""
        return self._last_frame

    @property
    def error(self) -> BaseException | None:
        """Exception that ended the background thread, if any."""
        return self._error

    @property
    def is_running(self) -> bool:
        """Check if the loop thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def send_key(self, key: str) -> None:
        """Queue a key press for the next poll."""
        self._keys.put(key)

    def tick(self) -> Frame:
        """Run one sample-and-render step and return the delivered frame."""
        self._tick += 1
        self._metrics.refresh()

        try:
            entries = self._enumerator.snapshot()
        except EnumerationError as exc:
            log.warning("snapshot_unavailable", tick=self._tick, error=str(exc))
            frame = self._stale_frame()
        else:
            records = order(join(entries, self._metrics), self._sort_key)
            frame = Frame(records=tuple(records), sort_key=self._sort_key, tick=self._tick)

        self._last_frame = frame
        self._sink(frame)
        return frame

    def poll(self) -> str | None:
        """Wait up to one tick interval for a key press."""
        try:
            return self._keys.get(timeout=TICK_INTERVAL)
        except Empty:
            return None

    def handle_key(self, key: str) -> None:
        """Apply a key press. Unknown keys are ignored."""
        if key == QUIT_KEY:
            self._state = LoopState.TERMINATED
            return

        sort_key = SORT_KEYS.get(key)
        if sort_key is not None and sort_key is not self._sort_key:
            log.info("sort_key_changed", old=self._sort_key.value, new=sort_key.value)
            self._sort_key = sort_key

    def run(self) -> None:
        """Run ticks on the calling thread until the quit key arrives."""
        log.info("render_loop_started", sort_key=self._sort_key.value)
        while self._state is LoopState.RUNNING:
            self.tick()
            key = self.poll()
            if key is not None:
                self.handle_key(key)
        log.info("render_loop_stopped", ticks=self._tick)

    def start(self) -> None:
        """Start the loop on a daemon thread."""
        if self.is_running:
            return

        self._state = LoopState.RUNNING
        self._error = None
        self._thread = threading.Thread(
            target=self._thread_main,
            daemon=True,
            name="RenderLoop",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the loop thread by sending it the quit key.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        if self._thread is None:
            return
        if self._thread.is_alive():
            self.send_key(QUIT_KEY)
        self._thread.join(timeout=timeout)
        self._thread = None

    def _thread_main(self) -> None:
        try:
            self.run()
        except Exception as exc:
            # Recorded for the UI thread, which exits with an error
            log.exception("render_loop_failed")
            self._error = exc
            self._state = LoopState.TERMINATED

    def _stale_frame(self) -> Frame:
        if self._last_frame is None:
            return Frame(records=(), sort_key=self._sort_key, tick=self._tick, stale=True)
        return dataclasses.replace(self._last_frame, tick=self._tick, stale=True)
