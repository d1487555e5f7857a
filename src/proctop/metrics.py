"""CPU and memory accounting across refresh ticks."""

import time
from collections.abc import Callable
from contextlib import closing
from dataclasses import dataclass
from typing import Protocol

import psutil
import structlog

from proctop.enumerator import ProcessIter
from proctop.models import ProcessMetrics

log = structlog.get_logger()

_ATTRS = ["pid", "cpu_times", "memory_info", "create_time"]


class MetricsSource(Protocol):
    """Anything that can be refreshed once per tick and queried by pid."""

    def refresh(self) -> None: ...

    def lookup(self, pid: int) -> ProcessMetrics | None: ...


@dataclass(slots=True, frozen=True)
class _CpuSample:
    cpu_time: float  # user + system seconds
    create_time: float


class MetricsProvider:
    """
    Tracks per-process CPU-time deltas and resident memory.

    CPU usage is the CPU time consumed since the previous refresh divided by the
    wall-clock time elapsed, as a percentage of one core. A pid has no delta the
    first time it is seen and reports 0.0.

    Only the render loop calls refresh(), so the history is never shared across
    threads.
    """

    def __init__(
        self,
        process_iter: ProcessIter = psutil.process_iter,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the MetricsProvider.

        Args:
            process_iter: Factory returning processes with an ``info`` dict.
            clock: Monotonic wall clock in seconds.
        """
        self._process_iter = process_iter
        self._clock = clock
        self._history: dict[int, _CpuSample] = {}
        self._current: dict[int, ProcessMetrics] = {}
        self._last_refresh: float | None = None

    def refresh(self) -> None:
        """Re-sample every process. Failures leave the previous state in place."""
        now = self._clock()
        elapsed = None if self._last_refresh is None else now - self._last_refresh

        history: dict[int, _CpuSample] = {}
        current: dict[int, ProcessMetrics] = {}
        try:
            with closing(self._process_iter(attrs=_ATTRS)) as listing:
                for proc in listing:
                    sample = self._sample(proc)
                    if sample is None:
                        continue
                    pid, cpu, memory = sample
                    if cpu is not None:
                        history[pid] = cpu
                    current[pid] = ProcessMetrics(
                        cpu_usage=self._cpu_percent(pid, cpu, elapsed),
                        memory_bytes=memory,
                    )
        except (OSError, psutil.Error) as exc:
            log.warning("metrics_refresh_failed", error=str(exc))
            return

        self._history = history
        self._current = current
        self._last_refresh = now

    def lookup(self, pid: int) -> ProcessMetrics | None:
        """Return metrics from the last refresh, or None if the pid is unknown."""
        return self._current.get(pid)

    def _cpu_percent(self, pid: int, sample: _CpuSample | None, elapsed: float | None) -> float:
        if sample is None:
            return 0.0
        previous = self._history.get(pid)
        if previous is None or elapsed is None or elapsed <= 0:
            return 0.0
        # Recycled pid
        if previous.create_time != sample.create_time:
            return 0.0
        delta = sample.cpu_time - previous.cpu_time
        return max(delta, 0.0) / elapsed * 100.0

    @staticmethod
    def _sample(proc) -> tuple[int, _CpuSample | None, int] | None:
        try:
            info = proc.info
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            return None

        pid = info.get("pid")
        if pid is None:
            return None

        mem_info = info.get("memory_info")
        memory_rss = mem_info.rss if mem_info else 0

        # CPU times can be access-denied; such a pid is listed with 0.0 usage
        cpu_times = info.get("cpu_times")
        if cpu_times is None:
            return pid, None, memory_rss

        sample = _CpuSample(
            cpu_time=cpu_times.user + cpu_times.system,
            create_time=info.get("create_time") or 0.0,
        )
        return pid, sample, memory_rss
