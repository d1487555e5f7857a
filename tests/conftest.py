"""Shared test fixtures for proctop."""

from collections import namedtuple

import pytest

from proctop.enumerator import SnapshotUnavailable
from proctop.models import ProcessMetrics, ProcessRecord, RawProcessEntry

CpuTimes = namedtuple("CpuTimes", ["user", "system"])
MemInfo = namedtuple("MemInfo", ["rss", "vms"])


class FakeProcess:
    """Stand-in for psutil.Process as yielded by process_iter(attrs=...)."""

    def __init__(self, info: dict | None = None, error: Exception | None = None) -> None:
        self._info = info or {}
        self._error = error

    @property
    def info(self) -> dict:
        if self._error is not None:
            raise self._error
        return self._info


class FakeProcessIter:
    """Callable mimicking psutil.process_iter over scripted listings.

    Each call consumes the next listing. ``closed`` counts generator closes.
    """

    def __init__(self, *listings: list, fail_at: int | None = None) -> None:
        self._listings = list(listings)
        self.fail_at = fail_at
        self.calls = 0
        self.closed = 0
        self.attrs: list[str] | None = None

    def __call__(self, attrs=None):
        self.attrs = attrs
        listing = self._listings[min(self.calls, len(self._listings) - 1)]
        self.calls += 1
        return self._walk(listing)

    def _walk(self, listing):
        try:
            for i, proc in enumerate(listing):
                if self.fail_at is not None and i == self.fail_at:
                    raise OSError("table went away")
                yield proc
        finally:
            self.closed += 1


class StaticMetrics:
    """Deterministic metrics source."""

    def __init__(self, table: dict[int, ProcessMetrics] | None = None) -> None:
        self.table = dict(table or {})
        self.refresh_count = 0

    def refresh(self) -> None:
        self.refresh_count += 1

    def lookup(self, pid: int) -> ProcessMetrics | None:
        return self.table.get(pid)


class ScriptedEnumerator:
    """Enumerator double that fails on chosen call numbers (1-based)."""

    def __init__(self, entries: list[RawProcessEntry], fail_on: set[int] | None = None) -> None:
        self.entries = entries
        self.fail_on = fail_on or set()
        self.calls = 0

    def snapshot(self) -> list[RawProcessEntry]:
        self.calls += 1
        if self.calls in self.fail_on:
            raise SnapshotUnavailable("simulated")
        return list(self.entries)


def make_record(
    pid: int = 1,
    name: str = "proc",
    cpu: float = 0.0,
    memory: int = 0,
    threads: int = 1,
    parent_pid: int = 0,
) -> ProcessRecord:
    """Create a ProcessRecord for testing."""
    return ProcessRecord(
        pid=pid,
        parent_pid=parent_pid,
        name=name,
        thread_count=threads,
        cpu_usage=cpu,
        memory_bytes=memory,
    )


def make_entry(pid: int = 1, name: str = "proc", parent_pid: int = 0, threads: int = 1) -> RawProcessEntry:
    """Create a RawProcessEntry for testing."""
    return RawProcessEntry(pid=pid, parent_pid=parent_pid, name=name, thread_count=threads)


def metrics_info(pid: int, user: float, system: float = 0.0, rss: int = 0, create_time: float = 1.0) -> dict:
    """Build the info dict MetricsProvider asks psutil for."""
    return {
        "pid": pid,
        "cpu_times": CpuTimes(user, system),
        "memory_info": MemInfo(rss, rss * 2),
        "create_time": create_time,
    }


@pytest.fixture
def sample_entries() -> list[RawProcessEntry]:
    """Three processes a.exe, b.exe, c.exe with pids 1, 2, 3."""
    return [
        make_entry(pid=1, name="a.exe", threads=1),
        make_entry(pid=2, name="b.exe", parent_pid=1, threads=2),
        make_entry(pid=3, name="c.exe", parent_pid=1, threads=3),
    ]


@pytest.fixture
def sample_metrics() -> StaticMetrics:
    """Metrics for pids 1 and 3 only."""
    return StaticMetrics(
        {
            1: ProcessMetrics(cpu_usage=5.0, memory_bytes=1000),
            3: ProcessMetrics(cpu_usage=20.0, memory_bytes=3000),
        }
    )
