"""Data models for proctop."""

from dataclasses import dataclass, field
from enum import Enum

from proctop.formatting import format_bytes, format_cpu


class SortKey(Enum):
    """Sort keys for the process table."""

    CPU = "cpu"
    MEMORY = "memory"
    PID = "pid"
    NAME = "name"


@dataclass(slots=True, frozen=True)
class RawProcessEntry:
    """One row of the OS process table, before metrics are attached."""

    pid: int
    parent_pid: int  # 0 when unknown
    name: str
    thread_count: int


@dataclass(slots=True, frozen=True)
class ProcessMetrics:
    """CPU and memory figures for one pid as of the last refresh."""

    cpu_usage: float  # percent of one core, may exceed 100.0
    memory_bytes: int  # Resident set size


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable per-tick view of a process."""

    pid: int
    parent_pid: int
    name: str
    thread_count: int
    cpu_usage: float
    memory_bytes: int


@dataclass(slots=True, frozen=True)
class Column:
    """A table column. ``width`` of None means the column takes the remaining space."""

    title: str
    width: int | None
    sort_key: SortKey | None = None


COLUMNS: tuple[Column, ...] = (
    Column("PID", 8, SortKey.PID),
    Column("Name", None, SortKey.NAME),
    Column("CPU%", 8, SortKey.CPU),
    Column("Memory", 12, SortKey.MEMORY),
    Column("Threads", 8),
)


@dataclass(slots=True, frozen=True)
class Frame:
    """Everything the renderer needs for one tick."""

    records: tuple[ProcessRecord, ...]
    sort_key: SortKey
    tick: int = 0
    stale: bool = False  # True when re-delivered after a failed enumeration
    columns: tuple[Column, ...] = field(default=COLUMNS)

    @property
    def rows(self) -> list[tuple[str, str, str, str, str]]:
        """Display strings in column order."""
        return [
            (
                str(rec.pid),
                rec.name,
                format_cpu(rec.cpu_usage),
                format_bytes(rec.memory_bytes),
                str(rec.thread_count),
            )
            for rec in self.records
        ]
