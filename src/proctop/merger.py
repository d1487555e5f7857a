"""Join the process listing with per-pid metrics."""

from collections.abc import Iterable

from proctop.metrics import MetricsSource
from proctop.models import ProcessRecord, RawProcessEntry


def join(entries: Iterable[RawProcessEntry], metrics: MetricsSource) -> list[ProcessRecord]:
    """
    Combine raw entries with their metrics into records.

    Entries the metrics source does not know are left out. If a pid appears
    more than once, the last entry wins but keeps the position of the first.
    """
    by_pid: dict[int, RawProcessEntry] = {}
    for entry in entries:
        by_pid[entry.pid] = entry

    records: list[ProcessRecord] = []
    for pid, entry in by_pid.items():
        found = metrics.lookup(pid)
        if found is None:
            continue
        records.append(
            ProcessRecord(
                pid=pid,
                parent_pid=entry.parent_pid,
                name=entry.name,
                thread_count=entry.thread_count,
                cpu_usage=found.cpu_usage,
                memory_bytes=found.memory_bytes,
            )
        )
    return records
