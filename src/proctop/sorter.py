"""Ordering of process records by the active sort key."""

import math
from collections.abc import Callable, Iterable
from typing import Any

from proctop.models import ProcessRecord, SortKey


def _cpu_key(rec: ProcessRecord) -> tuple[Any, ...]:
    # NaN goes after every number
    if math.isnan(rec.cpu_usage):
        return (1, 0.0, rec.pid)
    return (0, -rec.cpu_usage, rec.pid)


_KEY_FUNCS: dict[SortKey, Callable[[ProcessRecord], Any]] = {
    SortKey.CPU: _cpu_key,
    SortKey.MEMORY: lambda rec: (-rec.memory_bytes, rec.pid),
    SortKey.PID: lambda rec: rec.pid,
    SortKey.NAME: lambda rec: (rec.name, rec.pid),
}


def order(records: Iterable[ProcessRecord], key: SortKey) -> list[ProcessRecord]:
    """
    Return a new list of records sorted by ``key``.

    CPU and memory sort descending, pid and name ascending. Equal keys fall
    back to pid ascending.
    """
    return sorted(records, key=_KEY_FUNCS[key])
