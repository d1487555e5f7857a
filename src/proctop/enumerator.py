"""Process table enumeration for proctop."""

from collections.abc import Callable, Iterator
from contextlib import closing
from typing import Any

import psutil

from proctop.models import RawProcessEntry

ProcessIter = Callable[..., Iterator[Any]]

_ATTRS = ["pid", "ppid", "name", "num_threads"]


class EnumerationError(Exception):
    """Base class for process table enumeration failures."""


class SnapshotUnavailable(EnumerationError):
    """The process table could not be opened for this tick."""


def decode_name(raw: bytes | str | None) -> str:
    """Decode a fixed-width executable name buffer.

    The buffer is cut at the first NUL. Undecodable bytes are replaced rather
    than raising.
    """
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")
    return raw.split("\0", 1)[0]


class ProcessEnumerator:
    """
    Produces point-in-time listings of the OS process table.

    The listing is psutil's process iterator, opened once per snapshot and
    closed on every exit path.
    """

    def __init__(self, process_iter: ProcessIter = psutil.process_iter) -> None:
        """
        Initialize the ProcessEnumerator.

        Args:
            process_iter: Factory returning an iterator of processes whose
                ``info`` dict holds the requested attributes.
        """
        self._process_iter = process_iter

    def snapshot(self) -> list[RawProcessEntry]:
        """
        Walk the process table once.

        Raises:
            SnapshotUnavailable: If the table cannot be opened or read.
        """
        try:
            listing = self._process_iter(attrs=_ATTRS)
        except (OSError, psutil.Error) as exc:
            raise SnapshotUnavailable(f"cannot open process table: {exc}") from exc

        entries: list[RawProcessEntry] = []
        with closing(listing):
            try:
                for proc in listing:
                    entry = self._to_entry(proc)
                    if entry is not None:
                        entries.append(entry)
            except (OSError, psutil.Error) as exc:
                raise SnapshotUnavailable(f"process table walk failed: {exc}") from exc

        return entries

    @staticmethod
    def _to_entry(proc: Any) -> RawProcessEntry | None:
        """Build an entry from a process, or None if it vanished mid-walk."""
        try:
            info = proc.info
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            return None

        pid = info.get("pid")
        if pid is None:
            return None

        return RawProcessEntry(
            pid=pid,
            parent_pid=info.get("ppid") or 0,
            name=decode_name(info.get("name")),
            thread_count=info.get("num_threads") or 0,
        )
