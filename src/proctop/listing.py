"""One-shot process listing without metrics."""

import sys

from rich.console import Console
from rich.table import Table

from proctop.enumerator import ProcessEnumerator, SnapshotUnavailable
from proctop.models import RawProcessEntry


def build_table(entries: list[RawProcessEntry]) -> Table:
    """Lay out raw entries in enumeration order."""
    table = Table(box=None, header_style="bold")
    table.add_column("PID", justify="right", width=8)
    table.add_column("Process Name", width=30, no_wrap=True)
    table.add_column("PPID", justify="right", width=8)
    table.add_column("Threads", justify="right", width=8)
    for entry in entries:
        table.add_row(
            str(entry.pid),
            entry.name,
            str(entry.parent_pid),
            str(entry.thread_count),
        )
    return table


def main(enumerator: ProcessEnumerator | None = None, console: Console | None = None) -> int:
    """Print one snapshot of the process table. Returns the exit status."""
    enumerator = enumerator or ProcessEnumerator()
    console = console or Console()
    try:
        entries = enumerator.snapshot()
    except SnapshotUnavailable as exc:
        Console(stderr=True).print(f"[bold red]Failed to create process snapshot:[/] {exc}")
        return 1

    console.print(build_table(entries))
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())
