"""proctop - Main Textual application."""

import sys
from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.css.query import NoMatches
from textual.widgets import DataTable, Footer, Static
from textual.widgets.data_table import CellDoesNotExist

from proctop import logging as proctop_logging
from proctop.config import Config
from proctop.enumerator import ProcessEnumerator
from proctop.metrics import MetricsSource
from proctop.models import COLUMNS, Frame, SortKey
from proctop.monitor import TICK_INTERVAL, RenderLoop


class StatusBar(Static):
    """One-line summary of the current frame."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface;
    }
    """

    summary: str = ""

    def show_frame(self, frame: Frame) -> None:
        """Update the summary from a frame."""
        text = (
            f"Sort: [b]{frame.sort_key.value.upper()}[/b]  "
            f"Processes: {len(frame.records)}  "
            f"Tick: {frame.tick}"
        )
        if frame.stale:
            text += "  [yellow](stale)[/yellow]"
        self.summary = text
        self.update(text)


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
        border-title-align: left;
    }
    """

    def __init__(self, *args, name_max_width: int = 50, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._name_max_width = name_max_width
        self._sort_key: SortKey | None = None
        self._current_pids: set[int] = set()

    @property
    def sort_key(self) -> SortKey | None:
        """Sort key of the frame currently shown."""
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        self.border_title = "Process Manager"
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"
        self._add_columns(table, SortKey.CPU)

    def show_frame(self, frame: Frame) -> None:
        """
        Show a frame's rows in frame order.

        Rows are reconciled by pid: vanished processes are removed, known ones
        are updated with update_cell and new ones are appended, then the table
        is reordered in place. The cursor stays on the process it was on and
        the scroll offset is left alone unless the sort key changed.
        """
        table = self.query_one("#process-table", DataTable)
        selected = self._selected_row_key(table)

        resorted = frame.sort_key is not self._sort_key
        if resorted:
            self._add_columns(table, frame.sort_key)
            self._current_pids = set()

        new_pids = {rec.pid for rec in frame.records}

        # Remove rows for processes that no longer exist
        for pid in self._current_pids - new_pids:
            table.remove_row(str(pid))

        for rec, row in zip(frame.records, frame.rows):
            row_key = str(rec.pid)
            if rec.pid in self._current_pids:
                self._update_row(table, row_key, row)
            else:
                table.add_row(*self._cells(row), key=row_key)

        self._current_pids = new_pids

        wanted = [str(rec.pid) for rec in frame.records]
        if [row.key.value for row in table.ordered_rows] != wanted:
            position = {pid: index for index, pid in enumerate(wanted)}
            table.sort("pid", key=position.__getitem__)

        if selected is not None and selected in table.rows:
            table.move_cursor(row=table.get_row_index(selected), scroll=resorted)

    def _cells(self, row: tuple[str, str, str, str, str]) -> tuple[str, ...]:
        pid, name, cpu, memory, threads = row
        return pid, name[: self._name_max_width], cpu, memory, threads

    def _update_row(self, table: DataTable, row_key: str, row: tuple[str, str, str, str, str]) -> None:
        """Update an existing row using update_cell for performance."""
        for column, value in zip(COLUMNS, self._cells(row)):
            table.update_cell(row_key, column.title.lower(), value)

    @staticmethod
    def _selected_row_key(table: DataTable) -> str | None:
        """Row key (pid) under the cursor, if any."""
        if table.row_count == 0:
            return None
        try:
            return table.coordinate_to_cell_key(table.cursor_coordinate).row_key.value
        except CellDoesNotExist:
            return None

    def _add_columns(self, table: DataTable, sort_key: SortKey) -> None:
        """Recreate the columns, marking the one that matches the sort key."""
        table.clear(columns=True)
        for column in COLUMNS:
            label = column.title
            if column.sort_key is sort_key:
                label += " ▼" if sort_key in (SortKey.CPU, SortKey.MEMORY) else " ▲"
            table.add_column(label, key=column.title.lower(), width=column.width)
        self._sort_key = sort_key


class ProctopApp(App):
    """Main proctop application."""

    TITLE = "proctop"
    SUB_TITLE = "Process Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }
    """

    BINDINGS = [
        ("q", "send_key('q')", "Quit"),
        ("c", "send_key('c')", "CPU"),
        ("m", "send_key('m')", "Memory"),
        ("p", "send_key('p')", "PID"),
        ("n", "send_key('n')", "Name"),
    ]

    def __init__(
        self,
        config: Config | None = None,
        enumerator: ProcessEnumerator | None = None,
        metrics: MetricsSource | None = None,
    ) -> None:
        """Initialize the ProctopApp."""
        super().__init__()
        self._config = config or Config()
        self._frames: Queue[Frame] = Queue()
        self._render_loop = RenderLoop(self._frames.put, enumerator=enumerator, metrics=metrics)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield StatusBar("Loading processes...", id="status-bar")
        yield ProcessTable(name_max_width=self._config.display.name_max_width)
        yield Footer()

    def on_mount(self) -> None:
        """Start the render loop when the app is mounted."""
        self._render_loop.start()
        self.set_interval(TICK_INTERVAL, self._check_for_updates)

    def on_unmount(self) -> None:
        """Stop the render loop thread on the way out."""
        self._render_loop.stop()

    def _check_for_updates(self) -> None:
        """Show the newest frame and exit once the loop has terminated."""
        frame = None
        while True:
            try:
                frame = self._frames.get_nowait()
            except Empty:
                break

        if frame is not None:
            self._update_ui(frame)

        if not self._render_loop.is_running:
            if self._render_loop.error is not None:
                self.exit(return_code=1, message=f"proctop: {self._render_loop.error}")
            else:
                self.exit()

    def _update_ui(self, frame: Frame) -> None:
        """Update the widgets with a new frame."""
        try:
            self.query_one("#status-bar", StatusBar).show_frame(frame)
            self.query_one(ProcessTable).show_frame(frame)
        except NoMatches:
            pass  # Widgets not mounted yet, or already torn down

    def action_send_key(self, key: str) -> None:
        """Forward a key press to the render loop."""
        self._render_loop.send_key(key)


def main() -> None:
    """Entry point for proctop."""
    config = Config.load()
    proctop_logging.configure(config)
    app = ProctopApp(config)
    app.run()
    sys.exit(app.return_code or 0)


if __name__ == "__main__":
    main()
