"""cputop - Full-screen Textual front-end."""

import sys
from enum import Enum
from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.css.query import NoMatches
from textual.widgets import DataTable, Footer, Static

from cputop.models import CpuUsage, CycleReport, RankedProcess
from cputop.monitor import BackgroundMonitor, CpuMonitor
from cputop.reader import SnapshotReader
from cputop.report import format_usage


class SortKey(Enum):
    """Sort keys for the process table."""

    LOAD = "load"
    PID = "pid"


def usage_bar(percent: float, color: str = "green", width: int = 20) -> str:
    """Render a percentage as a fixed-width bar in Textual markup."""
    bar_len = min(int(percent / (100 / width)), width)
    return f"[{color}]" + "█" * bar_len + f"[/{color}]" + "[dim]" + "░" * (width - bar_len) + "[/dim]"


class HeaderStats(Static):
    """Header widget showing aggregate and per-core usage."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 5;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._usage: CpuUsage | None = None
        self._cores: list[float] = []
        self._process_count: int = 0

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_total_info(), id="total-info"),
            Static(self._get_core_info(), id="core-info"),
        )

    def update_stats(self, report: CycleReport) -> None:
        """Update the statistics from a cycle report."""
        self._usage = report.usage
        self._cores = report.cores
        self._process_count = report.process_count
        self._refresh_display()

    def _refresh_display(self) -> None:
        """Refresh the display with current data."""
        try:
            total_info = self.query_one("#total-info", Static)
            core_info = self.query_one("#core-info", Static)
        except NoMatches:
            return  # Widget not mounted yet
        total_info.update(self._get_total_info())
        core_info.update(self._get_core_info())

    def _get_total_info(self) -> str:
        """Get aggregate usage display."""
        if self._usage is None:
            return "Sampling CPU counters..."
        usage = self._usage
        return (
            f"CPU \\[{usage_bar(usage.percent, 'cyan')}] {usage.percent:5.1f}%\n"
            f"{format_usage(usage)}\n"
            f"{self._process_count} processes"
        )

    def _get_core_info(self) -> str:
        """Get per-core usage display."""
        if not self._cores:
            return ""
        return "\n".join(
            f"cpu{i:<2} \\[{usage_bar(percent)}] {percent:5.1f}%"
            for i, percent in enumerate(self._cores)
        )


class ProcessTable(Container):
    """Container for the ranked process table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._current_pids: list[int] = []
        self._sort_key: SortKey = SortKey.LOAD

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key and return it."""
        keys = list(SortKey)
        current_index = keys.index(self._sort_key)
        self._sort_key = keys[(current_index + 1) % len(keys)]
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=7)
        table.add_column("PR", key="priority", width=4)
        table.add_column("NI", key="nice", width=4)
        table.add_column("S", key="state", width=3)
        table.add_column("CPU%", key="cpu", width=7)
        table.add_column("CNT", key="load", width=6)
        table.add_column("Command", key="command")

    def update_processes(self, processes: list[RankedProcess]) -> None:
        """
        Replace the table rows with a new ranking.

        Rows are rebuilt each cycle because the ranking order changes.
        """
        table = self.query_one("#process-table", DataTable)
        table.clear()

        ordered = self._sort_processes(processes)
        for proc in ordered:
            table.add_row(
                str(proc.pid),
                proc.priority_label,
                str(proc.nice),
                proc.state,
                f"{proc.percent:5.1f}",
                str(proc.load),
                proc.comm,
                key=str(proc.pid),
            )
        self._current_pids = [proc.pid for proc in ordered]

    def _sort_processes(self, processes: list[RankedProcess]) -> list[RankedProcess]:
        """Sort processes based on the current sort key."""
        if self._sort_key is SortKey.PID:
            return sorted(processes, key=lambda p: p.pid)
        return sorted(processes, key=lambda p: (-p.load, p.pid))


class CputopApp(App):
    """Main cputop application."""

    TITLE = "cputop"
    SUB_TITLE = "CPU usage and top processes"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 6;
    }

    Horizontal {
        height: auto;
    }

    #total-info {
        width: 1fr;
        padding-right: 2;
    }

    #core-info {
        width: 1fr;
        padding-left: 2;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
    ]

    def __init__(self, monitor: CpuMonitor | None = None) -> None:
        """
        Initialize the CputopApp.

        Args:
            monitor: Sampler to display. Defaults to one over /proc.
        """
        super().__init__()
        if monitor is None:
            monitor = CpuMonitor(SnapshotReader(with_processes=True))
        self._update_queue: Queue[CycleReport] = Queue()
        self._monitor = BackgroundMonitor(self._update_queue, monitor)
        self._last_report: CycleReport | None = None

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the background monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue and show the most recent report."""
        report = None
        while True:
            try:
                report = self._update_queue.get_nowait()
            except Empty:
                break

        if report is not None:
            self._update_ui(report)

        if self._monitor.error is not None:
            self._monitor.stop()
            self.exit(return_code=1, message=f"cputop: {self._monitor.error}")

    def _update_ui(self, report: CycleReport) -> None:
        """Update the UI with a new cycle report."""
        self._last_report = report
        self.query_one("#header-stats", HeaderStats).update_stats(report)
        self.query_one(ProcessTable).update_processes(report.processes or [])

    def action_sort(self) -> None:
        """Cycle the table sort key and redraw the last ranking."""
        process_table = self.query_one(ProcessTable)
        new_sort_key = process_table.cycle_sort()
        if self._last_report is not None:
            process_table.update_processes(self._last_report.processes or [])
        self.notify(f"Sort: {new_sort_key.value.upper()}")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def main() -> None:
    """Entry point for the cputop-tui application."""
    app = CputopApp()
    app.run()
    sys.exit(app.return_code or 0)


if __name__ == "__main__":
    main()
