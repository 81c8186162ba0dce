"""proctop - Interactive Textual application."""

import asyncio
import signal
from contextlib import suppress
from dataclasses import replace

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.timer import Timer
from textual.widgets import DataTable, Footer, Static

from proctop.config import LoopConfig
from proctop.errors import ProctopError
from proctop.loop import RefreshLoop
from proctop.models import KeyEvent, Metric, RankedReport
from proctop.monitor import SnapshotSource
from proctop.render import chart_series, format_cpu, format_memory

BAR_WIDTH = 40
TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def format_bar(value: float, peak: float, width: int = BAR_WIDTH) -> str:
    """Render value as a bar scaled against peak."""
    if peak <= 0:
        bar_len = 0
    else:
        bar_len = min(width, round(value / peak * width))
    return "[cyan]█[/cyan]" * bar_len + "[dim]░[/dim]" * (width - bar_len)


class UsageChart(Static):
    """Horizontal bar chart of the ranked entries."""

    DEFAULT_CSS = """
    UsageChart {
        height: 1fr;
        padding: 0 1;
        border: solid $secondary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize UsageChart."""
        super().__init__("Loading...", *args, **kwargs)
        self._series: list[tuple[str, float]] = []
        self._metric: Metric = Metric.MEMORY

    @property
    def series(self) -> list[tuple[str, float]]:
        """(name, value) pairs currently drawn, largest first."""
        return list(self._series)

    def update_series(self, series: list[tuple[str, float]], metric: Metric) -> None:
        """Redraw the chart from a (name, value) series."""
        self._series = series
        self._metric = metric
        self.border_title = "Memory Usage Chart" if metric is Metric.MEMORY else "CPU Usage Chart"
        self.update(self._get_chart())

    def _get_chart(self) -> str:
        if not self._series:
            return "No processes"
        peak = max(value for _, value in self._series)
        label_width = min(24, max(len(name) for name, _ in self._series))
        fmt = format_memory if self._metric is Metric.MEMORY else format_cpu
        lines = []
        for name, value in self._series:
            label = name[:label_width].ljust(label_width).replace("[", "\\[")
            lines.append(f"{label} {format_bar(value, peak)} {fmt(value)}")
        return "\n".join(lines)


class ReportTable(Container):
    """Container for the ranked report table."""

    DEFAULT_CSS = """
    ReportTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ReportTable."""
        super().__init__(*args, **kwargs)
        self._names: list[str] = []

    @property
    def names(self) -> list[str]:
        """Names currently shown, top to bottom."""
        return list(self._names)

    def compose(self) -> ComposeResult:
        """Compose the report table."""
        yield DataTable(id="report-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        self.border_title = "Memory Usage"
        table = self.query_one("#report-table", DataTable)
        table.cursor_type = "row"

        table.add_column("Name", key="name", width=28)
        table.add_column("Procs", key="count", width=6)
        table.add_column("Memory", key="memory", width=14)
        table.add_column("CPU", key="cpu", width=12)

    def update_report(self, report: RankedReport, show_cpu: bool = True) -> None:
        """
        Replace the table contents with a new report.

        Rows are rebuilt every tick since ranks move between ticks.
        """
        table = self.query_one("#report-table", DataTable)
        table.clear()

        for entry in report:
            if not show_cpu:
                cpu = ""
            elif report.cpu_warming_up:
                cpu = "warming up"
            else:
                cpu = format_cpu(entry.cpu_percent)
            table.add_row(
                Text(entry.name),
                str(entry.process_count),
                format_memory(entry.memory_mb),
                cpu,
                key=entry.name,
            )

        self._names = report.names
        self.border_title = "Memory Usage" if report.metric is Metric.MEMORY else "CPU Usage"


class ReportView:
    """
    Render sink that draws reports into the app's widgets.

    Ticks are driven by the app's set_interval timer, so only render() is
    reached; the context manager and poll_input() complete the sink protocol.
    """

    def __init__(self, app: "ProctopApp") -> None:
        self._app = app

    def __enter__(self) -> "ReportView":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False

    def render(self, report: RankedReport) -> None:
        self._app.show_report(report)

    def poll_input(self, timeout: float) -> KeyEvent | None:
        # Key presses arrive as Textual bindings
        return None


class ProctopApp(App):
    """Main proctop application."""

    TITLE = "proctop"
    SUB_TITLE = "Process Resource Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("s", "cycle_metric", "Sort"),
    ]

    def __init__(self, config: LoopConfig, source: SnapshotSource) -> None:
        """Initialize the ProctopApp."""
        super().__init__()
        self._loop_config = config
        self._refresh_loop = RefreshLoop(config, source, ReportView(self))
        self._tick_timer: Timer | None = None
        self.fatal_error: ProctopError | None = None

    @property
    def loop_config(self) -> LoopConfig:
        """Configuration used for the next tick."""
        return self._loop_config

    @property
    def refresh_loop(self) -> RefreshLoop:
        """Loop that runs each tick."""
        return self._refresh_loop

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield ReportTable()
        yield UsageChart(id="usage-chart")
        yield Footer()

    def on_mount(self) -> None:
        """Start ticking once the widgets exist."""
        loop = asyncio.get_running_loop()
        for signum in TERMINATION_SIGNALS:
            with suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(signum, self.action_quit)
        self.call_after_refresh(self._run_tick)
        self._tick_timer = self.set_interval(self._loop_config.interval, self._run_tick)

    def on_unmount(self) -> None:
        """Release the loop when the app shuts down."""
        loop = asyncio.get_running_loop()
        for signum in TERMINATION_SIGNALS:
            with suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(signum)
        self._refresh_loop.close()

    def _run_tick(self) -> None:
        """Run one tick; a fatal error ends the app with a non-zero code."""
        if not self._refresh_loop.running:
            return
        try:
            self._refresh_loop.tick(self._loop_config)
        except ProctopError as exc:
            self.fatal_error = exc
            self._refresh_loop.stop()
            if self._tick_timer is not None:
                self._tick_timer.stop()
            self.exit(return_code=1)

    def show_report(self, report: RankedReport) -> None:
        """Draw a report into the table and the chart."""
        self.query_one(ReportTable).update_report(report, show_cpu=self._loop_config.show_cpu)
        self.query_one("#usage-chart", UsageChart).update_series(chart_series(report), report.metric)
        self.sub_title = f"Top {self._loop_config.top_n} by {report.metric.value}"

    def action_cycle_metric(self) -> None:
        """Switch to the next ranking metric and redraw immediately."""
        metrics = list(Metric)
        next_metric = metrics[(metrics.index(self._loop_config.metric) + 1) % len(metrics)]
        self._loop_config = replace(self._loop_config, metric=next_metric)
        self.notify(f"Sort: {next_metric.value.upper()}")
        self._run_tick()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._refresh_loop.stop()
        if self._tick_timer is not None:
            self._tick_timer.stop()
        self.exit()
