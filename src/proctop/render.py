"""Plain-text rendering of ranked reports."""

import sys
from typing import TextIO

from proctop.errors import RenderFailure
from proctop.models import AggregateEntry, KeyEvent, RankedReport
from proctop.monitor import call_with_timeout
from proctop.terminal import KeyReader

# Clear screen, clear scrollback, cursor home
CLEAR_SCREEN = "\x1b[2J\x1b[3J\x1b[H"


def format_memory(memory_mb: float) -> str:
    """Format megabytes as shown in every report."""
    return f"{memory_mb:.2f} MB"


def format_cpu(cpu_percent: float) -> str:
    """Format a CPU percentage as shown in every report."""
    return f"{cpu_percent:.2f} %"


def format_row(entry: AggregateEntry, show_cpu: bool = True) -> str:
    """Format one report line."""
    row = f"{entry.name}\t\t{format_memory(entry.memory_mb)}"
    if show_cpu:
        row += f"\t{format_cpu(entry.cpu_percent)}"
    return row


def format_report(report: RankedReport, show_cpu: bool = True) -> str:
    """Format a report as a header line followed by one line per entry."""
    header = "Name\t\tMemory"
    if show_cpu:
        header += "\tCPU (warming up)" if report.cpu_warming_up else "\tCPU"
    lines = [header]
    lines.extend(format_row(entry, show_cpu) for entry in report)
    return "\n".join(lines)


def chart_series(report: RankedReport) -> list[tuple[str, float]]:
    """Return (name, value) bars for the report's ranking metric, in ranked order."""
    return [(entry.name, entry.value(report.metric)) for entry in report]


class TextSink:
    """
    Writes each report to a text stream, clearing the screen first.

    Keyboard input comes from a KeyReader, which holds the terminal in
    cbreak mode while the sink is entered.
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        keys: KeyReader | None = None,
        show_cpu: bool = True,
        render_timeout: float = 5.0,
    ) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._keys = keys if keys is not None else KeyReader()
        self._show_cpu = show_cpu
        self._render_timeout = render_timeout

    def __enter__(self) -> "TextSink":
        self._keys.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return self._keys.__exit__(exc_type, exc, tb)

    def render(self, report: RankedReport) -> None:
        """Clear the screen and write the report."""
        text = CLEAR_SCREEN + format_report(report, self._show_cpu) + "\n"
        try:
            call_with_timeout(lambda: self._write(text), self._render_timeout, name="TextSink")
        except TimeoutError as exc:
            raise RenderFailure(f"Writing the report timed out after {self._render_timeout}s") from exc
        except (OSError, ValueError) as exc:
            # ValueError: write to a closed stream
            raise RenderFailure(f"Cannot write report: {exc}") from exc

    def _write(self, text: str) -> None:
        self._stream.write(text)
        self._stream.flush()

    def poll_input(self, timeout: float) -> KeyEvent | None:
        return self._keys.read(timeout)
