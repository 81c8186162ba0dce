"""Tests for plain-text rendering."""

import io

import pytest

from proctop.errors import RenderFailure
from proctop.models import AggregateEntry, Metric, RankedReport
from proctop.ranking import build_report
from proctop.render import (
    CLEAR_SCREEN,
    TextSink,
    chart_series,
    format_cpu,
    format_memory,
    format_report,
    format_row,
)
from proctop.terminal import KeyReader


@pytest.fixture
def report(example_samples) -> RankedReport:
    return build_report(example_samples, Metric.MEMORY, top_n=10)


def test_format_memory():
    assert format_memory(3.0) == "3.00 MB"
    assert format_memory(1234.5678) == "1234.57 MB"


def test_format_cpu():
    assert format_cpu(5.0) == "5.00 %"
    assert format_cpu(0.125) == "0.12 %"


def test_format_row_example(report):
    """Rows are tab separated: name, memory, CPU."""
    assert format_row(report.entries[0]) == "x\t\t3.00 MB\t5.00 %"
    assert format_row(report.entries[1]) == "y\t\t1.00 MB\t1.00 %"


def test_format_row_without_cpu(report):
    assert format_row(report.entries[0], show_cpu=False) == "x\t\t3.00 MB"


def test_format_report(report):
    assert format_report(report).splitlines() == [
        "Name\t\tMemory\tCPU",
        "x\t\t3.00 MB\t5.00 %",
        "y\t\t1.00 MB\t1.00 %",
    ]


def test_format_report_without_cpu(report):
    text = format_report(report, show_cpu=False)
    assert text.splitlines()[0] == "Name\t\tMemory"
    assert "%" not in text


def test_format_report_flags_warm_up():
    report = RankedReport(
        entries=(AggregateEntry(name="x", memory_mb=1.0, cpu_percent=0.0),),
        cpu_warming_up=True,
    )
    assert format_report(report).splitlines()[0] == "Name\t\tMemory\tCPU (warming up)"


def test_format_empty_report():
    assert format_report(RankedReport(entries=())) == "Name\t\tMemory\tCPU"


class TestChartSeries:
    """Tests for chart_series()."""

    def test_memory_series(self, report):
        assert chart_series(report) == [("x", pytest.approx(3.0)), ("y", pytest.approx(1.0))]

    def test_cpu_series(self, example_samples):
        report = build_report(example_samples, Metric.CPU, top_n=10)
        assert chart_series(report) == [("x", pytest.approx(5.0)), ("y", pytest.approx(1.0))]

    def test_empty(self):
        assert chart_series(RankedReport(entries=())) == []


class TestTextSink:
    """Tests for TextSink."""

    def test_render_clears_then_prints(self, report):
        stream = io.StringIO()
        sink = TextSink(stream=stream, keys=KeyReader(io.StringIO()))

        with sink:
            sink.render(report)
            sink.render(report)

        output = stream.getvalue()
        assert output.startswith(CLEAR_SCREEN)
        assert output.count(CLEAR_SCREEN) == 2
        assert "x\t\t3.00 MB\t5.00 %\n" in output

    def test_render_respects_show_cpu(self, report):
        stream = io.StringIO()
        sink = TextSink(stream=stream, keys=KeyReader(io.StringIO()), show_cpu=False)

        sink.render(report)

        assert "x\t\t3.00 MB\n" in stream.getvalue()

    def test_closed_stream_raises_render_failure(self, report):
        stream = io.StringIO()
        stream.close()
        sink = TextSink(stream=stream, keys=KeyReader(io.StringIO()))

        with pytest.raises(RenderFailure, match="Cannot write report"):
            sink.render(report)

    def test_broken_pipe_raises_render_failure(self, report):
        class BrokenStream(io.StringIO):
            def write(self, text):
                raise BrokenPipeError("Broken pipe")

        sink = TextSink(stream=BrokenStream(), keys=KeyReader(io.StringIO()))

        with pytest.raises(RenderFailure):
            sink.render(report)

    def test_poll_input_without_terminal(self):
        """Without a terminal, polling just waits out the timeout."""
        sink = TextSink(stream=io.StringIO(), keys=KeyReader(io.StringIO()))

        with sink:
            assert sink.poll_input(0.01) is None
