"""Shared fixtures for proctop tests."""

import pytest

from proctop.errors import InputPollFailure
from proctop.models import KeyEvent, ProcessSample, RankedReport


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSink:
    """
    Render sink that records reports and simulates key presses.

    Each poll advances the fake clock by the requested timeout. Once
    quit_after reports have been rendered, the next poll returns 'q'.
    """

    def __init__(
        self,
        clock: FakeClock,
        quit_after: int | None = None,
        poll_failures: int = 0,
        render_error: Exception | None = None,
    ) -> None:
        self.clock = clock
        self.quit_after = quit_after
        self.poll_failures = poll_failures
        self.render_error = render_error
        self.reports: list[RankedReport] = []
        self.poll_timeouts: list[float] = []
        self.enter_count = 0
        self.exit_count = 0

    def __enter__(self) -> "FakeSink":
        self.enter_count += 1
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.exit_count += 1
        return False

    def render(self, report: RankedReport) -> None:
        if self.render_error is not None:
            raise self.render_error
        self.reports.append(report)

    def poll_input(self, timeout: float) -> KeyEvent | None:
        self.poll_timeouts.append(timeout)
        if self.poll_failures > 0:
            self.poll_failures -= 1
            raise InputPollFailure("stdin went away")
        if self.quit_after is not None and len(self.reports) >= self.quit_after:
            return KeyEvent(key="q")
        self.clock.advance(timeout)
        return None


@pytest.fixture
def example_samples() -> list[ProcessSample]:
    """Three processes, two of them sharing the name 'x'."""
    return [
        ProcessSample(pid=1, name="x", memory_bytes=1048576, cpu_percent=2.0),
        ProcessSample(pid=2, name="x", memory_bytes=2097152, cpu_percent=3.0),
        ProcessSample(pid=3, name="y", memory_bytes=1048576, cpu_percent=1.0),
    ]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_sink(clock):
    """Factory for FakeSink instances sharing the test's clock."""

    def factory(**kwargs) -> FakeSink:
        return FakeSink(clock, **kwargs)

    return factory
