"""The sample, aggregate, rank and render refresh loop."""

import signal
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Protocol

import structlog

from proctop.config import LoopConfig
from proctop.errors import InputPollFailure, RenderFailure
from proctop.models import KeyEvent, RankedReport
from proctop.monitor import SnapshotSource, take_snapshot
from proctop.ranking import build_report

log = structlog.get_logger()


class LoopState(Enum):
    """Lifecycle of a refresh loop."""

    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class RenderSink(Protocol):
    """Display surface driven by the refresh loop."""

    def __enter__(self) -> "RenderSink": ...

    def __exit__(self, exc_type, exc, tb) -> bool | None: ...

    def render(self, report: RankedReport) -> None: ...

    def poll_input(self, timeout: float) -> KeyEvent | None: ...


class RefreshLoop:
    """
    Drives one snapshot, aggregation, ranking and render per tick.

    Ticks are strictly sequential and share nothing but the configuration
    and the loop state. stop() is the only writer of the state while the
    loop runs, and it is read between ticks and between input polls.
    """

    def __init__(
        self,
        config: LoopConfig,
        source: SnapshotSource,
        sink: RenderSink,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._source = source
        self._sink = sink
        self._clock = clock
        self._sleep = sleep
        self._state = LoopState.RUNNING
        self._ticks = 0

    @property
    def config(self) -> LoopConfig:
        """Configuration the loop was created with."""
        return self._config

    @property
    def state(self) -> LoopState:
        """Current lifecycle state."""
        return self._state

    @property
    def ticks(self) -> int:
        """Number of completed ticks."""
        return self._ticks

    @property
    def running(self) -> bool:
        """True until stop() or close() is called."""
        return self._state is LoopState.RUNNING

    def stop(self) -> None:
        """Request the loop to stop after the current tick."""
        if self._state is LoopState.RUNNING:
            self._state = LoopState.STOPPING
            log.info("loop_stopping", ticks=self._ticks)

    def close(self) -> None:
        """Mark the loop as finished."""
        if self._state is not LoopState.STOPPED:
            self._state = LoopState.STOPPED
            log.info("loop_stopped", ticks=self._ticks)

    def tick(self, config: LoopConfig | None = None) -> RankedReport:
        """
        Run one full sample, aggregate, rank and render cycle.

        Either the whole report is rendered or an exception propagates;
        nothing is retained for the next tick.
        """
        config = config or self._config
        warming_up = not self._source.cpu_primed
        samples = take_snapshot(self._source, config.snapshot_timeout)
        report = build_report(
            samples,
            metric=config.metric,
            top_n=config.top_n,
            cpu_warming_up=warming_up,
        )

        try:
            self._sink.render(report)
        except RenderFailure:
            raise
        except OSError as exc:
            raise RenderFailure(f"Cannot draw report: {exc}") from exc

        self._ticks += 1
        log.debug(
            "tick_complete",
            tick=self._ticks,
            processes=len(samples),
            entries=len(report),
            warming_up=warming_up,
        )
        return report

    def run(self) -> None:
        """
        Tick every interval until a quit key or stop() is seen.

        The sink is held for the whole run and released exactly once on
        every exit path. Fatal errors propagate after the release.
        """
        log.info(
            "loop_started",
            interval=self._config.interval,
            top_n=self._config.top_n,
            metric=self._config.metric.value,
        )
        try:
            with self._sink:
                while self._state is LoopState.RUNNING:
                    started = self._clock()
                    self.tick()
                    self._wait_for_input(started + self._config.interval)
        finally:
            self.close()

    def _wait_for_input(self, deadline: float) -> None:
        """Poll for a quit key in bounded slices until the next tick is due."""
        while self._state is LoopState.RUNNING:
            remaining = deadline - self._clock()
            if remaining <= 0:
                return
            try:
                event = self._sink.poll_input(min(self._config.poll_timeout, remaining))
            except InputPollFailure as exc:
                log.warning("input_poll_failed", error=str(exc))
                self._sleep(max(0.0, deadline - self._clock()))
                return
            if event is not None and event.is_quit:
                log.info("quit_key_pressed", key=event.key)
                self.stop()


@contextmanager
def stop_on_signals(
    loop: RefreshLoop,
    signals: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM),
) -> Iterator[None]:
    """Route termination signals to loop.stop() for the duration of the block."""
    previous = {}

    def handler(signum, frame) -> None:
        log.info("signal_received", signal=signal.Signals(signum).name)
        loop.stop()

    for sig in signals:
        previous[sig] = signal.signal(sig, handler)
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)
