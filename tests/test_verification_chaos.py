"""Verification Test: Chaos Monkey - Random process termination resilience.

Randomly terminate dummy processes while snapshots are being taken and
ensure enumeration never fails because a process vanished mid-read.
"""

import multiprocessing
import random
import time

import psutil

from proctop.config import LoopConfig
from proctop.loop import RefreshLoop
from proctop.models import KeyEvent, RankedReport
from proctop.monitor import PsutilSnapshotSource
from proctop.ranking import build_report


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


class CollectingSink:
    """Sink that keeps every report and never quits."""

    def __init__(self) -> None:
        self.reports: list[RankedReport] = []

    def __enter__(self) -> "CollectingSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False

    def render(self, report: RankedReport) -> None:
        self.reports.append(report)

    def poll_input(self, timeout: float) -> KeyEvent | None:
        return None


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_snapshots_survive_process_termination(self):
        """
        Ticks keep completing while processes die between and during snapshots.
        """
        processes = []
        for _ in range(30):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        sink = CollectingSink()
        loop = RefreshLoop(LoopConfig(top_n=20), PsutilSnapshotSource(), sink)

        try:
            loop.tick()

            to_kill = random.sample(processes, 15)
            for p in to_kill:
                p.terminate()
                loop.tick()

            assert len(sink.reports) == 16
            for report in sink.reports:
                assert 0 < len(report) <= 20
        finally:
            for p in processes:
                if p.is_alive():
                    p.terminate()
            for p in processes:
                p.join(timeout=1.0)

    def test_rapid_process_churn(self):
        """
        Snapshots stay valid while processes are rapidly created and destroyed.
        """
        source = PsutilSnapshotSource()
        processes = []
        snapshots = 0

        try:
            start_time = time.time()
            while time.time() - start_time < 2.0:
                for _ in range(5):
                    p = multiprocessing.Process(target=dummy_worker, args=(10.0,))
                    p.start()
                    processes.append(p)

                alive = [p for p in processes if p.is_alive()]
                if len(alive) > 10:
                    for p in random.sample(alive, 3):
                        p.terminate()

                report = build_report(source.snapshot(), top_n=10)
                assert len(report) > 0
                snapshots += 1

            assert snapshots >= 3
        finally:
            for p in processes:
                if p.is_alive():
                    p.terminate()
            for p in processes:
                p.join(timeout=0.5)

    def test_terminated_process_is_not_sampled(self):
        """A process that has exited and been reaped is absent from the next snapshot."""
        p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
        p.start()
        time.sleep(0.1)
        p.terminate()
        p.join(timeout=1.0)

        samples = PsutilSnapshotSource().snapshot()

        assert p.pid not in {s.pid for s in samples}

    def test_zombie_process_handling(self):
        """Zombies (exited, not yet reaped) never break a snapshot."""
        p = multiprocessing.Process(target=dummy_worker, args=(0.0,))
        p.start()

        try:
            # Let the child exit without reaping it
            deadline = time.time() + 5.0
            while time.time() < deadline:
                try:
                    if psutil.Process(p.pid).status() == psutil.STATUS_ZOMBIE:
                        break
                except psutil.NoSuchProcess:
                    break
                time.sleep(0.05)

            samples = PsutilSnapshotSource().snapshot()
            assert len(samples) > 0
        finally:
            p.join(timeout=1.0)
