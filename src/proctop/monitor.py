"""Process snapshot sources for proctop."""

import threading
from collections.abc import Callable, Sequence
from typing import Protocol, TypeVar

import psutil
import structlog

from proctop.errors import SnapshotFailure
from proctop.models import ProcessSample

log = structlog.get_logger()

T = TypeVar("T")


class SnapshotSource(Protocol):
    """Anything that can enumerate the live processes of the host."""

    @property
    def cpu_primed(self) -> bool:
        """False while CPU readings are not yet meaningful."""
        ...

    def snapshot(self) -> list[ProcessSample]:
        """Return one sample per live process."""
        ...


class PsutilSnapshotSource:
    """
    Snapshot source backed by psutil.

    psutil measures per-process CPU as a delta between two calls, so every
    process reads 0.0 the first time it is seen. cpu_primed stays False
    until the first snapshot has completed.
    """

    ATTRS = ["pid", "name", "memory_info", "cpu_percent"]

    def __init__(self) -> None:
        """Initialize the source. No processes are read until snapshot()."""
        self._snapshots_taken = 0

    @property
    def cpu_primed(self) -> bool:
        return self._snapshots_taken > 0

    def snapshot(self) -> list[ProcessSample]:
        """
        Enumerate every live process.

        Processes that exit, turn into zombies or deny access while being
        read are skipped. Failing to enumerate at all raises SnapshotFailure.
        """
        samples: list[ProcessSample] = []
        skipped = 0

        try:
            for proc in psutil.process_iter(attrs=self.ATTRS):
                try:
                    with proc.oneshot():
                        info = proc.info

                        # Attributes that raised AccessDenied come back as None
                        mem_info = info.get("memory_info")
                        samples.append(
                            ProcessSample(
                                pid=info.get("pid", proc.pid),
                                name=info.get("name") or "",
                                memory_bytes=mem_info.rss if mem_info else 0,
                                cpu_percent=info.get("cpu_percent") or 0.0,
                            )
                        )
                except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                    skipped += 1
                    continue
        except (psutil.Error, OSError) as exc:
            raise SnapshotFailure(f"Cannot enumerate processes: {exc}") from exc

        self._snapshots_taken += 1
        log.debug("snapshot_taken", processes=len(samples), skipped=skipped)
        return samples


class StaticSnapshotSource:
    """
    In-memory snapshot source that replays fixed frames.

    Each call returns the next frame; the last frame repeats once the
    frames run out.
    """

    def __init__(
        self,
        frames: Sequence[Sequence[ProcessSample]] = ((),),
        cpu_primed: bool = True,
    ) -> None:
        if not frames:
            raise ValueError("StaticSnapshotSource requires at least one frame")
        self._frames = [list(frame) for frame in frames]
        self._cpu_primed = cpu_primed
        self.calls = 0

    @property
    def cpu_primed(self) -> bool:
        return self._cpu_primed

    def snapshot(self) -> list[ProcessSample]:
        frame = self._frames[min(self.calls, len(self._frames) - 1)]
        self.calls += 1
        return list(frame)


def call_with_timeout(func: Callable[[], T], timeout: float, name: str) -> T:
    """
    Run func on a daemon thread and wait at most timeout seconds for it.

    Raises TimeoutError if func has not returned in time; the thread is
    abandoned. Exceptions raised by func are re-raised in the caller.
    """
    outcome: dict[str, object] = {}

    def target() -> None:
        try:
            outcome["value"] = func()
        except BaseException as exc:  # noqa: BLE001 - re-raised in the caller
            outcome["error"] = exc

    thread = threading.Thread(target=target, daemon=True, name=name)
    thread.start()
    thread.join(timeout=timeout)

    if thread.is_alive():
        raise TimeoutError(f"{name} did not finish within {timeout}s")
    if "error" in outcome:
        raise outcome["error"]  # type: ignore[misc]
    return outcome["value"]  # type: ignore[return-value]


def take_snapshot(source: SnapshotSource, timeout: float) -> list[ProcessSample]:
    """Take one snapshot, converting hangs and platform errors into SnapshotFailure."""
    try:
        return call_with_timeout(source.snapshot, timeout, name="SnapshotSource")
    except SnapshotFailure:
        raise
    except TimeoutError as exc:
        raise SnapshotFailure(f"Snapshot timed out after {timeout}s") from exc
    except (psutil.Error, OSError) as exc:
        raise SnapshotFailure(f"Cannot enumerate processes: {exc}") from exc
