"""Data models for proctop."""

from dataclasses import dataclass
from enum import Enum

QUIT_KEYS = frozenset({"q", "Q"})


class Metric(Enum):
    """Metrics the ranked report can be ordered by."""

    MEMORY = "memory"
    CPU = "cpu"


@dataclass(slots=True, frozen=True)
class ProcessSample:
    """Immutable sample of one process, taken during a single snapshot."""

    pid: int
    name: str
    memory_bytes: int  # Resident set size
    cpu_percent: float  # 0.0 - 100.0 * core_count


@dataclass(slots=True, frozen=True)
class AggregateEntry:
    """Resource totals of every process sharing one name."""

    name: str
    memory_mb: float
    cpu_percent: float
    process_count: int = 1

    def value(self, metric: Metric) -> float:
        """Return this entry's value for the given ranking metric."""
        if metric is Metric.CPU:
            return self.cpu_percent
        return self.memory_mb


@dataclass(slots=True, frozen=True)
class RankedReport:
    """Top-N aggregate entries of one tick, ordered by metric descending."""

    entries: tuple[AggregateEntry, ...]
    metric: Metric = Metric.MEMORY
    cpu_warming_up: bool = False

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @property
    def names(self) -> list[str]:
        """Names of the ranked entries, in order."""
        return [entry.name for entry in self.entries]


@dataclass(slots=True, frozen=True)
class KeyEvent:
    """A single key press read from the terminal."""

    key: str

    @property
    def is_quit(self) -> bool:
        return self.key in QUIT_KEYS
