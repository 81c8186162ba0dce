"""Runtime configuration for the refresh loop."""

from dataclasses import dataclass

from proctop.models import Metric

MIN_INTERVAL = 0.1  # Seconds


@dataclass(frozen=True)
class LoopConfig:
    """Settings read by the refresh loop. Immutable once the loop starts."""

    interval: float = 1.0  # Seconds between ticks
    top_n: int = 10  # Entries kept in each report
    metric: Metric = Metric.MEMORY
    poll_timeout: float = 0.1  # Longest single wait for a key press
    snapshot_timeout: float = 5.0  # A slower snapshot is treated as hung
    render_timeout: float = 5.0
    show_cpu: bool = True

    def __post_init__(self) -> None:
        if self.interval < MIN_INTERVAL:
            raise ValueError(f"interval must be at least {MIN_INTERVAL}s, got {self.interval}")
        if self.top_n < 1:
            raise ValueError(f"top_n must be at least 1, got {self.top_n}")
        if not isinstance(self.metric, Metric):
            raise ValueError(f"Unknown metric: {self.metric!r}. Valid metrics: {[m.value for m in Metric]}")
        for name in ("poll_timeout", "snapshot_timeout", "render_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
