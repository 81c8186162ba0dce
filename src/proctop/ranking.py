"""Aggregation and ranking of process samples."""

import math
from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping

from proctop.errors import InvalidMetric
from proctop.models import AggregateEntry, Metric, ProcessSample, RankedReport

BYTES_PER_MB = 1024.0 * 1024.0


def _check_sample(sample: ProcessSample) -> None:
    """Reject samples whose values cannot be summed and ordered."""
    if sample.memory_bytes < 0:
        raise InvalidMetric(
            f"Negative memory for {sample.name!r} (pid {sample.pid}): {sample.memory_bytes}"
        )
    if not math.isfinite(sample.cpu_percent) or sample.cpu_percent < 0:
        raise InvalidMetric(
            f"Invalid CPU usage for {sample.name!r} (pid {sample.pid}): {sample.cpu_percent}"
        )


def aggregate(samples: Iterable[ProcessSample]) -> dict[str, AggregateEntry]:
    """
    Group samples by exact process name and sum their usage.

    Every name present in the input gets exactly one entry, including
    processes that use no memory or CPU. Names are not normalized, so
    unrelated processes sharing a name are reported as one row.
    """
    memory: defaultdict[str, float] = defaultdict(float)
    cpu: defaultdict[str, float] = defaultdict(float)
    counts: Counter[str] = Counter()

    for sample in samples:
        _check_sample(sample)
        memory[sample.name] += sample.memory_bytes / BYTES_PER_MB
        cpu[sample.name] += sample.cpu_percent
        counts[sample.name] += 1

    return {
        name: AggregateEntry(
            name=name,
            memory_mb=memory[name],
            cpu_percent=cpu[name],
            process_count=count,
        )
        for name, count in counts.items()
    }


def rank(
    aggregates: Mapping[str, AggregateEntry],
    metric: Metric = Metric.MEMORY,
    top_n: int = 10,
) -> list[AggregateEntry]:
    """
    Order aggregates by metric descending and keep the first top_n.

    Equal values are ordered by name ascending so the result never depends
    on input order.
    """
    if top_n < 1:
        raise ValueError(f"top_n must be at least 1, got {top_n}")

    for entry in aggregates.values():
        if math.isnan(entry.value(metric)):
            raise InvalidMetric(f"{metric.value} of {entry.name!r} is not a number")

    ordered = sorted(aggregates.values(), key=lambda e: (-e.value(metric), e.name))
    return ordered[:top_n]


def build_report(
    samples: Iterable[ProcessSample],
    metric: Metric = Metric.MEMORY,
    top_n: int = 10,
    cpu_warming_up: bool = False,
) -> RankedReport:
    """Aggregate and rank one snapshot."""
    entries = rank(aggregate(samples), metric=metric, top_n=top_n)
    return RankedReport(entries=tuple(entries), metric=metric, cpu_warming_up=cpu_warming_up)
