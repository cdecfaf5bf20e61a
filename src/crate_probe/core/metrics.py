"""Single-line metric records for external measurement harnesses."""

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum


class MetricsMode(StrEnum):
    ENABLED = "enabled"
    DISABLED = "disabled"

    @classmethod
    def from_flag(cls, enabled: bool) -> "MetricsMode":
        return cls.ENABLED if enabled else cls.DISABLED


def format_metric(metric: str, value: int, unit: str) -> str:
    return f"METRIC:{metric}:{value}:{unit}"


def report_metric(
    metric: str,
    value: int,
    unit: str,
    *,
    mode: MetricsMode,
    emit: Callable[[str], None] = print,
) -> None:
    if mode is not MetricsMode.ENABLED:
        return
    emit(format_metric(metric, value, unit))


@dataclass
class Stopwatch:
    started: float
    elapsed_ms: int = 0


@contextmanager
def stopwatch() -> Iterator[Stopwatch]:
    """Measure the wall time of the ``with`` body in whole milliseconds."""
    watch = Stopwatch(started=time.perf_counter())
    try:
        yield watch
    finally:
        watch.elapsed_ms = int((time.perf_counter() - watch.started) * 1000)
