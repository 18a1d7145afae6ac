"""Time-based vesting curves for locked tokens and shares.

All fractions here are *locked* fractions: 1 means fully locked, 0 means
fully vested. Callers derive vested quantities from the complement.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .constants import (
    DEFAULT_CHART_PADDING_DAYS,
    DEFAULT_CHART_SAMPLES,
    SECONDS_PER_DAY,
)
from .units import parse_timestamp, precise

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)


@dataclass(frozen=True)
class VestingWindow:
    """Interval [start, end] in unix seconds over which a lock releases."""

    start: int
    end: int

    @classmethod
    def parse(
        cls, start: str | int | None, end: str | int | None
    ) -> "VestingWindow":
        return cls(
            start=parse_timestamp(start, "vesting_start"),
            end=parse_timestamp(end, "vesting_end"),
        )

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def is_well_formed(self) -> bool:
        return self.end > self.start


@dataclass(frozen=True)
class VestingPoint:
    timestamp: int
    vested_amount: Decimal


def _clamp(value: Decimal) -> Decimal:
    if value < ZERO:
        return ZERO
    if value > ONE:
        return ONE
    return value


def vesting_fraction(window: VestingWindow, now: int) -> Decimal:
    """Locked fraction of a quantity vesting over ``window`` at ``now``.

    Returns 1 at or before the start, 0 at or after the end, and decays
    linearly in between.
    """
    if now <= window.start:
        return ONE
    if now >= window.end:
        return ZERO
    with precise():
        locked = Decimal(window.end - now) / Decimal(window.end - window.start)
    return _clamp(locked)


def vested_fraction(window: VestingWindow, now: int) -> Decimal:
    with precise():
        return ONE - vesting_fraction(window, now)


def vested_amount(total: Decimal, window: VestingWindow, now: int) -> Decimal:
    """Portion of ``total`` already released at ``now``."""
    with precise():
        return total * vested_fraction(window, now)


def position_vesting_fraction(
    window: VestingWindow, created_at: int, now: int
) -> Decimal:
    """Locked fraction for a single position opened at ``created_at``.

    A position opened after the window start vests from its own creation
    time, so it is not credited with progress made before it existed.
    """
    if now < window.start:
        return ONE
    if now > window.end:
        return ZERO

    effective_start = max(created_at, window.start)
    duration = window.end - effective_start
    if duration <= 0:
        return ZERO

    elapsed = now - effective_start
    with precise():
        locked = Decimal(duration - elapsed) / Decimal(duration)
    return _clamp(locked)


def vesting_progress(locked_fraction: Decimal) -> Decimal:
    """Percentage vested for a given locked fraction."""
    with precise():
        return (ONE - locked_fraction) * HUNDRED


def vesting_schedule(
    window: VestingWindow,
    total_locked: Decimal,
    samples: int = DEFAULT_CHART_SAMPLES,
    padding_days: int = DEFAULT_CHART_PADDING_DAYS,
) -> list[VestingPoint]:
    """Sample the vested amount of ``total_locked`` across the window.

    Points are evenly spaced from ``padding_days`` before the start to
    ``padding_days`` after the end, both ends included, ascending.

    Raises:
        ValueError: If fewer than two samples are requested.
    """
    if samples < 2:
        raise ValueError(f"samples must be at least 2, got {samples}")

    padding = padding_days * SECONDS_PER_DAY
    chart_start = window.start - padding
    chart_end = window.end + padding
    span = max(chart_end - chart_start, 0)
    intervals = samples - 1

    points: list[VestingPoint] = []
    for i in range(samples):
        timestamp = chart_start + span * i // intervals
        points.append(
            VestingPoint(
                timestamp=timestamp,
                vested_amount=vested_amount(total_locked, window, timestamp),
            )
        )
    return points
