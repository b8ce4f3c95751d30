"""Smoothed CPU gauges."""

from __future__ import annotations

from dataclasses import dataclass

from sysdash.config import CRITICAL_PERCENT, WARNING_PERCENT

SNAP_THRESHOLD = 0.5

# Severity bands
NOMINAL = "nominal"
WARNING = "warning"
CRITICAL = "critical"


def severity(percent: int | float) -> str:
    if percent >= CRITICAL_PERCENT:
        return CRITICAL
    if percent >= WARNING_PERCENT:
        return WARNING
    return NOMINAL


def _clamp_percent(value: float) -> float:
    return min(100.0, max(0.0, value))


@dataclass
class GaugeState:
    """Displayed value easing toward the latest reading."""

    title: str
    current: float = 0.0
    target: float = 0.0

    def set_target(self, value: float) -> None:
        self.target = _clamp_percent(value)

    def step(self, speed: float) -> float:
        """Move ``current`` a fraction *speed* of the way toward ``target``.

        Once within ``SNAP_THRESHOLD`` the value lands exactly on the target.
        """
        diff = self.target - self.current
        if abs(diff) < SNAP_THRESHOLD:
            self.current = self.target
        else:
            self.current += diff * speed
        return self.current

    @property
    def percent(self) -> int:
        return int(self.current)

    @property
    def band(self) -> str:
        return severity(self.percent)


class GaugeSet:
    """Average gauge at index 0 followed by one gauge per core."""

    def __init__(self, core_count: int) -> None:
        self.gauges: list[GaugeState] = [GaugeState("Avg CPU")]
        self.gauges.extend(GaugeState(f"CPU {i + 1}") for i in range(core_count))

    def __len__(self) -> int:
        return len(self.gauges)

    def __getitem__(self, index: int) -> GaugeState:
        return self.gauges[index]

    @property
    def core_count(self) -> int:
        return len(self.gauges) - 1

    def set_targets(self, per_core: list[float]) -> None:
        """Point every gauge at the new readings.

        Raises:
            ValueError: If *per_core* is empty.
        """
        if not per_core:
            raise ValueError("no per-core CPU readings")
        self.gauges[0].set_target(sum(per_core) / len(per_core))
        for gauge, value in zip(self.gauges[1:], per_core):
            gauge.set_target(value)

    def animate(self, speed: float) -> None:
        for gauge in self.gauges:
            gauge.step(speed)
