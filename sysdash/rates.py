"""Counter-to-rate conversion and unit formatting."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class NetCounters:
    """Cumulative network byte counters at a point in time."""

    bytes_recv: int
    bytes_sent: int
    timestamp: float


@dataclass(frozen=True)
class DiskCounters:
    """Cumulative byte counters for one disk device."""

    read_bytes: int
    write_bytes: int


def rate(previous: float, current: float, elapsed: float) -> float:
    """Per-second rate between two cumulative counter readings.

    Returns 0.0 when *elapsed* is not positive (stalled or stepped clock).
    Counter wraps and resets also yield 0.0 rather than a negative rate.
    """
    if elapsed <= 0:
        return 0.0
    return max(0.0, (current - previous) / elapsed)


def to_mbps(bytes_per_sec: float) -> float:
    """Bytes per second to megabits per second (decimal)."""
    return bytes_per_sec * 8 / 1_000_000


def to_mbytes(bytes_per_sec: float) -> float:
    """Bytes per second to MB/s (binary)."""
    return bytes_per_sec / 1024 / 1024


def network_rates(prev: NetCounters, curr: NetCounters) -> tuple[float, float]:
    """Return (rx, tx) in Mbps between two network snapshots."""
    elapsed = curr.timestamp - prev.timestamp
    rx = rate(prev.bytes_recv, curr.bytes_recv, elapsed)
    tx = rate(prev.bytes_sent, curr.bytes_sent, elapsed)
    return to_mbps(rx), to_mbps(tx)


def disk_rates(
    prev: dict[str, DiskCounters],
    curr: dict[str, DiskCounters],
    elapsed: float,
) -> dict[str, tuple[float, float]]:
    """Per-device (read, write) MB/s for devices present in both snapshots."""
    result: dict[str, tuple[float, float]] = {}
    for name in sorted(curr):
        before = prev.get(name)
        if before is None:
            continue
        now = curr[name]
        read = to_mbytes(rate(before.read_bytes, now.read_bytes, elapsed))
        write = to_mbytes(rate(before.write_bytes, now.write_bytes, elapsed))
        result[name] = (read, write)
    return result


def fmt_bytes(n: int | float) -> str:
    """Human-readable byte count (binary prefixes, one decimal)."""
    if n < 1024:
        return f"{int(n)} B"
    v = float(n)
    for unit in "KMGTP":
        v /= 1024
        if v < 1024:
            return f"{v:.1f} {unit}B"
    return f"{v / 1024:.1f} EB"
