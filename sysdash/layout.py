"""Widget geometry for a given terminal size and core count."""

from __future__ import annotations

from dataclasses import dataclass

from sysdash.config import HISTORY_MINIMUM

HEADER_HEIGHT = 3
GAUGE_HEIGHT = 3
STATS_HEIGHT = 4
PLOT_HEIGHT = 9
CPU_TOP = 7


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class Layout:
    width: int
    height: int
    header: Rect
    cpu_title: Rect
    gauges: list[Rect]
    net_stats: Rect
    net_plot: Rect
    disk_stats: Rect
    disk_plot: Rect
    processes: Rect
    footer: Rect


def history_capacity(width: int, minimum: int = HISTORY_MINIMUM) -> int:
    """Samples to keep so a plot can span the full terminal width."""
    return max(width, minimum)


def gauge_rects(width: int, core_count: int) -> tuple[list[Rect], int]:
    """Average gauge plus per-core gauges in two columns.

    Returns the rectangles (average first) and the y coordinate just below
    the CPU section.
    """
    rects = [Rect(0, CPU_TOP - GAUGE_HEIGHT, width, GAUGE_HEIGHT)]
    column = width // 2
    half = core_count // 2
    for i in range(core_count):
        if i < half:
            x, offset, right = 0, i, column
        else:
            x, offset, right = column, i - half, width
        rects.append(Rect(x, CPU_TOP + offset * GAUGE_HEIGHT, right - x, GAUGE_HEIGHT))
    rows = (core_count + 1) // 2
    return rects, CPU_TOP + rows * GAUGE_HEIGHT


def _clipped(x: int, y: int, width: int, height: int, limit: int) -> Rect:
    """Rect whose bottom edge does not pass *limit*."""
    return Rect(x, y, width, max(0, min(height, limit - y)))


def compute_layout(width: int, height: int, core_count: int) -> Layout:
    """Lay out every widget from scratch for a ``width`` x ``height`` terminal."""
    width = max(width, 0)
    height = max(height, 0)
    footer_y = max(height - 1, 0)

    gauges, cpu_bottom = gauge_rects(width, core_count)
    net_stats = _clipped(0, cpu_bottom, width, STATS_HEIGHT, footer_y)
    net_plot = _clipped(0, cpu_bottom + STATS_HEIGHT, width, PLOT_HEIGHT, footer_y)
    disk_y = cpu_bottom + STATS_HEIGHT + PLOT_HEIGHT
    disk_stats = _clipped(0, disk_y, width, STATS_HEIGHT, footer_y)
    disk_plot = _clipped(0, disk_y + STATS_HEIGHT, width, PLOT_HEIGHT, footer_y)
    proc_y = disk_y + STATS_HEIGHT + PLOT_HEIGHT

    return Layout(
        width=width,
        height=height,
        header=Rect(0, 0, width, min(HEADER_HEIGHT, height)),
        cpu_title=Rect(0, HEADER_HEIGHT, width, 1),
        gauges=gauges,
        net_stats=net_stats,
        net_plot=net_plot,
        disk_stats=disk_stats,
        disk_plot=disk_plot,
        processes=_clipped(0, proc_y, width, footer_y - proc_y, footer_y),
        footer=Rect(0, footer_y, width, 1 if height > 0 else 0),
    )
