"""Live terminal dashboard: CPU gauges, network and disk history, top processes.

A single loop alternates between input events and a fixed 300 ms tick.
Every tick converts the provider's cumulative counters into rates, pushes
them into the history series, and repaints the widgets whose content changed.

Usage:
    sysdash
    sysdash --config path/to/config.toml --log-file /tmp/sysdash.log
"""

from __future__ import annotations

import argparse
import curses
import enum
import logging
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from sysdash.config import TICK_INTERVAL, ConfigError, dump_default_config, load_config
from sysdash.events import Event, Quit, Resize
from sysdash.gauges import GaugeSet
from sysdash.history import SeriesPair
from sysdash.layout import Layout, compute_layout, history_capacity
from sysdash.processes import ProcessSnapshot, column_widths, inner_width, table_rows
from sysdash.provider import CollectionError, PsutilProvider
from sysdash.rates import DiskCounters, NetCounters, disk_rates, fmt_bytes, network_rates
from sysdash.surface import (
    C_BLUE,
    C_CRITICAL,
    C_NORMAL,
    C_TITLE,
    CursesSurface,
    Gauge,
    Paragraph,
    Plot,
    SurfaceError,
    Table,
    Widget,
)

logger = logging.getLogger(__name__)

FOOTER_TEXT = "Press q to quit"
PROCESS_ERROR_ROW = ["Error getting processes"]


class State(enum.Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    RESIZING = "resizing"
    TERMINATED = "terminated"


# ── Text builders ──────────────────────────────────────────────────────────


def header_text(provider: Any, core_count: int, disk_path: str) -> str:
    """One-line host summary; failing facts degrade to ``n/a``."""
    try:
        host = provider.host_facts()
    except CollectionError as e:
        logger.warning("header: %s", e)
        return "Error getting system information"

    try:
        mem = provider.memory_facts()
        ram = f"RAM: {fmt_bytes(mem.used)} / {fmt_bytes(mem.total)} ({mem.used_percent:.1f}%)"
    except CollectionError as e:
        logger.warning("header: %s", e)
        ram = "RAM: n/a"

    try:
        du = provider.disk_usage(disk_path)
        disk = (
            f"Disk: {fmt_bytes(du.free)} free / {fmt_bytes(du.total)} total "
            f"({100 - du.used_percent:.1f}% free)"
        )
    except CollectionError as e:
        logger.warning("header: %s", e)
        disk = "Disk: n/a"

    return (
        f"Host: {host.hostname} | OS: {host.platform} {host.platform_version} | "
        f"{core_count} cores | {ram} | {disk}"
    )


def network_text(rx: float, tx: float, counters: NetCounters) -> str:
    return (
        f"In:  {rx:8.2f} Mbps  Out: {tx:8.2f} Mbps  "
        f"Total In: {fmt_bytes(counters.bytes_recv)}  "
        f"Total Out: {fmt_bytes(counters.bytes_sent)}"
    )


def disk_text(per_device: dict[str, tuple[float, float]]) -> str:
    return "\n".join(
        f"{name} Read: {read:.2f} MB/s Write: {write:.2f} MB/s"
        for name, (read, write) in per_device.items()
    )


# ── Dashboard session ──────────────────────────────────────────────────────


class Dashboard:
    """All state the sampling loop mutates, plus the per-tick pipeline.

    Args:
        provider: Source of metric readings (see :class:`PsutilProvider`).
        surface: Anything with ``render(*widgets)`` and ``clear()``.
        width: Initial terminal width.
        height: Initial terminal height.
        config: Merged configuration dict.
        clock: Monotonic time source, in seconds.
    """

    def __init__(
        self,
        provider: Any,
        surface: Any,
        width: int,
        height: int,
        config: dict[str, Any],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.surface = surface
        self.clock = clock
        self.state = State.INITIALIZING
        self.animation_speed: float = config["animation_speed"]
        self.min_history: int = config["min_history"]
        self.disk_path: str = config["disk_path"]
        self.max_processes: int = config["max_processes"]

        try:
            core_count = provider.cpu_core_count()
        except CollectionError as e:
            logger.warning("core count unavailable, assuming 1: %s", e)
            core_count = 1

        self.gauges = GaugeSet(core_count)
        self.layout: Layout = compute_layout(width, height, core_count)
        capacity = history_capacity(width, self.min_history)
        self.net = SeriesPair(capacity)
        self.disk = SeriesPair(capacity)

        self.prev_net: NetCounters | None = None
        self.prev_disk: dict[str, DiskCounters] | None = None
        self.prev_disk_time = 0.0

        self.header = ""
        self.net_text = ""
        self.disk_text = ""
        self.net_rates = (0.0, 0.0)
        self.disk_totals = (0.0, 0.0)
        self.processes: list[ProcessSnapshot] | None = None
        self.process_rows: list[list[str]] = []

    @property
    def running(self) -> bool:
        return self.state is not State.TERMINATED

    # ── Lifecycle ──────────────────────────────────────────────────────────

    def start(self) -> None:
        """Record counter baselines and paint the initial screen."""
        self._sample_network(baseline=True)
        self._sample_disk(baseline=True)
        self.header = header_text(self.provider, self.gauges.core_count, self.disk_path)
        self._refresh_processes()
        self.redraw()
        self.state = State.RUNNING

    def handle(self, event: Event) -> None:
        """Apply an input event; a terminated session ignores everything."""
        if self.state is State.TERMINATED:
            return
        match event:
            case Quit():
                self.state = State.TERMINATED
            case Resize(width=width, height=height):
                self.resize(width, height)

    def resize(self, width: int, height: int) -> None:
        """Recompute geometry and grow history so plots span the new width.

        The session returns to the state it was in before the resize.
        """
        resumed, self.state = self.state, State.RESIZING
        self.layout = compute_layout(width, height, self.gauges.core_count)
        capacity = history_capacity(width, self.min_history)
        if self.net.grow(capacity):
            logger.debug("network history grown to %d", capacity)
        if self.disk.grow(capacity):
            logger.debug("disk history grown to %d", capacity)
        self._refresh_processes(collect=False)
        self.redraw()
        self.state = resumed

    def redraw(self) -> None:
        """Clear the surface and paint every widget."""
        self.surface.clear()
        self.surface.render(*self.all_widgets())

    # ── Per-tick pipeline ──────────────────────────────────────────────────

    def tick(self) -> None:
        if self.state is not State.RUNNING:
            return
        self._refresh_cpu()
        self.gauges.animate(self.animation_speed)
        self.surface.render(*self.gauge_widgets())

        if self._sample_network():
            self.surface.render(self.net_plot_widget())
        if self._sample_disk():
            self.surface.render(self.disk_plot_widget())

        self._refresh_processes()
        self.surface.render(self.process_widget())

    def _refresh_cpu(self) -> None:
        try:
            readings = self.provider.cpu_percent_per_core()
            self.gauges.set_targets(readings)
        except (CollectionError, ValueError) as e:
            logger.warning("cpu: %s", e)

    def _sample_network(self, baseline: bool = False) -> bool:
        """Fold a new network reading in; True when the history moved."""
        try:
            counters = self.provider.network_counters()
        except CollectionError as e:
            logger.warning("network: %s", e)
            return False

        prev, self.prev_net = self.prev_net, counters
        if baseline or prev is None:
            return False

        rx, tx = network_rates(prev, counters)
        self.net_rates = (rx, tx)
        text = network_text(rx, tx, counters)
        if text != self.net_text:
            self.net_text = text
            self.surface.render(self.net_stats_widget())
        self.net.push(rx, tx)
        return True

    def _sample_disk(self, baseline: bool = False) -> bool:
        """Fold a new disk reading in; True when the history moved."""
        now = self.clock()
        try:
            counters = self.provider.disk_counters()
        except CollectionError as e:
            logger.warning("disk: %s", e)
            return False

        prev, elapsed = self.prev_disk, now - self.prev_disk_time
        self.prev_disk, self.prev_disk_time = counters, now
        if baseline or prev is None:
            return False

        per_device = disk_rates(prev, counters, elapsed)
        read = sum(r for r, _ in per_device.values())
        write = sum(w for _, w in per_device.values())
        self.disk_totals = (read, write)
        text = disk_text(per_device)
        if text != self.disk_text:
            self.disk_text = text
            self.surface.render(self.disk_stats_widget())
        self.disk.push(read, write)
        return True

    def _refresh_processes(self, collect: bool = True) -> None:
        """Re-rank the process table; with *collect* False only re-fit the last snapshot."""
        if collect:
            try:
                self.processes = self.provider.processes()
            except CollectionError as e:
                logger.warning("processes: %s", e)
                self.processes = None
        if self.processes is None:
            self.process_rows = [PROCESS_ERROR_ROW]
            return
        self.process_rows = table_rows(
            self.processes, self.layout.processes.width, self.max_processes
        )

    # ── Widget descriptors ─────────────────────────────────────────────────

    def gauge_widgets(self) -> list[Widget]:
        return [
            Gauge(rect, g.title, g.percent, g.band)
            for g, rect in zip(self.gauges.gauges, self.layout.gauges)
        ]

    def net_stats_widget(self) -> Paragraph:
        return Paragraph(self.layout.net_stats, self.net_text, title="Network Traffic")

    def net_plot_widget(self) -> Plot:
        rx, tx = self.net_rates
        scale = self.net.scale.current_max
        return Plot(
            self.layout.net_plot,
            f"Network Traffic History (last ~{self.net.capacity // 2} seconds)"
            f" - Max: {scale:.1f} Mbps",
            (self.net.first.values, self.net.second.values),
            (f"In ({rx:.1f} Mbps)", f"Out ({tx:.1f} Mbps)"),
            (C_NORMAL, C_BLUE),
            scale,
        )

    def disk_stats_widget(self) -> Paragraph:
        return Paragraph(self.layout.disk_stats, self.disk_text, title="Disk I/O")

    def disk_plot_widget(self) -> Plot:
        read, write = self.disk_totals
        scale = self.disk.scale.current_max
        return Plot(
            self.layout.disk_plot,
            f"Disk I/O History (last ~{self.disk.capacity // 2} seconds)"
            f" - Max: {scale:.2f} MB/s",
            (self.disk.first.values, self.disk.second.values),
            (f"Read ({read:.2f} MB/s)", f"Write ({write:.2f} MB/s)"),
            (C_NORMAL, C_CRITICAL),
            scale,
        )

    def process_widget(self) -> Table:
        return Table(
            self.layout.processes,
            "Top Processes",
            self.process_rows,
            column_widths(inner_width(self.layout.processes.width)),
        )

    def all_widgets(self) -> list[Widget]:
        layout = self.layout
        widgets: list[Widget] = [
            Paragraph(layout.header, self.header, title="sysdash", color=C_TITLE),
            Paragraph(
                layout.cpu_title,
                f"CPU Utilization ({self.gauges.core_count} cores)",
                border=False,
            ),
        ]
        widgets.extend(self.gauge_widgets())
        widgets.extend(
            [
                self.net_stats_widget(),
                self.net_plot_widget(),
                self.disk_stats_widget(),
                self.disk_plot_widget(),
                self.process_widget(),
                Paragraph(layout.footer, FOOTER_TEXT, border=False, color=C_CRITICAL),
            ]
        )
        return widgets


# ── Main loop ──────────────────────────────────────────────────────────────


def run(dashboard: Dashboard, events: Any, interval: float = TICK_INTERVAL) -> None:
    """Drive *dashboard* until a quit event.

    *events* must provide ``poll_event(timeout)`` returning an event or None
    once *timeout* seconds pass without input.
    """
    clock = dashboard.clock
    dashboard.start()
    next_tick = clock() + interval
    while dashboard.running:
        event = events.poll_event(max(0.0, next_tick - clock()))
        if event is not None:
            dashboard.handle(event)
            if not dashboard.running:
                break
        if clock() >= next_tick:
            dashboard.tick()
            next_tick = clock() + interval


def _dashboard_loop(stdscr: curses.window, config: dict[str, Any]) -> None:
    surface = CursesSurface(stdscr)
    width, height = surface.size()
    dashboard = Dashboard(PsutilProvider(), surface, width, height, config)
    run(dashboard, surface)


def configure_logging(log_file: str | None, level: str) -> None:
    """Send log records to *log_file*, or discard them when it is empty.

    The terminal belongs to curses, so nothing is ever written to stderr.
    """
    root = logging.getLogger("sysdash")
    root.setLevel(level.upper())
    if log_file:
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    else:
        handler = logging.NullHandler()
    root.addHandler(handler)


# ── CLI entry point ────────────────────────────────────────────────────────


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Live terminal dashboard for CPU, network, disk and processes.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        metavar="PATH",
        help="Write log messages to this file (default: no logging)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: from config, else WARNING)",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    args = parser.parse_args()

    if args.dump_config:
        print(dump_default_config(), end="")
        return

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"sysdash: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    try:
        configure_logging(
            args.log_file or config["logging"].get("file") or None,
            args.log_level or config["logging"].get("level", "WARNING"),
        )
    except OSError as e:
        print(f"sysdash: cannot open log file: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    try:
        curses.wrapper(_dashboard_loop, config)
    except (curses.error, SurfaceError) as e:
        print(f"sysdash: cannot initialize terminal: {e}", file=sys.stderr)
        raise SystemExit(1) from e
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
