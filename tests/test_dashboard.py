"""Tests for the dashboard session and sampling loop, using fakes for I/O."""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Any

import pytest

from sysdash.config import DEFAULT_CONFIG, _deep_merge
from sysdash.dashboard import (
    PROCESS_ERROR_ROW,
    Dashboard,
    State,
    configure_logging,
    disk_text,
    header_text,
    main,
    network_text,
    run,
)
from sysdash.events import Event, Quit, Resize
from sysdash.processes import HEADER, ProcessSnapshot
from sysdash.provider import CollectionError, DiskUsage, HostFacts, MemoryFacts
from sysdash.rates import DiskCounters, NetCounters
from sysdash.surface import Gauge, Paragraph, Plot, Table

MB = 1024 * 1024


# ── Fakes ──────────────────────────────────────────────────────────────────


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeProvider:
    """Scripted readings; queue entries that are exceptions are raised."""

    def __init__(self, cores: int = 2) -> None:
        self.cores = cores
        self.cpu: deque[Any] = deque()
        self.net: deque[Any] = deque()
        self.disk: deque[Any] = deque()
        self.procs: deque[Any] = deque()
        self.cpu_calls = 0

    @staticmethod
    def _next(queue: deque[Any], default: Any) -> Any:
        value = queue.popleft() if queue else default
        if isinstance(value, Exception):
            raise value
        return value

    def cpu_core_count(self) -> int:
        return self.cores

    def cpu_percent_per_core(self) -> list[float]:
        self.cpu_calls += 1
        return self._next(self.cpu, [0.0] * self.cores)

    def network_counters(self) -> NetCounters:
        return self._next(self.net, NetCounters(0, 0, 0.0))

    def disk_counters(self) -> dict[str, DiskCounters]:
        return self._next(self.disk, {})

    def processes(self) -> list[ProcessSnapshot]:
        return self._next(self.procs, [])

    def host_facts(self) -> HostFacts:
        return HostFacts("box", "Linux", "6.8.0")

    def memory_facts(self) -> MemoryFacts:
        return MemoryFacts(used=4 * 1024**3, total=16 * 1024**3, used_percent=25.0)

    def disk_usage(self, path: str) -> DiskUsage:
        return DiskUsage(free=100 * 1024**3, total=400 * 1024**3, used_percent=75.0)


class FakeSurface:
    def __init__(self) -> None:
        self.rendered: list[Any] = []
        self.clears = 0

    def render(self, *widgets: Any) -> None:
        self.rendered.extend(widgets)

    def clear(self) -> None:
        self.clears += 1

    def of_type(self, kind: type) -> list[Any]:
        return [w for w in self.rendered if isinstance(w, kind)]


class FakeEvents:
    """Yields scripted events; None means the timeout elapsed with no input."""

    def __init__(self, clock: FakeClock, script: list[Event | None]) -> None:
        self.clock = clock
        self.script = deque(script)

    def poll_event(self, timeout: float) -> Event | None:
        event = self.script.popleft() if self.script else Quit()
        if event is None:
            self.clock.now += timeout + 0.001
        return event


def _raising(exc: Exception) -> Any:
    def fail(*args: Any) -> Any:
        raise exc

    return fail


def _config(**overrides: Any) -> dict[str, Any]:
    return _deep_merge(DEFAULT_CONFIG, overrides)


def _dashboard(
    provider: FakeProvider | None = None,
    width: int = 80,
    height: int = 50,
    **overrides: Any,
) -> tuple[Dashboard, FakeProvider, FakeSurface, FakeClock]:
    provider = provider or FakeProvider()
    surface = FakeSurface()
    clock = FakeClock()
    dash = Dashboard(provider, surface, width, height, _config(**overrides), clock=clock)
    return dash, provider, surface, clock


# ── Initialization ─────────────────────────────────────────────────────────


class TestStart:
    def test_allocates_history_at_terminal_width(self) -> None:
        dash, *_ = _dashboard(width=150)
        assert dash.net.capacity == 150
        assert dash.disk.capacity == 150

    def test_history_minimum(self) -> None:
        dash, *_ = _dashboard(width=60)
        assert dash.net.capacity == 100

    def test_initial_paint(self) -> None:
        dash, provider, surface, _ = _dashboard()
        dash.start()
        assert dash.state is State.RUNNING
        assert surface.clears == 1
        assert len(surface.of_type(Gauge)) == 3
        assert len(surface.of_type(Plot)) == 2
        header = surface.of_type(Paragraph)[0]
        assert header.text.startswith("Host: box | OS: Linux 6.8.0 | 2 cores")

    def test_baselines_recorded_without_history(self) -> None:
        provider = FakeProvider()
        provider.net.append(NetCounters(1000, 500, 0.0))
        dash, *_ = _dashboard(provider)
        dash.start()
        assert dash.prev_net == NetCounters(1000, 500, 0.0)
        assert dash.net.first.values == [0.0] * 100

    def test_core_count_failure_assumes_one(self) -> None:
        provider = FakeProvider()
        provider.cpu_core_count = _raising(CollectionError("cpu", OSError("x")))  # type: ignore[method-assign]
        dash, *_ = _dashboard(provider)
        assert dash.gauges.core_count == 1


# ── Tick pipeline ──────────────────────────────────────────────────────────


class TestTick:
    def test_network_rate_in_mbps(self) -> None:
        provider = FakeProvider()
        provider.net.extend([NetCounters(1000, 500, 0.0), NetCounters(2000, 1500, 1.0)])
        dash, _, surface, _ = _dashboard(provider)
        dash.start()
        dash.tick()
        assert dash.net.first[-1] == pytest.approx(0.008)
        assert dash.net.second[-1] == pytest.approx(0.008)
        stats = [p for p in surface.of_type(Paragraph) if p.title == "Network Traffic"]
        assert "In:      0.01 Mbps" in stats[-1].text

    def test_disk_rate_summed_over_common_devices(self) -> None:
        provider = FakeProvider()
        provider.disk.extend(
            [
                {"sda": DiskCounters(0, 0), "sdb": DiskCounters(0, 0)},
                {
                    "sda": DiskCounters(1 * MB, 2 * MB),
                    "sdb": DiskCounters(1 * MB, 0),
                    "sdc": DiskCounters(50 * MB, 50 * MB),
                },
            ]
        )
        dash, _, _, clock = _dashboard(provider)
        dash.start()
        clock.now = 1.0
        dash.tick()
        assert dash.disk.first[-1] == pytest.approx(2.0)
        assert dash.disk.second[-1] == pytest.approx(2.0)
        assert dash.disk_text == (
            "sda Read: 1.00 MB/s Write: 2.00 MB/s\nsdb Read: 1.00 MB/s Write: 0.00 MB/s"
        )
        assert "sdc" in dash.prev_disk

    def test_cpu_targets_and_animation(self) -> None:
        provider = FakeProvider()
        provider.cpu.append([80.0, 80.0])
        dash, *_ = _dashboard(provider)
        dash.start()
        dash.tick()
        assert dash.gauges[0].target == 80.0
        assert dash.gauges[1].current == pytest.approx(2.4)

    def test_stats_rendered_only_when_text_changes(self) -> None:
        provider = FakeProvider()
        provider.net.extend(
            [NetCounters(0, 0, 0.0), NetCounters(0, 0, 1.0), NetCounters(0, 0, 2.0)]
        )
        dash, _, surface, _ = _dashboard(provider)
        dash.start()
        dash.tick()
        dash.tick()
        stats = [p for p in surface.of_type(Paragraph) if p.title == "Network Traffic"]
        # initial paint plus the first change only
        assert len(stats) == 2

    def test_processes_ranked_each_tick(self) -> None:
        provider = FakeProvider()
        provider.procs.extend(
            [
                [],
                [
                    ProcessSnapshot(1, "idle", 0.1, 0.1, "idle"),
                    ProcessSnapshot(2, "busy", 90.0, 5.0, "busy --hard"),
                ],
            ]
        )
        dash, _, surface, _ = _dashboard(provider)
        dash.start()
        dash.tick()
        table = surface.of_type(Table)[-1]
        assert table.rows[0] == HEADER
        assert [row[0] for row in table.rows[1:]] == ["busy", "idle"]

    def test_no_ticks_after_quit(self) -> None:
        dash, provider, *_ = _dashboard()
        dash.start()
        dash.handle(Quit())
        dash.tick()
        assert provider.cpu_calls == 0
        assert not dash.running


# ── Collection failures ────────────────────────────────────────────────────


class TestCollectionFailure:
    def test_network_failure_keeps_stale_state(self, caplog: pytest.LogCaptureFixture) -> None:
        provider = FakeProvider()
        provider.net.extend(
            [
                NetCounters(1000, 500, 0.0),
                NetCounters(2000, 1500, 1.0),
                CollectionError("network", OSError("link down")),
            ]
        )
        dash, *_ = _dashboard(provider)
        dash.start()
        dash.tick()
        before = dash.net.first.values
        prev = dash.prev_net
        with caplog.at_level(logging.WARNING, logger="sysdash"):
            dash.tick()
        assert dash.net.first.values == before
        assert dash.prev_net == prev
        assert "link down" in caplog.text

    def test_cpu_failure_keeps_targets(self) -> None:
        provider = FakeProvider()
        provider.cpu.extend([[60.0, 60.0], CollectionError("cpu", OSError("x"))])
        dash, *_ = _dashboard(provider)
        dash.start()
        dash.tick()
        dash.tick()
        assert dash.gauges[0].target == 60.0
        assert dash.gauges[0].current > 1.8

    def test_process_failure_shows_error_row(self) -> None:
        provider = FakeProvider()
        provider.procs.extend([[], CollectionError("processes", OSError("x"))])
        dash, *_ = _dashboard(provider)
        dash.start()
        dash.tick()
        assert dash.process_rows == [PROCESS_ERROR_ROW]


# ── Resize ─────────────────────────────────────────────────────────────────


class TestResize:
    def test_grow_preserves_history(self) -> None:
        dash, _, surface, _ = _dashboard(width=80)
        for _ in range(100):
            dash.net.push(5.0, 5.0)
        dash.start()
        dash.handle(Resize(200, 60))
        assert dash.net.capacity == 200
        assert dash.net.first.values[100:] == [5.0] * 100
        assert dash.net.first.values[:100] == [0.0] * 100
        assert dash.disk.capacity == 200
        assert dash.layout.net_plot.width == 200
        assert dash.state is State.RUNNING
        assert surface.clears == 2

    def test_narrowing_keeps_capacity(self) -> None:
        dash, *_ = _dashboard(width=150)
        dash.start()
        dash.handle(Resize(90, 40))
        assert dash.net.capacity == 150
        assert dash.layout.footer.y == 39

    def test_resize_refits_without_recollecting(self) -> None:
        provider = FakeProvider()
        provider.procs.append([ProcessSnapshot(1, "a", 1.0, 1.0, "c" * 100)])
        dash, *_ = _dashboard(provider, width=80)
        dash.start()
        provider.procs.append(CollectionError("processes", OSError("must not be called")))
        dash.handle(Resize(42, 50))
        assert dash.process_rows[1][3] == "c" * 21 + "..."

    def test_resize_after_quit_stays_terminated(self) -> None:
        dash, provider, surface, _ = _dashboard(width=80)
        dash.start()
        dash.handle(Quit())
        dash.handle(Resize(200, 60))
        dash.tick()
        assert dash.state is State.TERMINATED
        assert provider.cpu_calls == 0
        assert dash.net.capacity == 100
        assert surface.clears == 1

    def test_resize_before_start_keeps_initializing(self) -> None:
        dash, *_ = _dashboard(width=80)
        dash.handle(Resize(200, 60))
        assert dash.state is State.INITIALIZING
        assert dash.net.capacity == 200
        dash.tick()
        assert dash.prev_net is None


# ── Process table ──────────────────────────────────────────────────────────


class TestProcessWidget:
    def test_columns_fit_inside_border(self) -> None:
        provider = FakeProvider()
        provider.procs.append([ProcessSnapshot(1, "a", 1.0, 1.0, "c" * 200)])
        dash, *_ = _dashboard(provider, width=102)
        dash.start()
        table = dash.process_widget()
        assert table.widths == [20, 10, 10, 60]
        assert sum(table.widths) <= table.rect.width - 2
        assert len(table.rows[1][3]) == table.widths[3]


# ── Main loop ──────────────────────────────────────────────────────────────


class TestRun:
    def test_ticks_on_timeout_and_stops_on_quit(self) -> None:
        dash, provider, _, clock = _dashboard()
        events = FakeEvents(clock, [None, None, Resize(200, 60), None, Quit()])
        run(dash, events, interval=0.3)
        assert provider.cpu_calls == 3
        assert dash.net.capacity == 200
        assert dash.state is State.TERMINATED

    def test_quit_before_first_tick(self) -> None:
        dash, provider, _, clock = _dashboard()
        run(dash, FakeEvents(clock, [Quit()]))
        assert provider.cpu_calls == 0


# ── Text builders ──────────────────────────────────────────────────────────


class TestText:
    def test_header_degrades_on_host_failure(self) -> None:
        provider = FakeProvider()
        provider.host_facts = _raising(CollectionError("host", OSError("x")))  # type: ignore[method-assign]
        assert header_text(provider, 2, "/") == "Error getting system information"

    def test_header_segments(self) -> None:
        text = header_text(FakeProvider(), 4, "/")
        assert "RAM: 4.0 GB / 16.0 GB (25.0%)" in text
        assert "Disk: 100.0 GB free / 400.0 GB total (25.0% free)" in text

    def test_header_memory_failure_only_affects_ram(self) -> None:
        provider = FakeProvider()
        provider.memory_facts = _raising(CollectionError("memory", OSError("x")))  # type: ignore[method-assign]
        text = header_text(provider, 4, "/")
        assert "RAM: n/a" in text
        assert text.startswith("Host: box")

    def test_network_text(self) -> None:
        text = network_text(1.5, 0.25, NetCounters(2048, 1024, 0.0))
        assert text == (
            "In:      1.50 Mbps  Out:     0.25 Mbps  Total In: 2.0 KB  Total Out: 1.0 KB"
        )

    def test_disk_text_empty(self) -> None:
        assert disk_text({}) == ""


# ── Logging ────────────────────────────────────────────────────────────────


def test_configure_logging_to_file(tmp_path: Path) -> None:
    log_file = tmp_path / "sysdash.log"
    configure_logging(str(log_file), "INFO")
    root = logging.getLogger("sysdash")
    try:
        logging.getLogger("sysdash.dashboard").info("hello")
        for handler in root.handlers:
            handler.flush()
        assert "hello" in log_file.read_text()
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(logging.NOTSET)


def test_unwritable_log_file_exits_cleanly(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr("sysdash.config._DEFAULT_PATH", tmp_path / "absent.toml")
    log_file = tmp_path / "missing-dir" / "sysdash.log"
    monkeypatch.setattr("sys.argv", ["sysdash", "--log-file", str(log_file)])
    with pytest.raises(SystemExit) as exc_info:
        main()
    assert exc_info.value.code == 1
    assert "sysdash: cannot open log file:" in capsys.readouterr().err
