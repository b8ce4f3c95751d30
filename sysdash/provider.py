"""Metric collection backed by psutil.

Every public method either returns a reading or raises
:class:`CollectionError` naming the subsystem that failed.
"""

from __future__ import annotations

import logging
import platform
import socket
import time
from dataclasses import dataclass
from typing import Any

import psutil

from sysdash.processes import ProcessSnapshot
from sysdash.rates import DiskCounters, NetCounters

logger = logging.getLogger(__name__)


class CollectionError(RuntimeError):
    """A metrics call failed; the named subsystem keeps its stale state."""

    def __init__(self, subsystem: str, cause: BaseException) -> None:
        super().__init__(f"{subsystem}: {cause}")
        self.subsystem = subsystem
        self.cause = cause


@dataclass(frozen=True)
class HostFacts:
    hostname: str
    platform: str
    platform_version: str


@dataclass(frozen=True)
class MemoryFacts:
    used: int
    total: int
    used_percent: float


@dataclass(frozen=True)
class DiskUsage:
    free: int
    total: int
    used_percent: float


class PsutilProvider:
    """Point-in-time readings of the local host."""

    def __init__(self) -> None:
        # First cpu_percent() call only establishes the baseline
        psutil.cpu_percent(interval=None, percpu=True)

    def cpu_percent_per_core(self) -> list[float]:
        try:
            return [float(p) for p in psutil.cpu_percent(interval=None, percpu=True)]
        except Exception as e:
            raise CollectionError("cpu", e) from e

    def cpu_core_count(self) -> int:
        try:
            count = psutil.cpu_count(logical=True)
        except Exception as e:
            raise CollectionError("cpu", e) from e
        return count or 1

    def network_counters(self) -> NetCounters:
        try:
            counters = psutil.net_io_counters(pernic=False)
        except Exception as e:
            raise CollectionError("network", e) from e
        # net_io_counters returns None on hosts without interfaces
        if counters is None:  # pyright: ignore[reportUnnecessaryComparison]
            raise CollectionError("network", LookupError("no network interfaces"))
        return NetCounters(
            bytes_recv=counters.bytes_recv,
            bytes_sent=counters.bytes_sent,
            timestamp=time.monotonic(),
        )

    def disk_counters(self) -> dict[str, DiskCounters]:
        try:
            per_disk = psutil.disk_io_counters(perdisk=True)
        except Exception as e:
            raise CollectionError("disk", e) from e
        if per_disk is None:
            raise CollectionError("disk", LookupError("no disk counters"))
        return {
            name: DiskCounters(read_bytes=stat.read_bytes, write_bytes=stat.write_bytes)
            for name, stat in per_disk.items()
        }

    def processes(self) -> list[ProcessSnapshot]:
        """Snapshot the process table, skipping processes that vanish or deny access."""
        try:
            procs = list(
                psutil.process_iter(
                    ["pid", "name", "cpu_percent", "memory_percent", "cmdline"]
                )
            )
        except Exception as e:
            raise CollectionError("processes", e) from e

        snapshots: list[ProcessSnapshot] = []
        for proc in procs:
            try:
                info: dict[str, Any] = proc.info
                name = info.get("name")
                cpu = info.get("cpu_percent")
                mem = info.get("memory_percent")
                if name is None or cpu is None or mem is None:
                    # process_iter stores None for attributes it could not read
                    logger.debug("skipping pid %s: incomplete info", info.get("pid"))
                    continue
                cmdline = info.get("cmdline") or []
                snapshots.append(
                    ProcessSnapshot(
                        pid=info.get("pid", proc.pid),
                        name=name,
                        cpu_percent=float(cpu),
                        memory_percent=float(mem),
                        command_line=" ".join(cmdline) if cmdline else name,
                    )
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as e:
                logger.debug("skipping pid %s: %s", proc.pid, e)
                continue
        return snapshots

    def host_facts(self) -> HostFacts:
        try:
            return HostFacts(
                hostname=socket.gethostname(),
                platform=platform.system(),
                platform_version=platform.release(),
            )
        except Exception as e:
            raise CollectionError("host", e) from e

    def memory_facts(self) -> MemoryFacts:
        try:
            vm = psutil.virtual_memory()
        except Exception as e:
            raise CollectionError("memory", e) from e
        return MemoryFacts(used=vm.used, total=vm.total, used_percent=vm.percent)

    def disk_usage(self, path: str) -> DiskUsage:
        try:
            du = psutil.disk_usage(path)
        except Exception as e:
            raise CollectionError("disk usage", e) from e
        return DiskUsage(free=du.free, total=du.total, used_percent=du.percent)
