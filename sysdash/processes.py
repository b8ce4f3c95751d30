"""Process table ranking and column fitting."""

from __future__ import annotations

from dataclasses import dataclass

HEADER = ["Name", "CPU%", "Mem%", "Command"]
COLUMN_PERCENTS = (20, 10, 10, 60)
ELLIPSIS = "..."


@dataclass(slots=True, frozen=True)
class ProcessSnapshot:
    """Immutable snapshot of a process state."""

    pid: int
    name: str
    cpu_percent: float
    memory_percent: float
    command_line: str


def rank(processes: list[ProcessSnapshot]) -> list[ProcessSnapshot]:
    """Sort by CPU descending; ties keep their enumeration order."""
    # sorted() is stable, and reverse=True preserves the order of equal keys
    return sorted(processes, key=lambda p: p.cpu_percent, reverse=True)


def inner_width(width: int) -> int:
    """Columns available inside the table border."""
    return max(width - 2, 0)


def column_widths(width: int) -> list[int]:
    """Split an inner *width* into the name, CPU, memory and command columns."""
    return [width * pct // 100 for pct in COLUMN_PERCENTS]


def truncate(text: str, width: int) -> str:
    """Cut *text* to ``width - 3`` characters plus an ellipsis when too long."""
    if len(text) <= width:
        return text
    if width <= len(ELLIPSIS):
        return text[: max(width, 0)]
    return text[: width - len(ELLIPSIS)] + ELLIPSIS


def table_rows(
    processes: list[ProcessSnapshot],
    width: int,
    limit: int = 0,
) -> list[list[str]]:
    """Header plus one formatted row per process, ranked by CPU.

    Args:
        processes: Snapshot in enumeration order.
        width: Outer width of the table widget, border included.
        limit: Keep at most this many processes; 0 keeps all.
    """
    name_w, _, _, command_w = column_widths(inner_width(width))

    ranked = rank(processes)
    if limit > 0:
        ranked = ranked[:limit]

    rows = [list(HEADER)]
    for proc in ranked:
        rows.append(
            [
                truncate(proc.name, name_w),
                f"{proc.cpu_percent:.1f}",
                f"{proc.memory_percent:.1f}",
                truncate(proc.command_line, command_w),
            ]
        )
    return rows
