"""Curses rendering surface: widget descriptors and the code that paints them."""

from __future__ import annotations

import curses
from dataclasses import dataclass, field
from typing import Any

from sysdash.events import Event, translate_key
from sysdash.gauges import CRITICAL, NOMINAL, WARNING
from sysdash.layout import Rect


# ── Constants ──────────────────────────────────────────────────────────────

BAR_FILL = "█"
BAR_EMPTY = "░"
POINT = "•"

# Curses colour-pair IDs
C_NORMAL = 1
C_WARNING = 2
C_CRITICAL = 3
C_TITLE = 4
C_DIM = 5
C_BLUE = 6

BAND_COLORS = {NOMINAL: C_NORMAL, WARNING: C_WARNING, CRITICAL: C_CRITICAL}


class SurfaceError(RuntimeError):
    """The terminal could not be prepared for drawing."""


# ── Widget descriptors ─────────────────────────────────────────────────────


@dataclass
class Paragraph:
    rect: Rect
    text: str
    title: str = ""
    border: bool = True
    color: int = C_DIM


@dataclass
class Gauge:
    rect: Rect
    title: str
    percent: int
    band: str = NOMINAL


@dataclass
class Plot:
    """Two series drawn against a shared ceiling, newest sample at the right."""

    rect: Rect
    title: str
    series: tuple[list[float], list[float]]
    labels: tuple[str, str]
    colors: tuple[int, int]
    ceiling: float


@dataclass
class Table:
    rect: Rect
    title: str
    rows: list[list[str]] = field(default_factory=lambda: list[list[str]]())
    widths: list[int] = field(default_factory=lambda: list[int]())


Widget = Paragraph | Gauge | Plot | Table


# ── Pure helpers ───────────────────────────────────────────────────────────


def plot_rows(values: list[float], ceiling: float, height: int) -> list[int]:
    """Row (0 = top) for each sample in a plot area *height* rows tall."""
    if height <= 0:
        return []
    top = height - 1
    rows: list[int] = []
    for v in values:
        frac = min(max(v / ceiling, 0.0), 1.0) if ceiling > 0 else 0.0
        rows.append(top - round(frac * top))
    return rows


def fit_cells(row: list[str], widths: list[int]) -> str:
    """Pad each cell to its column width and join them into one line."""
    cells = []
    for text, width in zip(row, widths):
        if width <= 0:
            continue
        cells.append(text[:width].ljust(width))
    return "".join(cells).rstrip()


# ── Curses drawing primitives ──────────────────────────────────────────────


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _init_colors() -> None:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(C_NORMAL, curses.COLOR_GREEN, -1)
    curses.init_pair(C_WARNING, curses.COLOR_YELLOW, -1)
    curses.init_pair(C_CRITICAL, curses.COLOR_RED, -1)
    curses.init_pair(C_TITLE, curses.COLOR_CYAN, -1)
    curses.init_pair(C_DIM, curses.COLOR_WHITE, -1)
    curses.init_pair(C_BLUE, curses.COLOR_BLUE, -1)


class CursesSurface:
    """Paints widget descriptors onto a curses screen."""

    def __init__(self, stdscr: curses.window) -> None:
        self._scr = stdscr
        try:
            _init_colors()
            curses.curs_set(0)
            stdscr.keypad(True)
        except curses.error as e:
            raise SurfaceError(str(e)) from e

    def size(self) -> tuple[int, int]:
        """Current (width, height) of the terminal."""
        max_y, max_x = self._scr.getmaxyx()
        return max_x, max_y

    def poll_event(self, timeout: float) -> Event | None:
        """Wait up to *timeout* seconds for an input event."""
        self._scr.timeout(max(0, int(timeout * 1000)))
        key = self._scr.getch()
        if key == curses.KEY_RESIZE:
            curses.update_lines_cols()
        return translate_key(key, self.size())

    def clear(self) -> None:
        self._scr.erase()
        self._scr.noutrefresh()

    def render(self, *widgets: Widget) -> None:
        for widget in widgets:
            if widget.rect.empty:
                continue
            self._blank(widget.rect)
            match widget:
                case Paragraph():
                    self._draw_paragraph(widget)
                case Gauge():
                    self._draw_gauge(widget)
                case Plot():
                    self._draw_plot(widget)
                case Table():
                    self._draw_table(widget)
        self._scr.noutrefresh()
        curses.doupdate()

    # ── Widget painters ────────────────────────────────────────────────────

    def _blank(self, rect: Rect) -> None:
        max_y, max_x = self._scr.getmaxyx()
        w = min(rect.width, max_x - rect.x)
        if w <= 0:
            return
        for y in range(rect.y, min(rect.bottom, max_y)):
            _safe(self._scr, y, rect.x, " " * w)

    def _draw_box(self, rect: Rect, title: str = "") -> curses.window | None:
        """Draw a bordered box and return its sub-window."""
        max_y, max_x = self._scr.getmaxyx()
        h = min(rect.height, max_y - rect.y)
        w = min(rect.width, max_x - rect.x)
        if h < 3 or w < 4:
            return None
        try:
            sub = self._scr.subwin(h, w, rect.y, rect.x)
            sub.attron(curses.color_pair(C_BLUE))
            sub.box()
            sub.attroff(curses.color_pair(C_BLUE))
            if title:
                title = title[: w - 4]
                sub.addstr(0, 1, title, curses.color_pair(C_TITLE) | curses.A_BOLD)
            return sub
        except curses.error:
            return None

    def _draw_paragraph(self, p: Paragraph) -> None:
        if p.border:
            box = self._draw_box(p.rect, p.title)
            if box is None:
                return
            win, y0, x0, width, height = box, 1, 1, p.rect.width - 2, p.rect.height - 2
        else:
            win, y0, x0, width, height = self._scr, p.rect.y, p.rect.x, p.rect.width, p.rect.height
        for i, line in enumerate(p.text.splitlines()[:height]):
            _safe(win, y0 + i, x0, line[:width], curses.color_pair(p.color))

    def _draw_gauge(self, g: Gauge) -> None:
        box = self._draw_box(g.rect, g.title)
        if box is None:
            return
        width = g.rect.width - 2
        color = curses.color_pair(BAND_COLORS.get(g.band, C_NORMAL))
        filled = int(width * min(max(g.percent, 0), 100) / 100)
        _safe(box, 1, 1, BAR_FILL * filled, color | curses.A_BOLD)
        _safe(box, BAR_EMPTY * (width - filled), curses.color_pair(C_DIM))
        label = f"{g.percent}%"
        _safe(box, 1, max(1, (width - len(label)) // 2 + 1), label, curses.A_BOLD)

    def _draw_plot(self, p: Plot) -> None:
        box = self._draw_box(p.rect, p.title)
        if box is None:
            return
        width = p.rect.width - 2
        height = p.rect.height - 2
        for values, color in zip(p.series, p.colors):
            visible = values[-width:]
            offset = width - len(visible)
            for col, row in enumerate(plot_rows(visible, p.ceiling, height)):
                _safe(box, 1 + row, 1 + offset + col, POINT, curses.color_pair(color))
        x = 2
        for label, color in zip(p.labels, p.colors):
            _safe(box, 1, x, label, curses.color_pair(color) | curses.A_BOLD)
            x += len(label) + 2

    def _draw_table(self, t: Table) -> None:
        box = self._draw_box(t.rect, t.title)
        if box is None:
            return
        width = t.rect.width - 2
        for i, row in enumerate(t.rows[: t.rect.height - 2]):
            attr = curses.color_pair(C_TITLE) | curses.A_BOLD if i == 0 else curses.color_pair(C_DIM)
            _safe(box, 1 + i, 1, fit_cells(row, t.widths)[:width], attr)
