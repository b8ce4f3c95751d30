"""Input events delivered to the sampling loop."""

from __future__ import annotations

import curses
from dataclasses import dataclass
from typing import TypeAlias

CTRL_C = 3
QUIT_KEYS = (ord("q"), ord("Q"), CTRL_C)


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


Event: TypeAlias = Quit | Resize


def translate_key(key: int, size: tuple[int, int]) -> Event | None:
    """Map a curses key code to an event; *size* is the (width, height) after it.

    Keys that mean nothing to the dashboard (and ``-1`` for "no key") map to None.
    """
    if key in QUIT_KEYS:
        return Quit()
    if key == curses.KEY_RESIZE:
        width, height = size
        return Resize(width, height)
    return None
