"""Tests for key-to-event translation."""

from __future__ import annotations

import curses

import pytest

from sysdash.events import CTRL_C, Quit, Resize, translate_key


@pytest.mark.parametrize("key", [ord("q"), ord("Q"), CTRL_C])
def test_quit_keys(key: int) -> None:
    assert translate_key(key, (80, 24)) == Quit()


def test_resize_carries_new_size() -> None:
    assert translate_key(curses.KEY_RESIZE, (132, 43)) == Resize(width=132, height=43)


@pytest.mark.parametrize("key", [-1, ord("x"), ord(" "), curses.KEY_UP])
def test_other_keys_ignored(key: int) -> None:
    assert translate_key(key, (80, 24)) is None


def test_events_are_values() -> None:
    assert Resize(10, 20) == Resize(10, 20)
    assert Resize(10, 20) != Resize(20, 10)
    assert Quit() == Quit()
