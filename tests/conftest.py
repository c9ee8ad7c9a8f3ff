"""
tests/conftest.py — Shared fixtures and recording fakes.

Every test runs on a :class:`ManualScheduler`, so no test sleeps, opens an
audio device, a camera or a socket.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import pytest

from gazeboard.app import GazeboardApp
from gazeboard.board.menu import Menu, MenuTree
from gazeboard.core.clock import ManualScheduler
from gazeboard.core.config import GazeboardConfig, config_from_dict
from gazeboard.gaze.sensors import SwitchSensor


# ──────────────────────────────────────────────────────────────
# Recording fakes
# ──────────────────────────────────────────────────────────────

class RecordingAnnouncer:
    """Announcer that records text; ``speak`` finishes after *speech_ms*."""

    def __init__(self, scheduler: ManualScheduler, speech_ms: float = 0.0) -> None:
        self._scheduler = scheduler
        self.speech_ms = speech_ms
        self.announced: list[str] = []
        self.spoken: list[str] = []

    def announce(self, text: str) -> None:
        self.announced.append(text)

    def speak(self, text: str, on_finished: Callable[[], None]) -> None:
        self.spoken.append(text)
        self._scheduler.call_later(self.speech_ms, on_finished)


class RecordingTone:
    def __init__(self) -> None:
        self.beeps: list[tuple[float, float]] = []

    def beep(self, frequency_hz: float, duration_ms: float) -> None:
        self.beeps.append((frequency_hz, duration_ms))


class RecordingView:
    """Records ``show``/``hide`` and the currently highlighted labels."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.highlights: list[tuple[str, str]] = []
        self.lit: set[tuple[str, str]] = set()

    def show(self, menu: Menu) -> None:
        self.calls.append(("show", menu.name))

    def hide(self, menu: Menu) -> None:
        self.calls.append(("hide", menu.name))

    def highlight(self, menu: Menu, item: Any, on: bool) -> None:
        key = (menu.name, item.label)
        if on:
            self.highlights.append(key)
            self.lit.add(key)
        else:
            self.lit.discard(key)


class FakeTransport:
    """E-mail transport that reports *error* (None = success) on the next tick."""

    def __init__(self, scheduler: ManualScheduler, error: Optional[Exception] = None) -> None:
        self._scheduler = scheduler
        self.error = error
        self.sent: list[tuple[tuple[str, ...], str]] = []

    def send(self, recipients, body: str, on_done) -> None:
        self.sent.append((tuple(recipients), body))
        error = self.error
        self._scheduler.call_soon_threadsafe(lambda: on_done(error))


class FakeRecorder:
    def __init__(self) -> None:
        self.entries: list[tuple[str, str, dict]] = []

    def record(self, phase: str, event: str, data: Optional[dict] = None) -> None:
        self.entries.append((phase, event, data or {}))

    def events(self, phase: Optional[str] = None) -> list[str]:
        return [event for p, event, _ in self.entries if phase is None or p == phase]

    def close(self) -> None:
        pass


# ──────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────

def board_config(**sections: dict) -> GazeboardConfig:
    """Defaults suited to tests: 1 s scan speed, headless speech, no files."""
    raw: dict[str, dict] = {
        "scan": {"scan_speed_s": 1.0},
        "tts": {"engine": "log", "after_speech_ms": 0},
        "tone": {"enabled": False},
        "logging": {"log_sessions": False, "log_file": ""},
    }
    for name, values in sections.items():
        raw[name] = {**raw.get(name, {}), **values}
    return config_from_dict(raw)


def gaze(scheduler: ManualScheduler, switch: SwitchSensor, duration_ms: float) -> None:
    """Hold the switch for *duration_ms*, then release it."""
    switch.press()
    scheduler.run_ready()
    scheduler.advance(duration_ms)
    switch.release()
    scheduler.run_ready()


def simple_tree(*menus: dict, root: Optional[str] = None) -> MenuTree:
    table = list(menus)
    return MenuTree.from_table(table, root=root or table[0]["key"])


def letters_menu(key: str, letters: str, scan: str = "finish", hide: str = "commboard") -> dict:
    return {
        "key": key,
        "scan": scan,
        "hide": hide,
        "items": [{"kind": "text", "label": letter} for letter in letters],
    }


# ──────────────────────────────────────────────────────────────
# Fixtures
# ──────────────────────────────────────────────────────────────

@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def announcer(scheduler: ManualScheduler) -> RecordingAnnouncer:
    return RecordingAnnouncer(scheduler)


@pytest.fixture()
def tone() -> RecordingTone:
    return RecordingTone()


@pytest.fixture()
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture()
def recorder() -> FakeRecorder:
    return FakeRecorder()


@pytest.fixture()
def transport(scheduler: ManualScheduler) -> FakeTransport:
    return FakeTransport(scheduler)


@pytest.fixture()
def make_board(scheduler, announcer, tone, view, recorder, transport):
    """Factory building a full board on the fake clock."""

    def _make(tree: Optional[MenuTree] = None, **sections: dict) -> GazeboardApp:
        return GazeboardApp(
            board_config(**sections),
            scheduler,
            announcer=announcer,
            tone=tone,
            view=view,
            transport=transport,
            recorder=recorder,
            tree=tree,
        )

    return _make
