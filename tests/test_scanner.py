"""
tests/test_scanner.py — Top-level listening/scanning controller.
"""

from __future__ import annotations

import pytest

from conftest import gaze, letters_menu, simple_tree
from gazeboard.core.constants import C, DetectorMode, ScannerState


@pytest.fixture()
def board(make_board):
    tree = simple_tree(
        {
            "key": "root",
            "scan": "repeat",
            "items": [
                {"kind": "toggle", "label": "Stop"},
                {"kind": "menu", "label": "Letters", "target": "abc"},
            ],
        },
        letters_menu("abc", "ABC"),
    )
    return make_board(tree)


class TestStartStop:

    def test_start_listens(self, board, announcer) -> None:
        board.scanner.start()
        assert board.scanner.state is ScannerState.LISTENING
        assert board.detector.mode is DetectorMode.LISTENING
        assert announcer.announced == [C.LISTENING_TEXT]

    def test_start_ignored_unless_idle(self, board) -> None:
        board.scanner.start()
        board.scanner.start()
        assert len(board.scanner.fsm.get_history()) == 1

    def test_stop_from_listening(self, board, scheduler, announcer) -> None:
        board.scanner.start()
        board.scanner.stop()
        assert board.scanner.state is ScannerState.IDLE
        assert board.detector.mode is DetectorMode.IDLE
        assert announcer.announced[-1] == C.STOPPING_TEXT

        # Listeners are gone: a long press no longer starts a scan.
        gaze(scheduler, board.switch, 2500)
        assert board.scanner.state is ScannerState.IDLE

    def test_stop_when_idle_is_noop(self, board, announcer) -> None:
        board.scanner.stop()
        assert announcer.announced == []

    def test_toggle(self, board) -> None:
        board.scanner.toggle()
        assert board.scanner.state is ScannerState.LISTENING
        board.scanner.toggle()
        assert board.scanner.state is ScannerState.IDLE


class TestListening:

    def test_long_signal_starts_root_scan(self, board, scheduler, view) -> None:
        board.scanner.start()
        gaze(scheduler, board.switch, 2000)

        assert board.scanner.state is ScannerState.SCANNING
        assert board.detector.mode is DetectorMode.SCANNING
        assert view.highlights == [("root", "Stop")]

    def test_long_gaze_cue_plays_while_holding(self, board, scheduler, tone) -> None:
        board.scanner.start()
        board.switch.press()
        scheduler.run_ready()
        scheduler.advance(1999)
        assert tone.beeps == []

        scheduler.advance(101)
        assert tone.beeps == [(300.0, 250.0)]
        assert board.scanner.state is ScannerState.LISTENING

        board.switch.release()
        scheduler.run_ready()
        assert board.scanner.state is ScannerState.SCANNING

    def test_short_signal_cancels_cue(self, board, scheduler, tone) -> None:
        board.scanner.start()
        gaze(scheduler, board.switch, 1000)
        scheduler.advance(5000)
        assert tone.beeps == []

    def test_stop_while_holding_cancels_cue(self, board, scheduler, tone) -> None:
        board.scanner.start()
        board.switch.press()
        scheduler.run_ready()
        board.scanner.stop()
        scheduler.advance(5000)
        assert tone.beeps == []

    def test_short_signal_keeps_listening(self, board, scheduler) -> None:
        board.scanner.start()
        gaze(scheduler, board.switch, 1000)
        assert board.scanner.state is ScannerState.LISTENING
        assert not board.engine.active

    def test_root_abort_returns_to_listening(self, board, scheduler, recorder) -> None:
        board.scanner.start()
        gaze(scheduler, board.switch, 2000)
        gaze(scheduler, board.switch, 2500)

        assert board.scanner.state is ScannerState.LISTENING
        assert not board.engine.active
        assert recorder.events("scanner").count("listening") == 2

    def test_stop_while_scanning(self, board, scheduler, view) -> None:
        board.scanner.start()
        gaze(scheduler, board.switch, 2000)
        board.scanner.stop()

        scheduler.advance(10_000)
        assert board.scanner.state is ScannerState.IDLE
        assert view.highlights == [("root", "Stop")]
        assert scheduler.pending() == 0


class TestToggleItem:

    def test_stop_item_stops_scanner(self, board, scheduler, tone) -> None:
        board.scanner.start()
        gaze(scheduler, board.switch, 2000)
        gaze(scheduler, board.switch, 300)
        assert board.scanner.state is ScannerState.SCANNING

        scheduler.advance(3000)
        assert board.scanner.state is ScannerState.IDLE
        assert tone.beeps == [(300.0, 250.0), (400.0, 2000.0)]
        assert not board.engine.active


class TestModeEvents:

    def test_transitions_are_published(self, board, scheduler) -> None:
        events = []
        board.engine.subscribe(events.append)
        board.scanner.start()
        gaze(scheduler, board.switch, 2000)

        modes = [e.payload["state"] for e in events if e.kind == "mode"]
        assert modes == ["LISTENING", "SCANNING"]

    def test_history_reasons(self, board, scheduler) -> None:
        board.scanner.start()
        gaze(scheduler, board.switch, 2000)
        board.scanner.stop()

        reasons = [r["reason"] for r in board.scanner.fsm.get_history()]
        assert reasons == ["start", "long gaze", "stop"]


class TestSoundOff:

    def test_narration_muted_but_cue_still_beeps(self, make_board, scheduler, announcer, tone) -> None:
        board = make_board(
            simple_tree(letters_menu("abc", "ABC", scan="repeat")),
            scan={"announce": False},
        )
        board.scanner.start()
        gaze(scheduler, board.switch, 2100)

        assert board.scanner.state is ScannerState.SCANNING
        assert tone.beeps == [(300.0, 250.0)]
        assert announcer.announced == [C.LISTENING_TEXT]
