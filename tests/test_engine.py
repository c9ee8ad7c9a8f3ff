"""
tests/test_engine.py — ScanEngine timing, sequencing and teardown.

All timing runs on the fake clock with a 1 s scan speed, SHORT 200 ms,
LONG 2000 ms and a loop limit of 2.
"""

from __future__ import annotations

import pytest

from conftest import gaze, letters_menu, simple_tree
from gazeboard.board.items import FinishSignal
from gazeboard.core.constants import DetectorMode
from gazeboard.scan.engine import ReentrantStepError, ScanEngine


class _Completions:
    def __init__(self) -> None:
        self.count = 0

    def __call__(self) -> None:
        self.count += 1


@pytest.fixture()
def done() -> _Completions:
    return _Completions()


@pytest.fixture()
def abc_board(make_board):
    board = make_board(simple_tree(letters_menu("abc", "ABC")))
    board.detector.set_mode(DetectorMode.SCANNING)
    return board


def _labels(view, menu: str) -> list[str]:
    return [label for name, label in view.highlights if name == menu]


# ──────────────────────────────────────────────────────────────
# Dwell classification
# ──────────────────────────────────────────────────────────────

class TestDwellClassification:

    def test_short_gaze_changes_nothing(self, abc_board, scheduler, view, done) -> None:
        abc_board.engine.scan_menu(abc_board.tree["abc"], done)
        gaze(scheduler, abc_board.switch, 150)

        assert abc_board.buffer.text == ""
        assert done.count == 0
        assert abc_board.engine.active
        scheduler.advance(850)
        assert _labels(view, "abc") == ["A", "B"]

    def test_medium_gaze_confirms_highlighted_item(self, abc_board, scheduler, done) -> None:
        abc_board.engine.scan_menu(abc_board.tree["abc"], done)
        gaze(scheduler, abc_board.switch, 300)

        assert abc_board.buffer.text == "a"
        assert done.count == 1
        assert not abc_board.engine.active

    def test_long_gaze_aborts_without_selecting(self, abc_board, scheduler, tone, done) -> None:
        abc_board.engine.scan_menu(abc_board.tree["abc"], done)
        gaze(scheduler, abc_board.switch, 2500)

        assert abc_board.buffer.text == ""
        assert done.count == 1
        assert tone.beeps == [(300.0, 250.0)]

    def test_confirms_item_highlighted_when_gaze_began(self, abc_board, scheduler, done) -> None:
        abc_board.engine.scan_menu(abc_board.tree["abc"], done)
        scheduler.advance(500)
        # Highlight moves on to B at t=1000 while the gaze is still held.
        gaze(scheduler, abc_board.switch, 1500)

        assert abc_board.buffer.text == "a"

    def test_gaze_between_thresholds_records_selection(self, abc_board, scheduler, recorder, done) -> None:
        abc_board.engine.scan_menu(abc_board.tree["abc"], done)
        gaze(scheduler, abc_board.switch, 300)
        assert "selected" in recorder.events("scan")

    def test_confirm_without_gaze_item_keeps_scanning(self, abc_board, scheduler, done) -> None:
        abc_board.engine.scan_menu(abc_board.tree["abc"], done)
        abc_board.switch.press()
        scheduler.run_ready()
        abc_board.engine.session.gaze_item = None
        scheduler.advance(300)
        abc_board.switch.release()
        scheduler.run_ready()

        assert abc_board.buffer.text == ""
        assert done.count == 0
        assert abc_board.engine.active


# ──────────────────────────────────────────────────────────────
# Sequencing
# ──────────────────────────────────────────────────────────────

class TestSequencing:

    def test_finish_menu_visits_each_item_twice_then_completes(
        self, abc_board, scheduler, view, done
    ) -> None:
        abc_board.engine.scan_menu(abc_board.tree["abc"], done)
        scheduler.advance(6000)

        assert _labels(view, "abc") == ["A", "B", "C", "A", "B", "C"]
        assert done.count == 1
        assert abc_board.buffer.text == ""

        scheduler.advance(5000)
        assert len(_labels(view, "abc")) == 6
        assert done.count == 1

    def test_repeat_menu_restarts_instead_of_completing(
        self, make_board, scheduler, view, recorder, done
    ) -> None:
        board = make_board(simple_tree(letters_menu("ab", "AB", scan="repeat")))
        board.detector.set_mode(DetectorMode.SCANNING)
        board.engine.scan_menu(board.tree["ab"], done)
        scheduler.advance(4000)

        assert _labels(view, "ab") == ["A", "B", "A", "B", "A"]
        assert done.count == 0
        assert "menu_complete" in recorder.events("scan")
        assert board.engine.active

    def test_wait_multiplier_scales_dwell(self, make_board, scheduler, view, done) -> None:
        tree = simple_tree({
            "key": "m",
            "items": [
                {"kind": "text", "label": "A", "wait": 2},
                {"kind": "text", "label": "B"},
            ],
        })
        board = make_board(tree)
        board.engine.scan_menu(board.tree["m"], done)

        scheduler.advance(1999)
        assert _labels(view, "m") == ["A"]
        scheduler.advance(1)
        assert _labels(view, "m") == ["A", "B"]

    def test_highlight_is_announced_when_sound_on(self, abc_board, scheduler, announcer, done) -> None:
        abc_board.engine.scan_menu(abc_board.tree["abc"], done)
        scheduler.advance(1000)
        assert announcer.announced == ["A", "B"]

    def test_highlight_is_silent_when_sound_off(self, abc_board, scheduler, announcer, done) -> None:
        abc_board.settings.sound_on = False
        abc_board.engine.scan_menu(abc_board.tree["abc"], done)
        gaze(scheduler, abc_board.switch, 300)

        assert announcer.announced == []
        assert announcer.spoken == []
        assert abc_board.buffer.text == "a"

    def test_empty_menu_completes_immediately(self, make_board, done) -> None:
        board = make_board(simple_tree({"key": "m", "items": []}))
        board.engine.scan_menu(board.tree["m"], done)
        assert done.count == 1


class TestEmptySkip:

    _TABLE = {
        "key": "m",
        "items": [
            {"kind": "text", "label": "A"},
            {"kind": "text", "label": "", "category": "word"},
            {"kind": "text", "label": "C"},
        ],
    }

    def test_item_policy_skips_only_the_empty_item(self, make_board, scheduler, view, done) -> None:
        board = make_board(simple_tree(self._TABLE))
        board.engine.scan_menu(board.tree["m"], done)

        scheduler.advance(3999)
        assert _labels(view, "m") == ["A", "C", "A", "C"]
        assert done.count == 0
        scheduler.advance(1)
        assert done.count == 1

    def test_loop_policy_restarts_the_pass(self, make_board, scheduler, view, done) -> None:
        board = make_board(simple_tree(self._TABLE), scan={"empty_skip": "loop"})
        board.engine.scan_menu(board.tree["m"], done)

        scheduler.advance(2000)
        assert _labels(view, "m") == ["A", "A"]
        assert done.count == 1

    def test_empty_item_is_never_highlighted(self, make_board, scheduler, view, done) -> None:
        board = make_board(simple_tree(self._TABLE))
        board.engine.scan_menu(board.tree["m"], done)
        scheduler.advance(10_000)
        assert "" not in _labels(view, "m")


# ──────────────────────────────────────────────────────────────
# Single-fire and re-entrancy
# ──────────────────────────────────────────────────────────────

class _CapturingPerformer:
    def __init__(self) -> None:
        self.finished: list[FinishSignal] = []

    def select(self, item, finished: FinishSignal) -> None:
        self.finished.append(finished)


class TestSingleFire:

    def test_second_finish_does_not_start_a_second_step(
        self, make_board, scheduler, announcer, tone, view, caplog
    ) -> None:
        board = make_board(simple_tree(letters_menu("m", "AB", scan="repeat")))
        performer = _CapturingPerformer()
        engine = ScanEngine(
            scheduler, board.detector, performer, board.settings, announcer, tone,
            view=view, config=board.config.scan,
        )
        board.detector.set_mode(DetectorMode.SCANNING)
        engine.scan_menu(board.tree["m"], lambda: None)
        gaze(scheduler, board.switch, 300)

        assert len(performer.finished) == 1
        finished = performer.finished[0]
        finished()
        finished()

        assert engine.active
        assert scheduler.pending() == 1
        assert "more than once" in caplog.text

    def test_scan_while_active_raises(self, abc_board, done) -> None:
        abc_board.engine.scan_menu(abc_board.tree["abc"], done)
        with pytest.raises(ReentrantStepError):
            abc_board.engine.scan_menu(abc_board.tree["abc"], done)


# ──────────────────────────────────────────────────────────────
# Stop precedence
# ──────────────────────────────────────────────────────────────

class TestStop:

    def test_stop_cancels_pending_dwell(self, abc_board, scheduler, view, done) -> None:
        abc_board.engine.scan_menu(abc_board.tree["abc"], done)
        scheduler.advance(500)
        abc_board.engine.stop()

        scheduler.advance(5000)
        assert _labels(view, "abc") == ["A"]
        assert view.lit == set()
        assert scheduler.pending() == 0
        assert abc_board.detector.mode is DetectorMode.IDLE
        assert done.count == 0

    def test_stop_drops_in_flight_completion(self, make_board, scheduler, done) -> None:
        # Speech takes 500 ms, so the selection is still in flight when stopped.
        board = make_board(simple_tree(letters_menu("m", "AB")))
        board.announcer.speech_ms = 500
        board.detector.set_mode(DetectorMode.SCANNING)
        board.engine.scan_menu(board.tree["m"], done)
        gaze(scheduler, board.switch, 300)

        board.engine.stop()
        scheduler.advance(1000)
        assert board.buffer.text == "a"
        assert done.count == 0
        assert not board.engine.active

    def test_switch_ignored_after_stop(self, abc_board, scheduler, done) -> None:
        abc_board.engine.scan_menu(abc_board.tree["abc"], done)
        abc_board.engine.stop()
        gaze(scheduler, abc_board.switch, 300)
        assert abc_board.buffer.text == ""


# ──────────────────────────────────────────────────────────────
# Navigation round-trip
# ──────────────────────────────────────────────────────────────

class TestNavigation:

    def _tree(self, child_hide: str = "commboard"):
        return simple_tree(
            {
                "key": "main",
                "items": [
                    {"kind": "text", "label": "X"},
                    {"kind": "menu", "label": "Go", "target": "kid"},
                    {"kind": "text", "label": "Y"},
                ],
            },
            {
                "key": "kid",
                "hide": child_hide,
                "items": [{"kind": "text", "label": "K"}, {"kind": "text", "label": "L"}],
            },
        )

    def test_child_selection_resumes_parent_at_next_index(
        self, make_board, scheduler, view, done
    ) -> None:
        board = make_board(self._tree())
        board.detector.set_mode(DetectorMode.SCANNING)
        board.engine.scan_menu(board.tree["main"], done)

        scheduler.advance(1000)
        gaze(scheduler, board.switch, 300)
        assert board.engine.session.menu.name == "kid"

        gaze(scheduler, board.switch, 300)
        assert board.buffer.text == "k"
        assert board.engine.session.menu.name == "main"
        assert board.engine.session.current_index == 2
        assert view.highlights[-1] == ("main", "Y")
        assert done.count == 0

    def test_child_abort_also_resumes_parent(self, make_board, scheduler, view, done) -> None:
        board = make_board(self._tree())
        board.detector.set_mode(DetectorMode.SCANNING)
        board.engine.scan_menu(board.tree["main"], done)

        scheduler.advance(1000)
        gaze(scheduler, board.switch, 300)
        gaze(scheduler, board.switch, 2500)
        assert board.engine.session.menu.name == "main"
        assert view.highlights[-1] == ("main", "Y")

    def test_collapsible_child_shown_then_hidden(self, make_board, scheduler, view, done) -> None:
        board = make_board(self._tree(child_hide="dropdown"))
        board.detector.set_mode(DetectorMode.SCANNING)
        board.engine.scan_menu(board.tree["main"], done)

        scheduler.advance(1000)
        gaze(scheduler, board.switch, 300)
        assert ("show", "kid") in view.calls

        gaze(scheduler, board.switch, 300)
        assert view.calls[-1] == ("hide", "kid")
