"""
gazeboard/scan/scanner.py — Top-level scanner orchestrator.

``IDLE → LISTENING → SCANNING → LISTENING … → IDLE``. While listening the
detector samples slowly and one long gaze starts a scan of the root menu;
when the root scan returns (a long gaze aborts it) the scanner listens
again. :meth:`Scanner.stop` works from any state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from gazeboard.board.menu import MenuTree
from gazeboard.core.clock import Scheduler, TimerHandle
from gazeboard.core.config import ScanConfig
from gazeboard.core.constants import C, DetectorMode, ScannerState
from gazeboard.core.fsm import ScannerFSM
from gazeboard.gaze.detector import SignalClassifier
from gazeboard.output.tone import Tone
from gazeboard.output.tts import Announcer
from gazeboard.scan.engine import ScanEngine

if TYPE_CHECKING:
    from gazeboard.core.logger import SessionRecorder

logger = logging.getLogger(__name__)


class Scanner:
    """
    Mode controller wiring the detector, the engine and the menu tree.

    Args:
        engine: The scan engine.
        detector: The attention classifier.
        tree: Menus; scanning starts at ``tree.root``.
        announcer: Speaks the mode changes.
        tone: Plays the cue once a start gaze has lasted long enough.
        scheduler: Clock used to time the start gaze.
        config: Gaze thresholds.
        recorder: Optional session recorder.
    """

    def __init__(
        self,
        engine: ScanEngine,
        detector: SignalClassifier,
        tree: MenuTree,
        announcer: Announcer,
        tone: Tone,
        scheduler: Scheduler,
        config: Optional[ScanConfig] = None,
        recorder: Optional["SessionRecorder"] = None,
    ) -> None:
        self._engine = engine
        self._detector = detector
        self._tree = tree
        self._announcer = announcer
        self._tone = tone
        self._scheduler = scheduler
        self._cfg = config or ScanConfig()
        self._recorder = recorder
        self._fsm = ScannerFSM(on_transition=self._on_transition)
        self._listening = False
        self._gaze_start: Optional[float] = None
        self._cue_timer: Optional[TimerHandle] = None

    @property
    def state(self) -> ScannerState:
        return self._fsm.current_state

    @property
    def fsm(self) -> ScannerFSM:
        return self._fsm

    def start(self) -> None:
        """Begin listening for a start gaze. Ignored unless idle."""
        if self.state is not ScannerState.IDLE:
            logger.debug("start() ignored in state %s", self.state.value)
            return
        self._fsm.transition(ScannerState.LISTENING, "start")
        self._listen()

    def stop(self) -> None:
        """Cancel whatever is running and return to IDLE."""
        if self.state is ScannerState.IDLE:
            logger.debug("stop() ignored: already idle")
            return
        self._unlisten()
        self._engine.stop()
        self._fsm.transition(ScannerState.IDLE, "stop")
        self._announcer.announce(C.STOPPING_TEXT)

    def toggle(self) -> None:
        if self.state is ScannerState.IDLE:
            self.start()
        else:
            self.stop()

    # ──────────────────────────────────────────
    # Listening
    # ──────────────────────────────────────────

    def _listen(self) -> None:
        self._detector.set_mode(DetectorMode.LISTENING)
        self._detector.on_begin(self._on_listen_begin)
        self._detector.on_end(self._on_listen_end)
        self._listening = True
        self._announcer.announce(C.LISTENING_TEXT)
        if self._recorder is not None:
            self._recorder.record("scanner", "listening")

    def _unlisten(self) -> None:
        if self._listening:
            self._detector.remove_begin_listener(self._on_listen_begin)
            self._detector.remove_end_listener(self._on_listen_end)
            self._listening = False
        self._gaze_start = None
        self._cancel_cue()

    def _on_listen_begin(self) -> None:
        self._gaze_start = self._scheduler.now()
        self._cancel_cue()
        self._cue_timer = self._scheduler.call_later(self._cfg.long_gaze_ms, self._long_gaze_cue)

    def _long_gaze_cue(self) -> None:
        self._cue_timer = None
        self._tone.beep(self._cfg.long_gaze_beep_hz, self._cfg.long_gaze_beep_ms)

    def _cancel_cue(self) -> None:
        if self._cue_timer is not None:
            self._cue_timer.cancel()
            self._cue_timer = None

    def _on_listen_end(self) -> None:
        self._cancel_cue()
        if self._gaze_start is None:
            return
        elapsed = self._scheduler.now() - self._gaze_start
        self._gaze_start = None
        if elapsed >= self._cfg.long_gaze_ms:
            self._begin_scan()
        else:
            logger.debug("Start gaze of %.0f ms too short", elapsed)

    def _begin_scan(self) -> None:
        self._unlisten()
        self._fsm.transition(ScannerState.SCANNING, "long gaze")
        self._detector.set_mode(DetectorMode.SCANNING)
        self._engine.scan_menu(self._tree.root, self._back_to_listening)

    def _back_to_listening(self) -> None:
        self._fsm.transition(ScannerState.LISTENING, "root menu returned")
        self._listen()

    def _on_transition(self, from_state: ScannerState, to_state: ScannerState, reason: str) -> None:
        self._engine.publish(
            "mode", {"from": from_state.value, "state": to_state.value, "reason": reason}
        )
