"""
gazeboard/scan/engine.py — The menu scan engine.

Highlights a menu's items in turn, listens for attention events, and turns
the duration of each gaze into a decision:

- shorter than ``short_gaze_ms``: noise, nothing changes;
- up to ``long_gaze_ms``: confirm the item that was highlighted when the
  gaze began;
- ``long_gaze_ms`` or longer: abort the menu and return to the caller.

Exactly one :class:`ScanSession` is live at a time. Its timers and detector
listeners are torn down before every transition, and every continuation
checks the session's generation so nothing from a stopped scan can run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Optional

from gazeboard.board.actions import ItemPerformer
from gazeboard.board.items import FinishSignal, Item, NavigateMenu
from gazeboard.board.menu import Menu, MenuView, NullView
from gazeboard.core.clock import Scheduler, TimerHandle
from gazeboard.core.config import ScanConfig
from gazeboard.core.constants import DetectorMode, ScanPolicy
from gazeboard.core.events import ListenerRegistry
from gazeboard.core.settings import Settings
from gazeboard.gaze.detector import SignalClassifier
from gazeboard.output.tone import Tone
from gazeboard.output.tts import Announcer

if TYPE_CHECKING:
    from gazeboard.core.logger import SessionRecorder

logger = logging.getLogger(__name__)


class ReentrantStepError(RuntimeError):
    """Raised when a scan is started while another scan session is live."""


@dataclass
class ScanEvent:
    """
    Notification published to UI subscribers.

    Attributes:
        kind: ``scan_start``, ``highlight``, ``gaze_begin``, ``long_gaze``,
            ``selected``, ``aborted``, ``menu_complete``, ``stopped`` or a
            scanner mode event.
        payload: JSON-serialisable details.
        timestamp: Wall-clock time of the event.
    """

    kind: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "timestamp": self.timestamp, **self.payload}


@dataclass(eq=False)
class ScanSession:
    """State of one ``scan_menu`` invocation."""

    menu: Menu
    on_complete: Callable[[], None]
    generation: int
    current_index: int = 0
    loop_index: int = 0
    highlighted: Optional[Item] = None
    dwell_timer: Optional[TimerHandle] = None
    long_gaze_timer: Optional[TimerHandle] = None
    gaze_item: Optional[Item] = None
    gaze_index: int = 0
    gaze_loop: int = 0
    gaze_start: Optional[float] = None
    listening: bool = False
    closed: bool = False


class ScanEngine:
    """
    Drives the scan of one menu at a time and recurses into submenus.

    Args:
        scheduler: Timer source.
        detector: Attention classifier supplying begin/end events.
        performer: Executes selected items.
        settings: Runtime settings (scan speed, sound toggle).
        announcer: Narrates highlighted items.
        tone: Plays the long-gaze cue.
        view: Presentation sink.
        config: Gaze thresholds, loop limit and cue parameters.
        recorder: Optional session recorder.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        detector: SignalClassifier,
        performer: ItemPerformer,
        settings: Settings,
        announcer: Announcer,
        tone: Tone,
        view: Optional[MenuView] = None,
        config: Optional[ScanConfig] = None,
        recorder: Optional["SessionRecorder"] = None,
    ) -> None:
        self._scheduler = scheduler
        self._detector = detector
        self._performer = performer
        self._settings = settings
        self._announcer = announcer
        self._tone = tone
        self._view = view or NullView()
        self._cfg = config or ScanConfig()
        self._recorder = recorder
        self._session: Optional[ScanSession] = None
        self._generation = 0
        self._events = ListenerRegistry("scan_event")

    # ──────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────

    @property
    def session(self) -> Optional[ScanSession]:
        return self._session

    @property
    def active(self) -> bool:
        return self._session is not None and not self._session.closed

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: Callable[[ScanEvent], None]) -> None:
        self._events.add(listener)

    def unsubscribe(self, listener: Callable[[ScanEvent], None]) -> None:
        self._events.remove(listener)

    def publish(self, kind: str, payload: Optional[dict[str, Any]] = None) -> None:
        """Send a :class:`ScanEvent` to every subscriber."""
        self._events.emit(ScanEvent(kind, payload or {}))

    def scan_menu(
        self,
        menu: Menu,
        on_complete: Callable[[], None],
        start_index: int = 0,
        loop_index: int = 0,
    ) -> None:
        """
        Start scanning *menu*; *on_complete* runs when control returns to the caller.

        Raises:
            ReentrantStepError: If another session still holds timers or listeners.
        """
        if self.active:
            raise ReentrantStepError(
                f"cannot scan '{menu.name}' while '{self._session.menu.name}' is active"
            )
        session = ScanSession(menu, on_complete, self._generation, start_index, loop_index)
        self._session = session
        if menu.collapsible:
            self._view.show(menu)
        self._detector.on_begin(self._on_begin)
        self._detector.on_end(self._on_end)
        session.listening = True

        logger.debug("Scanning '%s' from index %d, loop %d", menu.name, start_index, loop_index)
        self._record("scan_start", {"menu": menu.name, "index": start_index})
        self.publish("scan_start", {"menu": menu.name, "index": start_index})
        self._loop(session)

    def stop(self) -> None:
        """
        Cancel the active scan immediately and idle the detector.

        Any continuation of the cancelled scan that is still in flight (an
        item action that has not finished yet) is dropped when it completes.
        """
        self._generation += 1
        session = self._session
        if session is not None and not session.closed:
            self._teardown(session)
            if session.menu.collapsible:
                self._view.hide(session.menu)
        self._detector.set_mode(DetectorMode.IDLE)
        logger.info("Scan stopped")
        self._record("stopped", {"menu": session.menu.name if session else None})
        self.publish("stopped")

    def snapshot(self) -> dict[str, Any]:
        """Current menu and highlight, for UIs."""
        session = self._session
        if session is None or session.closed:
            return {"menu": None, "index": None, "highlighted": None, "loop": None}
        return {
            "menu": session.menu.name,
            "index": session.current_index,
            "highlighted": session.highlighted.label if session.highlighted else None,
            "loop": session.loop_index,
        }

    # ──────────────────────────────────────────
    # Stepping
    # ──────────────────────────────────────────

    def _loop(self, session: ScanSession) -> None:
        items = session.menu.items
        while True:
            if not items or session.loop_index >= self._cfg.loop_limit:
                self._finish_cycle(session)
                return
            item = items[session.current_index]
            if not item.is_empty():
                self._step(session, item)
                return
            if self._cfg.empty_skip == "loop":
                session.current_index = 0
                session.loop_index += 1
            else:
                self._advance(session)

    def _advance(self, session: ScanSession) -> None:
        session.current_index += 1
        if session.current_index >= len(session.menu.items):
            session.current_index = 0
            session.loop_index += 1

    def _step(self, session: ScanSession, item: Item) -> None:
        session.highlighted = item
        self._view.highlight(session.menu, item, True)
        if self._settings.sound_on:
            self._announcer.announce(item.announcement_text)
        self.publish(
            "highlight",
            {"menu": session.menu.name, "index": session.current_index, "label": item.label},
        )
        dwell_ms = self._settings.scan_speed.ms * item.wait_multiplier
        session.dwell_timer = self._scheduler.call_later(
            dwell_ms, lambda: self._on_dwell(session)
        )

    def _on_dwell(self, session: ScanSession) -> None:
        if session.closed:
            return
        session.dwell_timer = None
        self._unhighlight(session)
        self._advance(session)
        self._loop(session)

    def _finish_cycle(self, session: ScanSession) -> None:
        menu = session.menu
        self._teardown(session)
        logger.debug("Menu '%s' scanned %d times without a selection", menu.name, self._cfg.loop_limit)
        self._record("menu_complete", {"menu": menu.name})
        self.publish("menu_complete", {"menu": menu.name})
        if menu.scan_policy is ScanPolicy.REPEAT and menu.has_selectable():
            self.scan_menu(menu, session.on_complete)
        else:
            session.on_complete()

    # ──────────────────────────────────────────
    # Gaze handling
    # ──────────────────────────────────────────

    def _on_begin(self) -> None:
        session = self._session
        if session is None or session.closed or session.highlighted is None:
            return
        session.gaze_item = session.highlighted
        session.gaze_index = session.current_index
        session.gaze_loop = session.loop_index
        session.gaze_start = self._scheduler.now()
        if session.long_gaze_timer is not None:
            session.long_gaze_timer.cancel()
        session.long_gaze_timer = self._scheduler.call_later(
            self._cfg.long_gaze_ms, lambda: self._long_gaze_cue(session)
        )
        self.publish("gaze_begin", {"menu": session.menu.name, "label": session.gaze_item.label})

    def _long_gaze_cue(self, session: ScanSession) -> None:
        session.long_gaze_timer = None
        if session.closed:
            return
        self._tone.beep(self._cfg.long_gaze_beep_hz, self._cfg.long_gaze_beep_ms)
        self.publish("long_gaze", {"menu": session.menu.name})

    def _on_end(self) -> None:
        session = self._session
        if session is None or session.closed or session.gaze_start is None:
            return
        elapsed = self._scheduler.now() - session.gaze_start
        session.gaze_start = None
        if session.long_gaze_timer is not None:
            session.long_gaze_timer.cancel()
            session.long_gaze_timer = None

        if elapsed < self._cfg.short_gaze_ms:
            logger.debug("Gaze of %.0f ms ignored", elapsed)
        elif elapsed < self._cfg.long_gaze_ms:
            self._confirm(session, elapsed)
        else:
            self._abort(session, elapsed)

    def _confirm(self, session: ScanSession, elapsed: float) -> None:
        item = session.gaze_item
        if item is None:
            logger.warning("Confirming gaze in '%s' has no item; ignored", session.menu.name)
            return
        index = session.gaze_index
        self._teardown(session)
        logger.info("Selected %r in '%s' (gaze %.0f ms)", item.label, session.menu.name, elapsed)
        payload = {"menu": session.menu.name, "index": index, "label": item.label}
        self._record("selected", payload)
        self.publish("selected", payload)
        self._performer.select(
            item,
            FinishSignal(lambda: self._after_completion(session, item, index), item.label),
        )

    def _abort(self, session: ScanSession, elapsed: float) -> None:
        self._teardown(session)
        logger.info("Left '%s' (gaze %.0f ms)", session.menu.name, elapsed)
        self._record("aborted", {"menu": session.menu.name})
        self.publish("aborted", {"menu": session.menu.name})
        session.on_complete()

    def _after_completion(self, session: ScanSession, item: Item, index: int) -> None:
        if session.generation != self._generation:
            logger.debug("Dropping completion of %r from a stopped scan", item.label)
            return
        menu = session.menu
        if isinstance(item, NavigateMenu) and item.target_menu is not None:
            self._descend(session, item.target_menu, index)
        elif menu.scan_policy is ScanPolicy.REPEAT:
            self.scan_menu(menu, session.on_complete)
        else:
            session.on_complete()

    def _descend(self, session: ScanSession, child: Menu, index: int) -> None:
        """Scan *child*; when it returns, resume or restart the parent menu."""
        menu = session.menu
        if menu.scan_policy is ScanPolicy.REPEAT:
            resume = partial(self.scan_menu, menu, session.on_complete)
        else:
            next_index, next_loop = index + 1, session.gaze_loop
            if next_index >= len(menu.items):
                next_index, next_loop = 0, next_loop + 1
            resume = partial(self.scan_menu, menu, session.on_complete, next_index, next_loop)

        if child.collapsible:
            def on_child_complete() -> None:
                self._view.hide(child)
                resume()

            self.scan_menu(child, on_child_complete)
        else:
            self.scan_menu(child, resume)

    # ──────────────────────────────────────────
    # Teardown
    # ──────────────────────────────────────────

    def _teardown(self, session: ScanSession) -> None:
        """Cancel timers, drop detector listeners and clear the highlight."""
        if session.dwell_timer is not None:
            session.dwell_timer.cancel()
            session.dwell_timer = None
        if session.long_gaze_timer is not None:
            session.long_gaze_timer.cancel()
            session.long_gaze_timer = None
        if session.listening:
            self._detector.remove_begin_listener(self._on_begin)
            self._detector.remove_end_listener(self._on_end)
            session.listening = False
        self._unhighlight(session)
        session.gaze_start = None
        session.closed = True

    def _unhighlight(self, session: ScanSession) -> None:
        if session.highlighted is not None:
            self._view.highlight(session.menu, session.highlighted, False)
            session.highlighted = None

    def _record(self, event: str, data: dict[str, Any]) -> None:
        if self._recorder is not None:
            self._recorder.record("scan", event, data)
