"""
gazeboard/board/actions.py — What happens when an item is selected.

:class:`ItemPerformer` carries out a selection against the output
collaborators and fires the item's :class:`~gazeboard.board.items.FinishSignal`
exactly once when the side effect is over. Failures are announced to the
user and never propagate into the scan.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

from gazeboard.board.items import (
    BufferAction,
    EmitText,
    FinishSignal,
    Item,
    NavigateMenu,
    Placeholder,
    Request,
    SendEmail,
    ToggleRun,
)
from gazeboard.board.menu import MenuView, NullView
from gazeboard.core.clock import Scheduler
from gazeboard.core.config import RequestConfig
from gazeboard.core.constants import C
from gazeboard.core.settings import Settings
from gazeboard.output.buffer import TextBuffer
from gazeboard.output.tone import Tone
from gazeboard.output.tts import Announcer

if TYPE_CHECKING:
    from gazeboard.core.logger import SessionRecorder
    from gazeboard.output.mailer import SmtpTransport

logger = logging.getLogger(__name__)


class ItemPerformer:
    """
    Executes item selections.

    Args:
        scheduler: Timer source for post-cue and post-speech waits.
        settings: Runtime settings (sound toggle).
        announcer: Speech output.
        tone: Beep output.
        buffer: The text buffer.
        view: Presentation sink for collapsible menus.
        transport: Optional e-mail transport.
        request: Call-bell timing.
        after_speech_ms: Pause after a status message before finishing.
        read_on_select: Speak the item's label before acting when sound is on.
        recorder: Optional session recorder for action failures.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        settings: Settings,
        announcer: Announcer,
        tone: Tone,
        buffer: TextBuffer,
        view: Optional[MenuView] = None,
        transport: Optional["SmtpTransport"] = None,
        request: Optional[RequestConfig] = None,
        after_speech_ms: float = C.AFTER_SPEECH_MS,
        read_on_select: bool = True,
        recorder: Optional["SessionRecorder"] = None,
    ) -> None:
        self._scheduler = scheduler
        self._settings = settings
        self._announcer = announcer
        self._tone = tone
        self._buffer = buffer
        self._view = view or NullView()
        self._transport = transport
        self._request = request or RequestConfig()
        self._after_speech_ms = after_speech_ms
        self._read_on_select = read_on_select
        self._recorder = recorder
        self._stop_scanner: Optional[Callable[[], None]] = None

    def bind_stop(self, stop: Callable[[], None]) -> None:
        """Set the callable a :class:`ToggleRun` item invokes."""
        self._stop_scanner = stop

    def select(self, item: Item, finished: FinishSignal) -> None:
        """
        Perform *item*, reading its label first when sound is on.

        Raises:
            TypeError: If *item* is not a known item variant.
        """
        if self._read_on_select and self._settings.sound_on and item.announcement_text:
            self._announcer.speak(item.announcement_text, lambda: self._act(item, finished))
        else:
            self._act(item, finished)

    # ──────────────────────────────────────────
    # Variant dispatch
    # ──────────────────────────────────────────

    def _act(self, item: Item, finished: FinishSignal) -> None:
        logger.debug("Performing %s %r", item.kind, item.label)
        if isinstance(item, NavigateMenu):
            self._navigate(item, finished)
        elif isinstance(item, EmitText):
            self._buffer.write(item.value, item.category)
            finished()
        elif isinstance(item, BufferAction):
            self._buffer.execute_action(item.action, finished)
        elif isinstance(item, Request):
            self._ring(item, finished)
        elif isinstance(item, ToggleRun):
            self._toggle(finished)
        elif isinstance(item, SendEmail):
            self._send_email(item, finished)
        elif isinstance(item, Placeholder):
            self._say_then(C.NOT_IMPLEMENTED_TEXT, finished)
        else:
            raise TypeError(f"no action for item type {type(item).__name__}")

    def _navigate(self, item: NavigateMenu, finished: FinishSignal) -> None:
        target = item.target_menu
        if target is not None and target.collapsible:
            self._view.show(target)
        if item.collapse_on_slide and target is not None and target.parent is not None:
            parent = target.parent
            if parent.collapsible:
                self._view.hide(parent)
        finished()

    def _ring(self, item: Request, finished: FinishSignal) -> None:
        self._tone.beep(self._request.beep_hz, self._request.beep_ms)
        delay = self._request.beep_ms + self._request.after_beep_ms
        if item.message:
            self._scheduler.call_later(delay, lambda: self._say_then(item.message, finished))
        else:
            self._scheduler.call_later(delay, finished)

    def _toggle(self, finished: FinishSignal) -> None:
        self._tone.beep(self._request.beep_hz, self._request.beep_ms)

        def stop_then_finish() -> None:
            if self._stop_scanner is not None:
                self._stop_scanner()
            finished()

        self._scheduler.call_later(
            self._request.beep_ms + self._request.after_beep_ms, stop_then_finish
        )

    def _send_email(self, item: SendEmail, finished: FinishSignal) -> None:
        def on_done(error: Optional[Exception]) -> None:
            if error is not None:
                logger.error("Sending e-mail to %s failed: %s", item.label, error)
                if self._recorder is not None:
                    self._recorder.record(
                        "action", "action_failed", {"item": item.label, "error": str(error)}
                    )
                self._say_then(C.ERROR_TEXT, finished)
            else:
                self._say_then(f"Message sent to {item.label}", finished)

        if self._transport is None:
            on_done(RuntimeError("no e-mail transport configured"))
            return
        self._transport.send(item.recipients, self._buffer.get_text(), on_done)

    def _say_then(self, text: str, finished: FinishSignal) -> None:
        """Speak *text*, wait ``after_speech_ms``, then finish."""
        def after_speech() -> None:
            if self._after_speech_ms > 0:
                self._scheduler.call_later(self._after_speech_ms, finished)
            else:
                finished()

        self._announcer.speak(text, after_speech)
