"""
gazeboard/output/buffer.py — The text being composed.

Plain text assembly only: letters and punctuation are appended, a word
replaces the partial word before it and is followed by a space, terminal
punctuation is followed by a space. Change listeners receive the new text.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

from gazeboard.core.constants import C, TextCategory
from gazeboard.core.events import ListenerRegistry

if TYPE_CHECKING:
    from gazeboard.core.clock import Scheduler
    from gazeboard.output.tts import Announcer

logger = logging.getLogger(__name__)

_TERMINAL_MARKS = ".!?"


class TextBuffer:
    """
    Append-mostly text buffer with named actions.

    Args:
        announcer: Used by the ``read`` action; without one, ``read`` finishes
            immediately.
        scheduler: Delays completion of ``read`` by *after_speech_ms*.
        after_speech_ms: Pause after speech before ``read`` finishes.
    """

    def __init__(
        self,
        announcer: Optional["Announcer"] = None,
        scheduler: Optional["Scheduler"] = None,
        after_speech_ms: float = C.AFTER_SPEECH_MS,
    ) -> None:
        self._text = ""
        self._announcer = announcer
        self._scheduler = scheduler
        self._after_speech_ms = after_speech_ms
        self._changes = ListenerRegistry("buffer_change")
        self._actions: dict[str, Callable[[Callable[[], None]], None]] = {
            "delete": self._delete,
            "read": self._read,
            "clear": self._clear,
        }

    @property
    def text(self) -> str:
        return self._text

    def get_text(self) -> str:
        return self._text

    def write(self, text: str, category: TextCategory) -> None:
        """Append *text* according to its category and notify listeners."""
        if category is TextCategory.WORD:
            self._text = self._text[: self._word_start()] + text + " "
        elif category is TextCategory.SPACE:
            self._text += " "
        elif category is TextCategory.TERMINAL_PUNCTUATION:
            if self._text.endswith(" ") and not self._at_sentence_start():
                self._text = self._text[:-1]
            self._text += text + " "
        else:
            self._text += text
        logger.debug("Buffer: %r", self._text)
        self._changes.emit(self._text)

    def execute_action(self, name: str, on_finished: Callable[[], None]) -> None:
        """
        Run the buffer action *name*, then call *on_finished* once.

        Raises:
            ValueError: If *name* is not a known action.
        """
        action = self._actions.get(name)
        if action is None:
            raise ValueError(f"unknown buffer action {name!r}")
        action(on_finished)

    def add_change_listener(self, listener: Callable[[str], None]) -> None:
        self._changes.add(listener)

    def remove_change_listener(self, listener: Callable[[str], None]) -> None:
        self._changes.remove(listener)

    # ──────────────────────────────────────────
    # Actions
    # ──────────────────────────────────────────

    def _delete(self, on_finished: Callable[[], None]) -> None:
        self._text = self._text[:-1]
        self._changes.emit(self._text)
        on_finished()

    def _clear(self, on_finished: Callable[[], None]) -> None:
        self._text = ""
        self._changes.emit(self._text)
        on_finished()

    def _read(self, on_finished: Callable[[], None]) -> None:
        if self._announcer is None:
            on_finished()
            return
        spoken = self._text.strip() or C.EMPTY_BUFFER_TEXT
        self._announcer.speak(spoken, lambda: self._after_speech(on_finished))

    def _after_speech(self, on_finished: Callable[[], None]) -> None:
        if self._scheduler is None or self._after_speech_ms <= 0:
            on_finished()
        else:
            self._scheduler.call_later(self._after_speech_ms, on_finished)

    # ──────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────

    def _word_start(self) -> int:
        return self._text.rfind(" ") + 1

    def _at_sentence_start(self) -> bool:
        stripped = self._text.rstrip(" ")
        return not stripped or stripped[-1] in _TERMINAL_MARKS

    def __repr__(self) -> str:
        return f"TextBuffer(text={self._text!r})"
