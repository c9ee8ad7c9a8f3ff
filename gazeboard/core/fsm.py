"""
gazeboard/core/fsm.py — Scanner mode state machine.

``IDLE → LISTENING → SCANNING → LISTENING … → IDLE``. Moves outside the
allowed map raise :class:`InvalidTransitionError`; :meth:`ScannerFSM.reset`
is the one unconditional way back to IDLE. The last 50 moves are kept for
the web dashboard.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Optional

from gazeboard.core.constants import ScannerState

logger = logging.getLogger(__name__)

TransitionCallback = Callable[[ScannerState, ScannerState, str], None]


class InvalidTransitionError(RuntimeError):
    """
    A scanner mode change that the transition map does not allow.

    Args:
        from_state: Mode the scanner was in.
        to_state: Mode that was requested.
        reason: Why the caller asked for it.
    """

    def __init__(self, from_state: ScannerState, to_state: ScannerState, reason: str = "") -> None:
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        message = f"Scanner cannot go from {from_state.value} to {to_state.value}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


# ──────────────────────────────────────────────────────────────
# Allowed moves
# ──────────────────────────────────────────────────────────────

_VALID_TRANSITIONS: dict[ScannerState, tuple[ScannerState, ...]] = {
    ScannerState.IDLE: (ScannerState.LISTENING,),
    ScannerState.LISTENING: (ScannerState.SCANNING, ScannerState.IDLE),
    ScannerState.SCANNING: (ScannerState.LISTENING, ScannerState.IDLE),
}

_HISTORY_LIMIT = 50
_RESET_REASON = "RESET"


@dataclass(frozen=True)
class Transition:
    """One recorded mode change."""

    source: ScannerState
    target: ScannerState
    reason: str
    timestamp: float = field(default_factory=time.time)

    def as_dict(self) -> dict:
        return {
            "from": self.source.value,
            "to": self.target.value,
            "reason": self.reason,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        suffix = f"[{self.reason}]" if self.reason else ""
        return f"{self.source.value}→{self.target.value}{suffix}"


class ScannerFSM:
    """
    Mode holder for the :class:`~gazeboard.scan.scanner.Scanner`.

    Args:
        on_transition: Called after every change (resets included) as
            ``on_transition(from_state, to_state, reason)``.
    """

    def __init__(self, on_transition: Optional[TransitionCallback] = None) -> None:
        self._state = ScannerState.IDLE
        self._lock = threading.Lock()
        self._history: deque[Transition] = deque(maxlen=_HISTORY_LIMIT)
        self._on_transition = on_transition
        self._enter_hooks: dict[ScannerState, Callable[[], None]] = {
            ScannerState.IDLE: self._on_enter_idle,
            ScannerState.LISTENING: self._on_enter_listening,
            ScannerState.SCANNING: self._on_enter_scanning,
        }

    @property
    def current_state(self) -> ScannerState:
        with self._lock:
            return self._state

    def can_transition(self, target: ScannerState) -> bool:
        return target in _VALID_TRANSITIONS[self.current_state]

    def transition(self, new_state: ScannerState, reason: str = "") -> None:
        """
        Move to *new_state*.

        Raises:
            InvalidTransitionError: If the map does not allow the move; the
                mode is left unchanged.
        """
        with self._lock:
            previous = self._state
            if new_state not in _VALID_TRANSITIONS[previous]:
                raise InvalidTransitionError(previous, new_state, reason)
            entry = self._move(previous, new_state, reason)
        logger.info("Scanner %s", entry)
        self._after(entry)

    def reset(self) -> None:
        """Return to IDLE from anywhere, recorded with reason ``RESET``."""
        with self._lock:
            entry = self._move(self._state, ScannerState.IDLE, _RESET_REASON)
        logger.warning("Scanner reset from %s", entry.source.value)
        self._after(entry)

    def get_history(self) -> list[dict]:
        """Oldest-first copies of the recorded moves (``from``, ``to``, ``reason``, ``timestamp``)."""
        with self._lock:
            return [entry.as_dict() for entry in self._history]

    # on_enter hooks: subclasses override these

    def _on_enter_idle(self) -> None:
        logger.debug("Scanner idle; detector stopped")

    def _on_enter_listening(self) -> None:
        logger.debug("Scanner listening for a long gaze")

    def _on_enter_scanning(self) -> None:
        logger.debug("Scanner scanning menus")

    def _move(self, source: ScannerState, target: ScannerState, reason: str) -> Transition:
        """Switch state and record it. Called with the lock held."""
        entry = Transition(source, target, reason)
        self._state = target
        self._history.append(entry)
        return entry

    def _after(self, entry: Transition) -> None:
        self._enter_hooks[entry.target]()
        if self._on_transition is not None:
            self._on_transition(entry.source, entry.target, entry.reason)

    def __repr__(self) -> str:
        with self._lock:
            last = str(self._history[-1]) if self._history else "none"
            return f"ScannerFSM(state={self._state.value}, last={last})"
