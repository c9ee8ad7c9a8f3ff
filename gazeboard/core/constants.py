"""
gazeboard/core/constants.py — System constants and enums for Gazeboard.

Enums for every closed set of states and policies (detector mode, attention
state, scanner state, menu scan/visibility policy, text category), plus one
frozen dataclass of timing defaults. Configurable values are overridden by
``gazeboard.core.config``; the values here are the built-in defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


# ──────────────────────────────────────────────────────────────
# Enums
# ──────────────────────────────────────────────────────────────

class DetectorMode(Enum):
    """Operating mode of the signal classifier; selects the sampling cadence."""

    IDLE = "idle"
    LISTENING = "listening"
    SCANNING = "scanning"


class AttendState(Enum):
    """Debounced classification of the attention signal."""

    RESTING = "resting"
    ATTENDING = "attending"


class ScannerState(Enum):
    """Top-level mode of the scanner orchestrator."""

    IDLE = "IDLE"
    LISTENING = "LISTENING"
    SCANNING = "SCANNING"


class ScanPolicy(Enum):
    """What a menu does once its scan cycle (or a selection) completes."""

    REPEAT = "repeat"
    FINISH = "finish"


class Visibility(Enum):
    """Whether a menu is always shown or only while it is being scanned."""

    ALWAYS_VISIBLE = "commboard"
    COLLAPSIBLE = "dropdown"


class TextCategory(Enum):
    """Kind of text an EmitText item writes to the buffer."""

    LETTER = "letter"
    SPACE = "space"
    WORD = "word"
    NON_TERMINAL_PUNCTUATION = "non_terminal_punctuation"
    TERMINAL_PUNCTUATION = "terminal_punctuation"


# ──────────────────────────────────────────────────────────────
# Frozen constants dataclass
# ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GazeboardConstants:
    """
    Built-in defaults for Gazeboard timing and audio cues.

    Use the class attributes directly — do not instantiate this class.

    Example::

        from gazeboard.core.constants import C

        print(C.LONG_GAZE_MS)   # 2000.0
    """

    # ── Gaze timing (milliseconds) ────────────────────────────
    SHORT_GAZE_MS: ClassVar[float] = 200.0
    """Gazes shorter than this are noise and ignored."""

    LONG_GAZE_MS: ClassVar[float] = 2000.0
    """Gazes at least this long abort the current menu (or start scanning)."""

    LOOP_LIMIT: ClassVar[int] = 2
    """Number of full passes through a menu before its scan completes."""

    # ── Detector ──────────────────────────────────────────────
    DEBOUNCE_SAMPLES: ClassVar[int] = 10
    """Consecutive consistent samples required to change attention state."""

    LISTEN_RATE_HZ: ClassVar[float] = 5.0
    """Sensor sampling rate while listening for a start signal."""

    SCAN_RATE_HZ: ClassVar[float] = 20.0
    """Sensor sampling rate while scanning a menu."""

    # ── Scan speed control (seconds) ──────────────────────────
    SCAN_SPEED_S: ClassVar[float] = 1.5
    SCAN_SPEED_MIN_S: ClassVar[float] = 0.0
    SCAN_SPEED_MAX_S: ClassVar[float] = 3.0
    SCAN_SPEED_STEP_S: ClassVar[float] = 0.1

    # ── Audio cues ────────────────────────────────────────────
    LONG_GAZE_BEEP_HZ: ClassVar[float] = 300.0
    LONG_GAZE_BEEP_MS: ClassVar[float] = 250.0
    REQUEST_BEEP_HZ: ClassVar[float] = 400.0
    REQUEST_BEEP_MS: ClassVar[float] = 2000.0
    AFTER_BEEP_MS: ClassVar[float] = 1000.0
    AFTER_SPEECH_MS: ClassVar[float] = 1000.0

    # ── Spoken status messages ────────────────────────────────
    LISTENING_TEXT: ClassVar[str] = "listening"
    STOPPING_TEXT: ClassVar[str] = "Stopping"
    NOT_IMPLEMENTED_TEXT: ClassVar[str] = "Not implemented"
    ERROR_TEXT: ClassVar[str] = "An error occurred."
    EMPTY_BUFFER_TEXT: ClassVar[str] = "The buffer is empty."


#: Short alias: ``from gazeboard.core.constants import C``
C = GazeboardConstants
