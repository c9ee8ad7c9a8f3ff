"""
gazeboard/output/tone.py — Sine-wave beeps.

Used for the long-gaze cue and for call-bell requests. Samples are rendered
with numpy and played through simpleaudio when it is installed; otherwise
beeps are logged only.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import numpy as np

from gazeboard.core.config import ToneConfig

logger = logging.getLogger(__name__)


class Tone(Protocol):
    def beep(self, frequency_hz: float, duration_ms: float) -> None: ...


class ToneGenerator:
    """
    Non-blocking beep player.

    Args:
        config: Tone configuration (sample rate, volume, enabled flag).
    """

    def __init__(self, config: ToneConfig) -> None:
        self._cfg = config
        self._backend: Optional[Any] = None
        if config.enabled:
            self._load_backend()

    @property
    def available(self) -> bool:
        return self._backend is not None

    def render(self, frequency_hz: float, duration_ms: float) -> np.ndarray:
        """Return the beep as mono 16-bit samples."""
        n_samples = int(self._cfg.sample_rate * duration_ms / 1000.0)
        t = np.arange(n_samples) / self._cfg.sample_rate
        wave = np.sin(2 * np.pi * frequency_hz * t) * self._cfg.volume
        return (wave * 32767).astype(np.int16)

    def beep(self, frequency_hz: float, duration_ms: float) -> None:
        """Start a beep and return immediately."""
        if self._backend is None:
            logger.debug("Beep %.0f Hz for %.0f ms (no audio output)", frequency_hz, duration_ms)
            return
        samples = self.render(frequency_hz, duration_ms)
        try:
            self._backend.play_buffer(samples, 1, 2, self._cfg.sample_rate)
        except Exception as exc:  # noqa: BLE001
            logger.error("Beep playback failed: %s", exc)

    def _load_backend(self) -> None:
        try:
            import simpleaudio as sa  # type: ignore[import]  # optional dep
        except ImportError:
            logger.warning("simpleaudio not installed — beeps will be logged only")
            return
        self._backend = sa
