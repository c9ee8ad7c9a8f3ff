"""
gazeboard/output/tts.py — Spoken output.

:class:`TTSAnnouncer` speaks offline through pyttsx3 on a daemon speech
thread; :class:`LogAnnouncer` only logs, for headless runs. Both honour the
same contract: ``announce`` is fire-and-forget, ``speak`` calls its
completion callback exactly once, on the scheduler's thread.
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import pyttsx3  # type: ignore[import]

from gazeboard.core.clock import Scheduler
from gazeboard.core.config import TTSConfig

logger = logging.getLogger(__name__)

# Queued by shutdown() to end the speech thread
_SHUTDOWN = object()


class Announcer(Protocol):
    def announce(self, text: str) -> None: ...

    def speak(self, text: str, on_finished: Callable[[], None]) -> None: ...


@dataclass
class _SpeechJob:
    """A single utterance queued for the speech thread."""

    text: str
    generation: int
    on_finished: Optional[Callable[[], None]] = None


class TTSAnnouncer:
    """
    Offline text-to-speech wrapping pyttsx3.

    Narration from :meth:`announce` is superseded by newer narration, so a
    fast scan never builds up a backlog of stale labels. Utterances from
    :meth:`speak` are never dropped: their completion gates the scan.

    If the engine fails to initialise, text is logged instead and callbacks
    still fire.

    Args:
        config: TTS configuration (rate, volume, voice).
        scheduler: Receives completion callbacks from the speech thread.
    """

    def __init__(self, config: TTSConfig, scheduler: Scheduler) -> None:
        self._cfg = config
        self._scheduler = scheduler
        self._jobs: queue.Queue[object] = queue.Queue()
        self._generation = itertools.count(1)
        self._latest_announce = 0
        self._guard = threading.Lock()
        self._engine = _open_engine(config)
        self._thread = threading.Thread(target=self._run, name="speech", daemon=True)
        self._thread.start()

    # ──────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────

    @property
    def available(self) -> bool:
        return self._engine is not None

    def announce(self, text: str) -> None:
        """Queue narration; any narration not yet spoken is dropped."""
        text = text.strip()
        if not text:
            return
        with self._guard:
            generation = next(self._generation)
            self._latest_announce = generation
        self._jobs.put(_SpeechJob(text, generation))

    def speak(self, text: str, on_finished: Callable[[], None]) -> None:
        """Queue an utterance and call *on_finished* once it has been spoken."""
        with self._guard:
            generation = next(self._generation)
        self._jobs.put(_SpeechJob(text.strip(), generation, on_finished))

    def shutdown(self) -> None:
        """Ask the speech thread to exit and wait up to three seconds for it."""
        self._jobs.put(_SHUTDOWN)
        self._thread.join(timeout=3.0)
        logger.info("TTSAnnouncer stopped")

    # ──────────────────────────────────────────
    # Speech thread
    # ──────────────────────────────────────────

    def _run(self) -> None:
        for job in iter(self._jobs.get, _SHUTDOWN):
            assert isinstance(job, _SpeechJob)
            if job.on_finished is None and self._superseded(job):
                continue
            self._utter(job.text)
            if job.on_finished is not None:
                self._scheduler.call_soon_threadsafe(job.on_finished)

    def _superseded(self, job: _SpeechJob) -> bool:
        with self._guard:
            return job.generation < self._latest_announce

    def _utter(self, text: str) -> None:
        if not text:
            return
        if self._engine is None:
            logger.info("TTS (unavailable): %s", text)
            return
        try:
            self._engine.say(text)
            self._engine.runAndWait()
        except Exception as exc:  # noqa: BLE001
            logger.error("Speech failed for %r: %s", text, exc)


def _open_engine(config: TTSConfig) -> Optional["pyttsx3.Engine"]:
    """
    Create a pyttsx3 engine with the configured voice, or None on failure.

    pyttsx3 engines are not thread-safe; the returned engine is only driven
    from the speech thread.
    """
    try:
        engine = pyttsx3.init()
        for name, value in (
            ("rate", config.rate),
            ("volume", config.volume),
            ("voice", config.voice_id),
        ):
            if value not in (None, ""):
                engine.setProperty(name, value)
    except Exception as exc:  # noqa: BLE001
        logger.error("pyttsx3 unavailable (%s); speech will be logged only", exc)
        return None
    logger.info("Speech ready (rate=%d, volume=%.1f)", config.rate, config.volume)
    return engine


class LogAnnouncer:
    """
    Headless announcer: logs the text and simulates speech duration.

    Args:
        scheduler: Runs completion callbacks.
        speech_ms: Simulated duration of each utterance.
    """

    def __init__(self, scheduler: Scheduler, speech_ms: float = 0.0) -> None:
        self._scheduler = scheduler
        self._speech_ms = speech_ms

    def announce(self, text: str) -> None:
        logger.info("Announce: %s", text)

    def speak(self, text: str, on_finished: Callable[[], None]) -> None:
        logger.info("Speak: %s", text)
        self._scheduler.call_later(self._speech_ms, on_finished)


def build_announcer(config: TTSConfig, scheduler: Scheduler) -> Announcer:
    """Return the announcer selected by ``tts.engine``."""
    if config.engine == "log":
        return LogAnnouncer(scheduler)
    return TTSAnnouncer(config, scheduler)
