"""
gazeboard/app.py — Assembles a complete board from configuration.

:class:`GazeboardApp` owns every collaborator (settings, detector, menus,
engine, scanner, outputs). Any collaborator can be passed in, which is how
tests run a full board on a fake clock with recording fakes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from gazeboard.board.actions import ItemPerformer
from gazeboard.board.guess import GuessRefresher, Guesser, PrefixGuesser
from gazeboard.board.layout import build_tree
from gazeboard.board.menu import MenuTree, MenuView, NullView
from gazeboard.core.clock import AsyncioScheduler, Scheduler
from gazeboard.core.config import GazeboardConfig, load_config
from gazeboard.core.logger import SessionRecorder
from gazeboard.core.settings import Settings
from gazeboard.gaze.detector import SignalClassifier
from gazeboard.gaze.sensors import NullSensor, SampledSensor, ScriptedSensor, SwitchSensor
from gazeboard.output.buffer import TextBuffer
from gazeboard.output.mailer import SmtpTransport
from gazeboard.output.tone import Tone, ToneGenerator
from gazeboard.output.tts import Announcer, build_announcer
from gazeboard.scan.engine import ScanEngine
from gazeboard.scan.scanner import Scanner

logger = logging.getLogger(__name__)


def _default_sensor(kind: str) -> Optional[SampledSensor]:
    if kind == "null":
        return NullSensor()
    if kind == "scripted":
        return ScriptedSensor()
    return None


class GazeboardApp:
    """
    A fully wired communication board.

    Args:
        config: Validated configuration.
        scheduler: Timer source shared by every component.
        announcer: Speech output; built from ``config.tts`` when omitted.
        tone: Beep output; built from ``config.tone`` when omitted.
        view: Presentation sink; headless when omitted.
        sensor: Sampled attention sensor; chosen by ``config.detector.sensor``
            when omitted (the switch is always available).
        switch: Discrete switch input.
        transport: E-mail transport.
        recorder: Session recorder.
        tree: Menu tree; built from ``config.board`` when omitted.
        guesser: Word-guess source.
    """

    def __init__(
        self,
        config: GazeboardConfig,
        scheduler: Scheduler,
        announcer: Optional[Announcer] = None,
        tone: Optional[Tone] = None,
        view: Optional[MenuView] = None,
        sensor: Optional[SampledSensor] = None,
        switch: Optional[SwitchSensor] = None,
        transport: Optional[SmtpTransport] = None,
        recorder: Optional[SessionRecorder] = None,
        tree: Optional[MenuTree] = None,
        guesser: Optional[Guesser] = None,
    ) -> None:
        self.config = config
        self.scheduler = scheduler
        self.settings = Settings.from_config(config.scan)
        self.recorder = recorder or SessionRecorder.from_config(config.logging)
        self.announcer = announcer or build_announcer(config.tts, scheduler)
        self.tone = tone or ToneGenerator(config.tone)
        self.view = view or NullView()
        self.buffer = TextBuffer(self.announcer, scheduler, config.tts.after_speech_ms)
        self.tree = tree or build_tree(config.board, config.email)

        self.guesses: Optional[GuessRefresher] = None
        guess_menu = self.tree.get(config.board.guess_menu)
        if guess_menu is not None:
            if guesser is None and config.board.word_list:
                guesser = PrefixGuesser.from_file(config.board.word_list)
            self.guesses = GuessRefresher(guess_menu, self.buffer, guesser)

        self.switch = switch or SwitchSensor(scheduler)
        self.detector = SignalClassifier.from_config(
            config.detector,
            scheduler,
            sensor=sensor if sensor is not None else _default_sensor(config.detector.sensor),
            switch=self.switch,
        )
        self.transport = transport or SmtpTransport(config.email, scheduler)
        self.performer = ItemPerformer(
            scheduler,
            self.settings,
            self.announcer,
            self.tone,
            self.buffer,
            view=self.view,
            transport=self.transport,
            request=config.request,
            after_speech_ms=config.tts.after_speech_ms,
            read_on_select=config.scan.read_on_select,
            recorder=self.recorder,
        )
        self.engine = ScanEngine(
            scheduler,
            self.detector,
            self.performer,
            self.settings,
            self.announcer,
            self.tone,
            view=self.view,
            config=config.scan,
            recorder=self.recorder,
        )
        self.scanner = Scanner(
            self.engine,
            self.detector,
            self.tree,
            self.announcer,
            self.tone,
            scheduler,
            config=config.scan,
            recorder=self.recorder,
        )
        self.performer.bind_stop(self.scanner.stop)

        for menu in self.tree.collapsible():
            self.view.hide(menu)
        logger.info("Gazeboard ready (%d menus, sensor=%s)", len(self.tree), config.detector.sensor)

    def snapshot(self) -> dict[str, Any]:
        """State for UIs: scanner mode, active menu and highlight, buffer, speed."""
        return {
            "scanner": self.scanner.state.value,
            **self.engine.snapshot(),
            "buffer": self.buffer.get_text(),
            "scan_speed_s": self.settings.scan_speed.seconds,
            "sound_on": self.settings.sound_on,
            "guesses": self.guesses.guesses if self.guesses is not None else [],
        }

    def shutdown(self) -> None:
        """Stop scanning and release outputs."""
        self.scanner.stop()
        self.detector.close()
        shutdown = getattr(self.announcer, "shutdown", None)
        if callable(shutdown):
            shutdown()
        self.recorder.close()
        logger.info("Gazeboard shut down")


def build_app(config_path: Path | str | None = None, **overrides: Any) -> GazeboardApp:
    """Load configuration and build a board on an asyncio scheduler."""
    config = load_config(config_path)
    scheduler = overrides.pop("scheduler", None) or AsyncioScheduler()
    return GazeboardApp(config, scheduler, **overrides)
