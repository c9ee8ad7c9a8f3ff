"""
gazeboard/gaze/detector.py — Debounced attention classifier.

Turns a noisy, periodically sampled attention reading into discrete
``begin``/``end`` events. The sampling cadence follows the operating mode:
slow while listening for a start signal, fast while scanning, stopped while
idle. Discrete switch input bypasses the debounce and is delivered directly.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from gazeboard.core.clock import Scheduler, TimerHandle
from gazeboard.core.config import DetectorConfig
from gazeboard.core.constants import AttendState, C, DetectorMode
from gazeboard.core.events import ListenerRegistry
from gazeboard.gaze.sensors import DiscreteSensor, SampledSensor

logger = logging.getLogger(__name__)


class SignalClassifier:
    """
    Debounced two-state classifier over a sampled sensor.

    From ``RESTING``, ``debounce_samples`` consecutive positive readings move
    the classifier to ``ATTENDING`` and emit ``begin``; the reverse emits
    ``end``. Any reading that agrees with the current state resets the
    counter. An unavailable reading (``None`` or a sensor exception) also
    resets the counter, so a dead sensor leaves the classifier resting.

    Args:
        scheduler: Timer source for the sampling loop.
        sensor: Optional sampled sensor (camera templates, scripted replay).
        switch: Optional discrete sensor; its changes are not debounced and
            are ignored while the mode is ``IDLE``.
        debounce_samples: Consecutive readings needed to change state.
        listen_rate_hz: Sampling rate in ``LISTENING`` mode.
        scan_rate_hz: Sampling rate in ``SCANNING`` mode.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        sensor: Optional[SampledSensor] = None,
        switch: Optional[DiscreteSensor] = None,
        debounce_samples: int = C.DEBOUNCE_SAMPLES,
        listen_rate_hz: float = C.LISTEN_RATE_HZ,
        scan_rate_hz: float = C.SCAN_RATE_HZ,
    ) -> None:
        if debounce_samples < 1:
            raise ValueError(f"debounce_samples must be >= 1, got {debounce_samples}")
        self._scheduler = scheduler
        self._sensor = sensor
        self._switch = switch
        self._debounce = debounce_samples
        self._intervals_ms = {
            DetectorMode.LISTENING: 1000.0 / listen_rate_hz,
            DetectorMode.SCANNING: 1000.0 / scan_rate_hz,
        }

        self._mode = DetectorMode.IDLE
        self._state = AttendState.RESTING
        self._count = 0
        self._tick: Optional[TimerHandle] = None
        self._unavailable = False

        self._begin = ListenerRegistry("begin")
        self._end = ListenerRegistry("end")

        if switch is not None:
            switch.connect(self._on_switch)

    @classmethod
    def from_config(
        cls,
        config: DetectorConfig,
        scheduler: Scheduler,
        sensor: Optional[SampledSensor] = None,
        switch: Optional[DiscreteSensor] = None,
    ) -> "SignalClassifier":
        return cls(
            scheduler,
            sensor=sensor,
            switch=switch,
            debounce_samples=config.debounce_samples,
            listen_rate_hz=config.listen_rate_hz,
            scan_rate_hz=config.scan_rate_hz,
        )

    # ──────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────

    @property
    def mode(self) -> DetectorMode:
        return self._mode

    @property
    def state(self) -> AttendState:
        return self._state

    @property
    def consecutive_count(self) -> int:
        return self._count

    @property
    def sensor(self) -> Optional[SampledSensor]:
        """The polled sensor, or None when only the switch drives the signal."""
        return self._sensor

    def set_mode(self, mode: DetectorMode) -> None:
        """
        Change the operating mode and restart the sampling loop at its cadence.

        Entering ``IDLE`` stops sampling and silently returns to ``RESTING``.
        """
        if self._tick is not None:
            self._tick.cancel()
            self._tick = None
        previous, self._mode = self._mode, mode
        if mode is DetectorMode.IDLE:
            self._state = AttendState.RESTING
            self._count = 0
        elif self._sensor is not None:
            self._tick = self._scheduler.call_later(self._intervals_ms[mode], self._on_tick)
        if previous is not mode:
            logger.debug("Detector mode %s → %s", previous.value, mode.value)

    def on_begin(self, listener: Callable[[], None]) -> None:
        self._begin.add(listener)

    def on_end(self, listener: Callable[[], None]) -> None:
        self._end.add(listener)

    def remove_begin_listener(self, listener: Callable[[], None]) -> None:
        self._begin.remove(listener)

    def remove_end_listener(self, listener: Callable[[], None]) -> None:
        self._end.remove(listener)

    def process_sample(self, reading: Optional[bool]) -> None:
        """
        Feed one raw reading through the debounce.

        Args:
            reading: ``True`` attending, ``False`` resting, ``None`` unavailable.
        """
        if reading is None:
            if not self._unavailable:
                logger.warning("Attention sensor unavailable; staying %s", self._state.value)
                self._unavailable = True
            self._count = 0
            return
        if self._unavailable:
            logger.info("Attention sensor available again")
            self._unavailable = False

        target = AttendState.ATTENDING if reading else AttendState.RESTING
        if target is self._state:
            self._count = 0
            return
        self._count += 1
        if self._count >= self._debounce:
            self._change_state(target)

    def close(self) -> None:
        """Stop sampling and detach the switch."""
        self.set_mode(DetectorMode.IDLE)
        if self._switch is not None:
            self._switch.disconnect()

    # ──────────────────────────────────────────
    # Internal
    # ──────────────────────────────────────────

    def _on_tick(self) -> None:
        # Reschedule before sampling so a listener that changes mode replaces this tick.
        self._tick = self._scheduler.call_later(self._intervals_ms[self._mode], self._on_tick)
        try:
            reading = self._sensor.sample() if self._sensor is not None else None
        except Exception as exc:  # noqa: BLE001
            log = logger.debug if self._unavailable else logger.warning
            log("Sensor sample failed: %s", exc)
            reading = None
        self.process_sample(reading)

    def _on_switch(self, positive: bool) -> None:
        if self._mode is DetectorMode.IDLE:
            logger.debug("Switch %s ignored while idle", "down" if positive else "up")
            return
        target = AttendState.ATTENDING if positive else AttendState.RESTING
        if target is not self._state:
            self._change_state(target)

    def _change_state(self, target: AttendState) -> None:
        self._state = target
        self._count = 0
        logger.debug("Attention %s", target.value)
        if target is AttendState.ATTENDING:
            self._begin.emit()
        else:
            self._end.emit()

    def __repr__(self) -> str:
        return (
            f"SignalClassifier(mode={self._mode.value}, state={self._state.value}, "
            f"count={self._count})"
        )
