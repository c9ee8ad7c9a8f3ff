"""
gazeboard/core/settings.py — Runtime user settings.

Unlike :mod:`gazeboard.core.config` (frozen, loaded once), these values are
changed by the carer while the board is running: the scan speed slider and
the sound toggle. Listeners are notified on every change.
"""

from __future__ import annotations

import logging
from typing import Callable

from gazeboard.core.config import ScanConfig
from gazeboard.core.events import ListenerRegistry

logger = logging.getLogger(__name__)


class ScanSpeed:
    """
    Bounded, stepped scan-speed control.

    Values are clamped to ``[minimum, maximum]`` seconds and snapped to the
    nearest ``step``.

    Args:
        initial_s: Starting speed in seconds.
        minimum_s: Lower bound in seconds.
        maximum_s: Upper bound in seconds.
        step_s: Granularity of the control in seconds.
    """

    def __init__(
        self,
        initial_s: float = 1.5,
        minimum_s: float = 0.0,
        maximum_s: float = 3.0,
        step_s: float = 0.1,
    ) -> None:
        if minimum_s > maximum_s:
            raise ValueError(f"minimum {minimum_s} exceeds maximum {maximum_s}")
        if step_s <= 0:
            raise ValueError(f"step must be positive, got {step_s}")
        self._min = minimum_s
        self._max = maximum_s
        self._step = step_s
        self._value = self._snap(initial_s)
        self._listeners = ListenerRegistry("scan_speed")

    @classmethod
    def from_config(cls, config: ScanConfig) -> "ScanSpeed":
        """Build the control from the ``scan`` config section."""
        return cls(
            initial_s=config.scan_speed_s,
            minimum_s=config.scan_speed_min_s,
            maximum_s=config.scan_speed_max_s,
            step_s=config.scan_speed_step_s,
        )

    @property
    def seconds(self) -> float:
        """Current scan speed in seconds."""
        return self._value

    @property
    def ms(self) -> float:
        """Current scan speed in milliseconds."""
        return self._value * 1000.0

    @property
    def bounds(self) -> tuple[float, float]:
        return (self._min, self._max)

    def set_seconds(self, value: float) -> float:
        """
        Set the speed, clamping and snapping to the control's range.

        Returns:
            The value actually applied.
        """
        new_value = self._snap(value)
        if new_value != self._value:
            self._value = new_value
            logger.info("Scan speed set to %.1f s", new_value)
            self._listeners.emit(new_value)
        return self._value

    def step_up(self) -> float:
        return self.set_seconds(self._value + self._step)

    def step_down(self) -> float:
        return self.set_seconds(self._value - self._step)

    def add_listener(self, listener: Callable[[float], None]) -> None:
        self._listeners.add(listener)

    def remove_listener(self, listener: Callable[[float], None]) -> None:
        self._listeners.remove(listener)

    def _snap(self, value: float) -> float:
        clamped = min(max(float(value), self._min), self._max)
        steps = round((clamped - self._min) / self._step)
        return round(min(self._min + steps * self._step, self._max), 6)


class Settings:
    """
    Mutable session settings shared by the scan engine and item actions.

    Args:
        scan_speed: The bounded scan-speed control.
        sound_on: Whether highlighted items are narrated.
    """

    def __init__(self, scan_speed: ScanSpeed, sound_on: bool = True) -> None:
        self.scan_speed = scan_speed
        self._sound_on = sound_on

    @classmethod
    def from_config(cls, config: ScanConfig) -> "Settings":
        return cls(ScanSpeed.from_config(config), sound_on=config.announce)

    @property
    def sound_on(self) -> bool:
        return self._sound_on

    @sound_on.setter
    def sound_on(self, value: bool) -> None:
        self._sound_on = bool(value)
        logger.info("Sound %s", "on" if self._sound_on else "off")
