"""
gazeboard/gaze/sensors.py — Attention sensor adapters.

Two kinds of adapter feed the :class:`~gazeboard.gaze.detector.SignalClassifier`:

- *Sampled* sensors are polled at the classifier's cadence and return a raw,
  possibly noisy reading (``True`` attending, ``False`` resting, ``None``
  unavailable). Their readings are debounced.
- *Discrete* sensors push already-clean press/release changes (a physical
  switch, a key, the web control). They bypass debounce.

Every adapter is substitutable; none of them is a debug shim.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Iterable, Optional, Protocol

import numpy as np

from gazeboard.core.clock import Scheduler

logger = logging.getLogger(__name__)


class SampledSensor(Protocol):
    """Polled sensor; ``None`` means the reading is unavailable."""

    def sample(self) -> Optional[bool]: ...


class DiscreteSensor(Protocol):
    """Push sensor reporting debounced on/off changes."""

    def connect(self, on_change: Callable[[bool], None]) -> None: ...

    def disconnect(self) -> None: ...


# ──────────────────────────────────────────────────────────────
# Discrete adapters
# ──────────────────────────────────────────────────────────────

class SwitchSensor:
    """
    Single-switch input: a button, a key, or the web ``/switch`` routes.

    Press and release may be called from any thread when a *scheduler* is
    given; the change is then delivered on the scheduler's thread.

    Key bindings for :meth:`inject_key`:
    - ``'d'`` / ``'down'``: switch pressed.
    - ``'u'`` / ``'up'``: switch released.

    Args:
        scheduler: Optional scheduler used to marshal changes.
    """

    _DOWN_KEYS = {"d", "down"}
    _UP_KEYS = {"u", "up"}

    def __init__(self, scheduler: Optional[Scheduler] = None) -> None:
        self._scheduler = scheduler
        self._on_change: Optional[Callable[[bool], None]] = None
        self._pressed = False

    @property
    def pressed(self) -> bool:
        return self._pressed

    def connect(self, on_change: Callable[[bool], None]) -> None:
        self._on_change = on_change

    def disconnect(self) -> None:
        self._on_change = None

    def press(self) -> None:
        self._deliver(True)

    def release(self) -> None:
        self._deliver(False)

    def inject_key(self, key: str) -> bool:
        """
        Translate a key name into a press or release.

        Returns:
            True if the key was recognised.
        """
        key = key.strip().lower()
        if key in self._DOWN_KEYS:
            self.press()
            return True
        if key in self._UP_KEYS:
            self.release()
            return True
        return False

    def _deliver(self, positive: bool) -> None:
        if self._scheduler is not None:
            self._scheduler.call_soon_threadsafe(lambda: self._apply(positive))
        else:
            self._apply(positive)

    def _apply(self, positive: bool) -> None:
        self._pressed = positive
        if self._on_change is not None:
            self._on_change(positive)


# ──────────────────────────────────────────────────────────────
# Sampled adapters
# ──────────────────────────────────────────────────────────────

class NullSensor:
    """Sensor that is never available; the classifier stays resting."""

    def sample(self) -> Optional[bool]:
        return None


class ScriptedSensor:
    """
    Replays a fixed sequence of readings, one per sample.

    Args:
        steps: ``(reading, n_samples)`` pairs played in order.
        final: Reading returned once the script is exhausted.
    """

    def __init__(
        self,
        steps: Iterable[tuple[Optional[bool], int]] = (),
        final: Optional[bool] = False,
    ) -> None:
        self._queue: deque[Optional[bool]] = deque()
        self._lock = threading.Lock()
        self._final = final
        self.extend(steps)

    def extend(self, steps: Iterable[tuple[Optional[bool], int]]) -> None:
        """Append more ``(reading, n_samples)`` steps to the script."""
        with self._lock:
            for reading, count in steps:
                if count < 0:
                    raise ValueError(f"sample count must be >= 0, got {count}")
                self._queue.extend([reading] * count)

    @property
    def exhausted(self) -> bool:
        return not self._queue

    def sample(self) -> Optional[bool]:
        with self._lock:
            if self._queue:
                return self._queue.popleft()
        return self._final


class TemplateSensor:
    """
    Classifies frames by L1 distance to a resting and a gazing template.

    A frame is *attending* when it is closer to the gaze template than to the
    rest template. Only the first three channels are compared, so RGBA frames
    are accepted with their alpha ignored. Frame capture is injected; this
    class never opens a camera.

    Args:
        frame_source: Callable returning the latest frame, or None if no
            frame is available.
        rest_template: Reference frame of the user looking ahead.
        gaze_template: Reference frame of the user gazing up.

    Raises:
        ValueError: If the two templates differ in shape.
    """

    def __init__(
        self,
        frame_source: Callable[[], Optional[np.ndarray]],
        rest_template: np.ndarray,
        gaze_template: np.ndarray,
    ) -> None:
        rest = self._colour(rest_template)
        gaze = self._colour(gaze_template)
        if rest.shape != gaze.shape:
            raise ValueError(
                f"template shapes differ: rest {rest.shape}, gaze {gaze.shape}"
            )
        self._source = frame_source
        self._rest = rest
        self._gaze = gaze

    def distances(self, frame: np.ndarray) -> tuple[float, float]:
        """
        Return ``(distance_to_rest, distance_to_gaze)`` for *frame*.

        Raises:
            ValueError: If *frame* does not match the template dimensions.
        """
        pixels = self._colour(frame)
        if pixels.shape != self._rest.shape:
            raise ValueError(
                f"frame shape {pixels.shape} does not match templates {self._rest.shape}"
            )
        rest = float(np.abs(pixels - self._rest).sum())
        gaze = float(np.abs(pixels - self._gaze).sum())
        return rest, gaze

    def sample(self) -> Optional[bool]:
        frame = self._source()
        if frame is None:
            return None
        rest, gaze = self.distances(frame)
        return gaze < rest

    @staticmethod
    def _colour(image: np.ndarray) -> np.ndarray:
        array = np.asarray(image, dtype=np.int32)
        if array.ndim == 3:
            array = array[..., :3]
        return array
