"""
gazeboard/core/logger.py — Logging setup and JSONL session recorder.

:func:`setup_logging` configures the ``gazeboard`` logger hierarchy (stderr
plus a rotating file). :class:`SessionRecorder` writes one JSON object per
line to ``<session_dir>/session_{date}.jsonl``, rotating automatically each
day, so a carer can review what was selected and when.

Usage::

    from gazeboard.core.logger import SessionRecorder
    recorder = SessionRecorder("logs")
    recorder.record("scan", "selected", {"menu": "row1", "item": "A"})
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import platform
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, TextIO

from gazeboard.core.config import LoggingConfig

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s — %(message)s"


def setup_logging(config: LoggingConfig, level: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``gazeboard`` logger: stderr plus a rotating log file.

    Calling this twice replaces the handlers installed by the first call.

    Args:
        config: The ``logging`` config section.
        level: Optional override of ``config.level`` (e.g. from the CLI).

    Returns:
        The configured ``gazeboard`` logger.
    """
    root = logging.getLogger("gazeboard")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_LOG_FORMAT)

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(getattr(logging, (level or config.level).upper(), logging.INFO))
    root.propagate = False
    return root


class SessionRecorder:
    """
    Thread-safe JSONL recorder for scan session events.

    Fields written per entry:

    .. code-block:: json

        {
          "timestamp_iso": "2026-02-25T01:20:49.123456+00:00",
          "phase": "scan",
          "event": "selected",
          "data": {"menu": "row1", "item": "A"}
        }

    Args:
        session_dir: Directory for the daily ``session_{date}.jsonl`` files.
        enabled: When False, :meth:`record` is a no-op and nothing is opened.
    """

    def __init__(self, session_dir: str | Path = "logs", enabled: bool = True) -> None:
        self._dir = Path(session_dir)
        self._enabled = enabled
        self._lock = threading.Lock()
        self._file: Optional[TextIO] = None
        self._current_date = ""
        if enabled:
            self._write_startup()

    @classmethod
    def from_config(cls, config: LoggingConfig) -> "SessionRecorder":
        return cls(config.session_dir, enabled=config.log_sessions)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def current_path(self) -> Optional[Path]:
        """Path of the file currently being written, if any."""
        if not self._current_date:
            return None
        return self._dir / f"session_{self._current_date}.jsonl"

    def record(self, phase: str, event: str, data: Optional[dict] = None) -> None:
        """
        Append one event line.

        Args:
            phase: Subsystem (``'scan'``, ``'scanner'``, ``'action'``).
            event: Short event identifier (e.g. ``'selected'``).
            data: Optional JSON-serialisable context.
        """
        if not self._enabled:
            return
        now = datetime.now(tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp_iso": now.isoformat(),
            "phase": phase,
            "event": event,
            "data": data or {},
        }
        line = json.dumps(entry, ensure_ascii=False, separators=(",", ":"), default=str)
        with self._lock:
            self._rotate_if_needed(now)
            if self._file is not None and not self._file.closed:
                self._file.write(line + "\n")
                self._file.flush()

    def close(self) -> None:
        with self._lock:
            if self._file is not None and not self._file.closed:
                self._file.close()
            self._file = None

    def _rotate_if_needed(self, now: datetime) -> None:
        """Open a new file when the calendar date changes. Called with the lock held."""
        today = now.strftime("%Y-%m-%d")
        if today != self._current_date:
            if self._file is not None and not self._file.closed:
                self._file.close()
            self._current_date = today
            self._dir.mkdir(parents=True, exist_ok=True)
            self._file = open(self._dir / f"session_{today}.jsonl", "a", encoding="utf-8")

    def _write_startup(self) -> None:
        self.record(
            "system",
            "startup",
            {
                "python_version": sys.version,
                "platform": platform.platform(),
                "timestamp_local": datetime.now().isoformat(),
            },
        )
