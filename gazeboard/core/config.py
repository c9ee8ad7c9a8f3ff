"""
gazeboard/core/config.py — Typed configuration loader for Gazeboard.

Loads config/gazeboard.yaml and validates all values into typed dataclasses.
All downstream modules import from this module; never read YAML directly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from gazeboard.core.constants import C

logger = logging.getLogger(__name__)

_EMPTY_SKIP_POLICIES = {"item", "loop"}
_SENSOR_KINDS = {"switch", "null", "scripted"}
_ANNOUNCER_ENGINES = {"pyttsx3", "log"}

_DEFAULT_EMAIL_FOOTER = (
    "This message was sent using experimental assistive software. "
    "Please do not send sensitive information (bank accounts, passwords, "
    "identity numbers) to this address."
)


# ──────────────────────────────────────────────
# Dataclass hierarchy, one class per gazeboard.yaml section
# ──────────────────────────────────────────────


@dataclass(frozen=True)
class ScanConfig:
    """Scan cadence, gaze thresholds, and loop behaviour."""

    scan_speed_s: float = C.SCAN_SPEED_S
    scan_speed_min_s: float = C.SCAN_SPEED_MIN_S
    scan_speed_max_s: float = C.SCAN_SPEED_MAX_S
    scan_speed_step_s: float = C.SCAN_SPEED_STEP_S
    short_gaze_ms: float = C.SHORT_GAZE_MS
    long_gaze_ms: float = C.LONG_GAZE_MS
    loop_limit: int = C.LOOP_LIMIT
    long_gaze_beep_hz: float = C.LONG_GAZE_BEEP_HZ
    long_gaze_beep_ms: float = C.LONG_GAZE_BEEP_MS
    empty_skip: str = "item"
    announce: bool = True
    read_on_select: bool = True


@dataclass(frozen=True)
class DetectorConfig:
    """Signal classifier debounce and sampling parameters."""

    debounce_samples: int = C.DEBOUNCE_SAMPLES
    listen_rate_hz: float = C.LISTEN_RATE_HZ
    scan_rate_hz: float = C.SCAN_RATE_HZ
    sensor: str = "switch"


@dataclass(frozen=True)
class TTSConfig:
    """Text-to-speech engine configuration."""

    engine: str = "pyttsx3"
    rate: int = 150
    volume: float = 1.0
    voice_id: Optional[str] = None
    after_speech_ms: float = C.AFTER_SPEECH_MS


@dataclass(frozen=True)
class ToneConfig:
    """Beep generator configuration."""

    enabled: bool = True
    sample_rate: int = 44100
    volume: float = 0.5


@dataclass(frozen=True)
class RequestConfig:
    """Call-bell (request item) timing."""

    beep_hz: float = C.REQUEST_BEEP_HZ
    beep_ms: float = C.REQUEST_BEEP_MS
    after_beep_ms: float = C.AFTER_BEEP_MS


@dataclass(frozen=True)
class EmailConfig:
    """Outbound SMTP configuration for e-mail items."""

    host: str = "smtp.gmail.com"
    port: int = 587
    use_tls: bool = True
    sender_name: str = ""
    sender_address: str = ""
    password_env: str = "GAZEBOARD_SMTP_PASSWORD"
    timeout_s: float = 20.0
    footer: str = _DEFAULT_EMAIL_FOOTER
    recipients: tuple = ()

    @property
    def password(self) -> Optional[str]:
        """Return the SMTP password from the configured environment variable."""
        return os.environ.get(self.password_env)

    @property
    def is_configured(self) -> bool:
        """True when a sender address is set."""
        return bool(self.sender_address)


@dataclass(frozen=True)
class BoardConfig:
    """Menu table and word-guess configuration."""

    layout_file: Optional[str] = None
    root_menu: str = "composeMain"
    guess_menu: str = "guess"
    n_guesses: int = 8
    word_list: Optional[str] = None


@dataclass(frozen=True)
class WebConfig:
    """FastAPI control surface binding."""

    host: str = "0.0.0.0"
    port: int = 7860


@dataclass(frozen=True)
class LoggingConfig:
    """Logging and session recording configuration."""

    level: str = "INFO"
    log_file: str = "logs/gazeboard.log"
    max_bytes: int = 10_485_760
    backup_count: int = 3
    log_sessions: bool = True
    session_dir: str = "logs"


@dataclass(frozen=True)
class GazeboardConfig:
    """Root configuration object — single source of truth for all settings."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    tts: TTSConfig = field(default_factory=TTSConfig)
    tone: ToneConfig = field(default_factory=ToneConfig)
    request: RequestConfig = field(default_factory=RequestConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    board: BoardConfig = field(default_factory=BoardConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# ──────────────────────────────────────────────
# Loader
# ──────────────────────────────────────────────


def _resolve_path(config_path: Path | str | None) -> Optional[Path]:
    """
    Locate the config file to load.

    Search order:
    1. *config_path* argument (if provided)
    2. GAZEBOARD_CONFIG environment variable
    3. ``config/gazeboard.yaml`` relative to the project root
    4. None (built-in defaults)

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist.
    """
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.exists():
            raise FileNotFoundError(f"Config file not found: {resolved}")
        return resolved

    if "GAZEBOARD_CONFIG" in os.environ:
        resolved = Path(os.environ["GAZEBOARD_CONFIG"])
        if not resolved.exists():
            raise FileNotFoundError(
                f"GAZEBOARD_CONFIG points to missing file: {resolved}"
            )
        return resolved

    here = Path(__file__).resolve()
    for parent in [here.parent.parent.parent, here.parent.parent]:
        candidate = parent / "config" / "gazeboard.yaml"
        if candidate.exists():
            return candidate
    return None


def load_config(config_path: Path | str | None = None) -> GazeboardConfig:
    """
    Load, validate, and return a GazeboardConfig from a YAML file.

    Missing sections and keys fall back to the dataclass defaults.

    Args:
        config_path: Optional path to a ``gazeboard.yaml`` file.

    Returns:
        A fully populated and frozen :class:`GazeboardConfig` instance.

    Raises:
        ValueError: If a YAML field is unknown or has an invalid value.
        FileNotFoundError: If *config_path* is explicitly given but does not exist.
    """
    resolved_path = _resolve_path(config_path)

    raw: dict = {}
    if resolved_path is not None:
        logger.info("Loading config from: %s", resolved_path)
        with resolved_path.open("r", encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file must be a YAML mapping, got: {type(loaded)}")
        raw = loaded
    else:
        logger.info("No config file found — using built-in defaults")

    return config_from_dict(raw)


def config_from_dict(raw: dict) -> GazeboardConfig:
    """
    Build a validated :class:`GazeboardConfig` from a plain mapping.

    Args:
        raw: Mapping shaped like ``gazeboard.yaml``.

    Raises:
        ValueError: On unknown keys or out-of-range values.
    """
    try:
        config = GazeboardConfig(
            scan=ScanConfig(**(raw.get("scan") or {})),
            detector=DetectorConfig(**(raw.get("detector") or {})),
            tts=TTSConfig(**(raw.get("tts") or {})),
            tone=ToneConfig(**(raw.get("tone") or {})),
            request=RequestConfig(**(raw.get("request") or {})),
            email=EmailConfig(**(raw.get("email") or {})),
            board=BoardConfig(**(raw.get("board") or {})),
            web=WebConfig(**(raw.get("web") or {})),
            logging=LoggingConfig(**(raw.get("logging") or {})),
        )
    except TypeError as exc:
        raise ValueError(f"Invalid config value: {exc}") from exc

    _validate_config(config)
    logger.debug("Config loaded: %s", config)
    return config


def _validate_config(config: GazeboardConfig) -> None:
    """
    Validate cross-field constraints on the loaded configuration.

    Raises:
        ValueError: If any configured value violates a hard constraint.
    """
    scan = config.scan
    det = config.detector

    if scan.short_gaze_ms <= 0 or scan.short_gaze_ms >= scan.long_gaze_ms:
        raise ValueError(
            "scan.short_gaze_ms must be positive and below scan.long_gaze_ms, "
            f"got {scan.short_gaze_ms} / {scan.long_gaze_ms}"
        )
    if scan.loop_limit < 1:
        raise ValueError(f"scan.loop_limit must be >= 1, got {scan.loop_limit}")
    if not (scan.scan_speed_min_s <= scan.scan_speed_s <= scan.scan_speed_max_s):
        raise ValueError(
            f"scan.scan_speed_s must be in [{scan.scan_speed_min_s}, "
            f"{scan.scan_speed_max_s}], got {scan.scan_speed_s}"
        )
    if scan.scan_speed_step_s <= 0:
        raise ValueError(
            f"scan.scan_speed_step_s must be positive, got {scan.scan_speed_step_s}"
        )
    if scan.empty_skip not in _EMPTY_SKIP_POLICIES:
        raise ValueError(
            f"scan.empty_skip must be 'item' or 'loop', got '{scan.empty_skip}'"
        )
    if det.debounce_samples < 1:
        raise ValueError(
            f"detector.debounce_samples must be >= 1, got {det.debounce_samples}"
        )
    if det.listen_rate_hz <= 0 or det.scan_rate_hz <= 0:
        raise ValueError(
            "detector sampling rates must be positive, got "
            f"{det.listen_rate_hz} / {det.scan_rate_hz}"
        )
    if det.sensor not in _SENSOR_KINDS:
        raise ValueError(
            f"detector.sensor must be one of {sorted(_SENSOR_KINDS)}, got '{det.sensor}'"
        )
    if config.tts.engine not in _ANNOUNCER_ENGINES:
        raise ValueError(
            f"tts.engine must be one of {sorted(_ANNOUNCER_ENGINES)}, "
            f"got '{config.tts.engine}'"
        )
    if not (0.0 <= config.tts.volume <= 1.0):
        raise ValueError(f"tts.volume must be in [0, 1], got {config.tts.volume}")
    if not (0.0 <= config.tone.volume <= 1.0):
        raise ValueError(f"tone.volume must be in [0, 1], got {config.tone.volume}")
    if config.board.n_guesses < 0:
        raise ValueError(f"board.n_guesses must be >= 0, got {config.board.n_guesses}")
    for entry in config.email.recipients:
        if not isinstance(entry, dict) or not entry.get("name") or not entry.get("addresses"):
            raise ValueError(
                f"email.recipients entries need a name and addresses, got {entry!r}"
            )
