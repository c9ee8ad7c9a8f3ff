"""
main.py — Gazeboard application entry point.

Parses CLI args, configures logging, builds the board and runs it either
headless (switch presses read from stdin) or behind the FastAPI web surface.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import threading
import traceback
from dataclasses import replace
from typing import Optional

# ──────────────────────────────────────────────────────────────
# ASCII banner
# ──────────────────────────────────────────────────────────────

_BANNER = r"""
   ____                 _                         _
  / ___| __ _ _______  | |__   ___   __ _ _ __ __| |
 | |  _ / _` |_  / _ \ | '_ \ / _ \ / _` | '__/ _` |
 | |_| | (_| |/ /  __/ | |_) | (_) | (_| | | | (_| |
  \____|\__,_/___\___| |_.__/ \___/ \__,_|_|  \__,_|

            Gazeboard  v1.0
   Single-signal scanning communication board
"""

_HEADLESS_HELP = """\
  d = switch down   u = switch up
  s = start         x = stop        q = quit
"""

logger = logging.getLogger("gazeboard.main")


# ──────────────────────────────────────────────────────────────
# Argument parsing
# ──────────────────────────────────────────────────────────────

def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gazeboard",
        description="Gazeboard — scanning communication board driven by one signal",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument(
        "--config",
        default=None,
        help="Path to gazeboard.yaml (defaults to GAZEBOARD_CONFIG or config/gazeboard.yaml)",
    )
    p.add_argument(
        "--web",
        action="store_true",
        help="Serve the FastAPI dashboard instead of reading stdin",
    )
    p.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the web dashboard (overrides web.port)",
    )
    p.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING"],
        default=None,
        help="Minimum log level (overrides logging.level)",
    )
    p.add_argument(
        "--sensor",
        choices=["switch", "null"],
        default=None,
        help="Attention input (overrides detector.sensor)",
    )
    p.add_argument(
        "--no-sound",
        action="store_true",
        help="Start with item narration turned off (beeps still play)",
    )
    return p


# ──────────────────────────────────────────────────────────────
# Headless entry point
# ──────────────────────────────────────────────────────────────

def _read_stdin(board, loop: asyncio.AbstractEventLoop, done: asyncio.Event) -> None:
    """Map stdin lines onto the switch and scanner until EOF or ``q``."""
    for line in sys.stdin:
        key = line.strip().lower()
        if not key:
            continue
        if key == "q":
            break
        if board.switch.inject_key(key):
            continue
        if key == "s":
            board.scheduler.call_soon_threadsafe(board.scanner.start)
        elif key == "x":
            board.scheduler.call_soon_threadsafe(board.scanner.stop)
        else:
            print(f"[WARN] Unknown key {key!r}", file=sys.stderr)
    loop.call_soon_threadsafe(done.set)


async def _headless(config) -> int:
    from gazeboard.app import GazeboardApp
    from gazeboard.core.clock import AsyncioScheduler

    loop = asyncio.get_running_loop()
    board = GazeboardApp(config, AsyncioScheduler(loop))
    done = asyncio.Event()

    reader = threading.Thread(
        target=_read_stdin,
        args=(board, loop, done),
        name="gazeboard-stdin",
        daemon=True,
    )
    reader.start()
    print(_HEADLESS_HELP)
    try:
        await done.wait()
    finally:
        board.shutdown()
    return 0


def _run_headless(config) -> int:
    """Run the board on an asyncio loop in the main thread. Returns exit code."""
    try:
        return asyncio.run(_headless(config))
    except KeyboardInterrupt:
        return 0


# ──────────────────────────────────────────────────────────────
# Web UI entry point
# ──────────────────────────────────────────────────────────────

def _run_web(config, port: int) -> int:
    """
    Build the board and serve the FastAPI dashboard in the main thread.

    Open http://localhost:<port>/ in a browser to see the live dashboard.
    """
    from gazeboard.app import GazeboardApp
    from gazeboard.core.clock import AsyncioScheduler
    from gazeboard.ui.web_app import start_web_server

    # The scheduler is bound to uvicorn's loop on startup.
    board = GazeboardApp(config, AsyncioScheduler())

    print(f"[INFO] Web UI → http://localhost:{port}/")
    print("       Press Ctrl-C to stop.")
    try:
        start_web_server(board, host=config.web.host, port=port)
    except KeyboardInterrupt:
        pass
    finally:
        board.shutdown()
    return 0


# ──────────────────────────────────────────────────────────────
# Main
# ──────────────────────────────────────────────────────────────

def main(argv: Optional[list[str]] = None) -> int:
    """Application entry point. Returns process exit code."""
    print(_BANNER)

    parser = _build_parser()
    args = parser.parse_args(argv)

    from gazeboard.core.config import load_config
    from gazeboard.core.logger import setup_logging

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2

    if args.sensor is not None:
        config = replace(config, detector=replace(config.detector, sensor=args.sensor))
    if args.no_sound:
        config = replace(config, scan=replace(config.scan, announce=False))

    setup_logging(config.logging, args.log_level)
    logger.info("Starting (web=%s, sensor=%s)", args.web, config.detector.sensor)

    exit_code = 0
    try:
        if args.web:
            exit_code = _run_web(config, args.port or config.web.port)
        else:
            print("[INFO] Running headless")
            exit_code = _run_headless(config)
    except Exception:                              # noqa: BLE001
        tb = traceback.format_exc()
        print(tb, file=sys.stderr)
        logger.critical("Unhandled exception:\n%s", tb)
        exit_code = 1

    print(f"[INFO] Gazeboard exited with code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
