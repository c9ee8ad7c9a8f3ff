"""
gazeboard/board/layout.py — Default communication board and layout loading.

The board is data: a list of menu entries, each with a key, a scan policy
(``repeat``/``finish``), a visibility (``commboard``/``dropdown``) and its
items. A YAML file with the same shape may replace the built-in table.
"""

from __future__ import annotations

import logging
import string
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml

from gazeboard.board.menu import MenuConfigError, MenuTree
from gazeboard.core.config import BoardConfig, EmailConfig

logger = logging.getLogger(__name__)

_LETTER_ROWS: list[str] = ["ABCDEFG", "HIJKLMN", "OPQRSTU", "VWXYZ"]

_PUNCTUATION: list[tuple[str, str, str]] = [
    (".", "period", "terminal_punctuation"),
    ("?", "question mark", "terminal_punctuation"),
    ("!", "exclamation point", "terminal_punctuation"),
    (",", "comma", "non_terminal_punctuation"),
    ("'", "apostrophe", "non_terminal_punctuation"),
    ("-", "dash", "non_terminal_punctuation"),
]

_N_EMAIL_SLOTS = 8


def _letters(letters: str) -> list[dict[str, Any]]:
    return [{"kind": "text", "label": letter, "category": "letter"} for letter in letters]


def default_table(
    n_guesses: int = 8,
    recipients: Iterable[dict[str, Any]] = (),
    guess_menu: str = "guess",
) -> list[dict[str, Any]]:
    """
    Return the built-in board as a declarative table.

    Args:
        n_guesses: Number of word-guess slots in the guess menu.
        recipients: ``{"name", "addresses"}`` mappings for the e-mail menu;
            unused slots stay empty and are skipped while scanning.
        guess_menu: Key of the word-guess menu.
    """
    email_items: list[dict[str, Any]] = []
    for entry in list(recipients)[:_N_EMAIL_SLOTS]:
        addresses = entry["addresses"]
        if isinstance(addresses, str):
            addresses = [addresses]
        email_items.append({"kind": "email", "label": entry["name"], "recipients": list(addresses)})
    email_items.extend(
        {"kind": "email", "label": ""} for _ in range(_N_EMAIL_SLOTS - len(email_items))
    )

    return [
        {
            "key": "composeMain",
            "scan": "repeat",
            "hide": "commboard",
            "items": [
                {"kind": "toggle", "label": "Stop"},
                {"kind": "request", "label": "Call bell", "message": "I need help."},
                {"kind": "menu", "label": "1", "target": "letter1", "announce": "row one"},
                {"kind": "menu", "label": "2", "target": "letter2", "announce": "row two"},
                {"kind": "menu", "label": "3", "target": "letter3", "announce": "row three"},
                {"kind": "menu", "label": "4", "target": "letter4", "announce": "row four"},
                {"kind": "menu", "label": "Guess", "target": guess_menu},
                {"kind": "menu", "label": "Extras", "target": "extras"},
                {"kind": "menu", "label": "Punctuation", "target": "punctuation",
                 "collapse": True},
                {"kind": "menu", "label": "Buffer", "target": "buffer", "collapse": True},
                {"kind": "menu", "label": "Email", "target": "email", "collapse": True},
            ],
        },
        {"key": "letter1", "scan": "finish", "hide": "commboard",
         "items": _letters(_LETTER_ROWS[0])},
        {"key": "letter2", "scan": "finish", "hide": "commboard",
         "items": _letters(_LETTER_ROWS[1])},
        {"key": "letter3", "scan": "finish", "hide": "commboard",
         "items": _letters(_LETTER_ROWS[2])},
        {"key": "letter4", "scan": "finish", "hide": "commboard",
         "items": _letters(_LETTER_ROWS[3])
         + [{"kind": "text", "label": "Space", "category": "space"}]},
        {
            "key": guess_menu,
            "scan": "finish",
            "hide": "commboard",
            "items": [
                {"kind": "text", "label": "", "category": "word"} for _ in range(n_guesses)
            ],
        },
        {
            "key": "extras",
            "scan": "finish",
            "hide": "commboard",
            "items": [
                {"kind": "text", "label": "Space", "category": "space"},
                *({"kind": "text", "label": digit, "category": "letter"}
                  for digit in string.digits),
                {"kind": "placeholder", "label": "Settings"},
            ],
        },
        {
            "key": "punctuation",
            "scan": "finish",
            "hide": "dropdown",
            "items": [
                {"kind": "text", "label": mark, "announce": name, "category": category}
                for mark, name, category in _PUNCTUATION
            ],
        },
        {
            "key": "buffer",
            "scan": "finish",
            "hide": "dropdown",
            "items": [
                {"kind": "buffer", "label": "Delete", "wait": 2},
                {"kind": "buffer", "label": "Read"},
                {"kind": "buffer", "label": "Clear", "wait": 2},
            ],
        },
        {"key": "email", "scan": "finish", "hide": "dropdown", "items": email_items},
    ]


def load_layout(path: Path | str) -> list[dict[str, Any]]:
    """
    Load a menu table from YAML.

    The file holds either a list of menu entries or a mapping with a
    ``menus`` list.

    Raises:
        FileNotFoundError: If *path* does not exist.
        MenuConfigError: If the document is not a menu list.
    """
    resolved = Path(path)
    if not resolved.exists():
        raise FileNotFoundError(f"Layout file not found: {resolved}")
    with resolved.open("r", encoding="utf-8") as fh:
        document = yaml.safe_load(fh)
    if isinstance(document, dict):
        document = document.get("menus")
    if not isinstance(document, list):
        raise MenuConfigError(f"{resolved}: expected a list of menus")
    logger.info("Loaded board layout from %s (%d menus)", resolved, len(document))
    return document


def build_tree(board: BoardConfig, email: Optional[EmailConfig] = None) -> MenuTree:
    """Build the menu tree from ``board.layout_file`` or the default table."""
    if board.layout_file:
        table = load_layout(board.layout_file)
    else:
        table = default_table(
            n_guesses=board.n_guesses,
            recipients=email.recipients if email is not None else (),
            guess_menu=board.guess_menu,
        )
    return MenuTree.from_table(table, root=board.root_menu)
