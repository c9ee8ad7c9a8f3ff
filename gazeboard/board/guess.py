"""
gazeboard/board/guess.py — Word guesses for the guess menu.

:class:`GuessRefresher` listens to the text buffer and rewrites the labels
of the guess menu's word items with completions of the partial word being
typed. Unused slots get an empty label, so the scan skips them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol

from gazeboard.board.items import EmitText
from gazeboard.board.menu import Menu
from gazeboard.core.constants import TextCategory
from gazeboard.output.buffer import TextBuffer

logger = logging.getLogger(__name__)

# Small built-in vocabulary, most frequent first
_DEFAULT_WORDS: tuple[str, ...] = (
    "the", "to", "and", "a", "i", "you", "it", "is", "that", "in", "me", "my",
    "not", "yes", "no", "please", "thank", "thanks", "want", "need", "help",
    "water", "drink", "eat", "food", "pain", "hurts", "head", "back", "leg",
    "arm", "cold", "hot", "tired", "sleep", "bed", "turn", "move", "up",
    "down", "light", "off", "on", "open", "close", "window", "door", "tv",
    "music", "read", "book", "phone", "call", "nurse", "doctor", "family",
    "wife", "husband", "son", "daughter", "mother", "father", "friend",
    "love", "good", "bad", "better", "worse", "more", "less", "now", "later",
    "today", "tomorrow", "yesterday", "morning", "night", "time", "what",
    "when", "where", "who", "why", "how", "can", "could", "would", "should",
    "have", "has", "had", "do", "does", "did", "go", "come", "see", "look",
    "feel", "feeling", "think", "know", "tell", "ask", "talk", "again",
    "bathroom", "toilet", "itch", "scratch", "pillow", "blanket", "glasses",
)


class Guesser(Protocol):
    def guess(self, prefix: str, n: int) -> list[str]: ...


class PrefixGuesser:
    """
    Completes a prefix from a ranked word list.

    Args:
        words: Candidate words, most likely first.
    """

    def __init__(self, words: Iterable[str] = _DEFAULT_WORDS) -> None:
        seen: set[str] = set()
        self._words: list[str] = []
        for word in words:
            word = word.strip().lower()
            if word and word not in seen:
                seen.add(word)
                self._words.append(word)

    @classmethod
    def from_file(cls, path: Path | str) -> "PrefixGuesser":
        """Load one word per line; blank lines and ``#`` comments are skipped."""
        with Path(path).open("r", encoding="utf-8") as fh:
            words = [line for line in fh if line.strip() and not line.startswith("#")]
        logger.info("Loaded %d words from %s", len(words), path)
        return cls(words)

    def guess(self, prefix: str, n: int) -> list[str]:
        prefix = prefix.lower()
        if not prefix:
            return []
        return [word for word in self._words if word.startswith(prefix)][:n]


def pad(values: list[str], fill: str, length: int) -> list[str]:
    """Truncate or right-pad *values* to *length*."""
    return (values + [fill] * length)[:length]


class GuessRefresher:
    """
    Keeps the guess menu's word labels in step with the buffer.

    Args:
        menu: The guess menu; its word items are rewritten in order.
        buffer: The text buffer to follow.
        guesser: Source of completions.
    """

    def __init__(self, menu: Menu, buffer: TextBuffer, guesser: Optional[Guesser] = None) -> None:
        self._slots = [
            item for item in menu.items
            if isinstance(item, EmitText) and item.category is TextCategory.WORD
        ]
        self._buffer = buffer
        self._guesser = guesser or PrefixGuesser()
        buffer.add_change_listener(self.refresh)

    @property
    def guesses(self) -> list[str]:
        return [slot.label for slot in self._slots]

    def refresh(self, text: Optional[str] = None) -> None:
        """Recompute guesses for the partial word at the end of *text*."""
        if text is None:
            text = self._buffer.get_text()
        partial = text.split(" ")[-1]
        found = self._guesser.guess(partial, len(self._slots)) if partial else []
        for slot, word in zip(self._slots, pad(found, "", len(self._slots))):
            slot.label = word
        logger.debug("Guesses for %r: %s", partial, found)

    def close(self) -> None:
        self._buffer.remove_change_listener(self.refresh)
