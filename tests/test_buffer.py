"""
tests/test_buffer.py — Text assembly, buffer actions and word guesses.
"""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from gazeboard.board.guess import GuessRefresher, PrefixGuesser, pad
from gazeboard.board.menu import MenuTree
from gazeboard.core.clock import ManualScheduler
from gazeboard.core.constants import C, TextCategory
from gazeboard.output.buffer import TextBuffer


class _Announcer:
    def __init__(self, scheduler: ManualScheduler) -> None:
        self._scheduler = scheduler
        self.spoken: list[str] = []

    def announce(self, text: str) -> None:
        pass

    def speak(self, text: str, on_finished) -> None:
        self.spoken.append(text)
        self._scheduler.call_later(0, on_finished)


class TestWrite(unittest.TestCase):
    """Plain text assembly by category."""

    def setUp(self) -> None:
        self.buffer = TextBuffer()

    def test_letters_append(self) -> None:
        for letter in "hi":
            self.buffer.write(letter, TextCategory.LETTER)
        self.assertEqual(self.buffer.text, "hi")

    def test_word_replaces_partial_word(self) -> None:
        self.buffer.write("i ", TextCategory.LETTER)
        self.buffer.write("wa", TextCategory.LETTER)
        self.buffer.write("water", TextCategory.WORD)
        self.assertEqual(self.buffer.text, "i water ")

    def test_terminal_punctuation_closes_sentence(self) -> None:
        self.buffer.write("yes", TextCategory.WORD)
        self.buffer.write(".", TextCategory.TERMINAL_PUNCTUATION)
        self.assertEqual(self.buffer.text, "yes. ")

    def test_terminal_after_terminal_keeps_space(self) -> None:
        self.buffer.write("no", TextCategory.WORD)
        self.buffer.write("!", TextCategory.TERMINAL_PUNCTUATION)
        self.buffer.write("!", TextCategory.TERMINAL_PUNCTUATION)
        self.assertEqual(self.buffer.text, "no! ! ")

    def test_non_terminal_punctuation_appends(self) -> None:
        self.buffer.write("a", TextCategory.LETTER)
        self.buffer.write(",", TextCategory.NON_TERMINAL_PUNCTUATION)
        self.buffer.write(" ", TextCategory.SPACE)
        self.assertEqual(self.buffer.text, "a, ")

    def test_listeners_receive_new_text(self) -> None:
        seen: list[str] = []
        self.buffer.add_change_listener(seen.append)
        self.buffer.write("a", TextCategory.LETTER)
        self.buffer.remove_change_listener(seen.append)
        self.buffer.write("b", TextCategory.LETTER)
        self.assertEqual(seen, ["a"])


class TestActions(unittest.TestCase):
    """``delete``, ``clear`` and ``read``."""

    def setUp(self) -> None:
        self.scheduler = ManualScheduler()
        self.announcer = _Announcer(self.scheduler)
        self.buffer = TextBuffer(self.announcer, self.scheduler, after_speech_ms=1000)
        self.finished = 0

    def _done(self) -> None:
        self.finished += 1

    def test_delete_removes_last_character(self) -> None:
        self.buffer.write("ab", TextCategory.LETTER)
        self.buffer.execute_action("delete", self._done)
        self.assertEqual(self.buffer.text, "a")
        self.assertEqual(self.finished, 1)

    def test_delete_on_empty_buffer(self) -> None:
        self.buffer.execute_action("delete", self._done)
        self.assertEqual(self.buffer.text, "")
        self.assertEqual(self.finished, 1)

    def test_clear(self) -> None:
        self.buffer.write("hello", TextCategory.WORD)
        self.buffer.execute_action("clear", self._done)
        self.assertEqual(self.buffer.text, "")

    def test_read_speaks_then_waits(self) -> None:
        self.buffer.write("hello", TextCategory.WORD)
        self.buffer.execute_action("read", self._done)
        self.assertEqual(self.announcer.spoken, ["hello"])

        self.scheduler.advance(999)
        self.assertEqual(self.finished, 0)
        self.scheduler.advance(1)
        self.assertEqual(self.finished, 1)

    def test_read_empty_buffer(self) -> None:
        self.buffer.execute_action("read", self._done)
        self.assertEqual(self.announcer.spoken, [C.EMPTY_BUFFER_TEXT])

    def test_unknown_action(self) -> None:
        with self.assertRaises(ValueError):
            self.buffer.execute_action("shout", self._done)


class TestGuesses(unittest.TestCase):
    """Prefix guesses rewrite the guess menu's word labels."""

    def setUp(self) -> None:
        self.tree = MenuTree.from_table(
            [{"key": "guess", "items": [
                {"kind": "text", "label": "", "category": "word"} for _ in range(3)
            ]}],
            root="guess",
        )
        self.buffer = TextBuffer()
        guesser = PrefixGuesser(["water", "want", "wash", "walk", "help"])
        self.refresher = GuessRefresher(self.tree.root, self.buffer, guesser)

    def test_guesses_follow_partial_word(self) -> None:
        self.buffer.write("wa", TextCategory.LETTER)
        self.assertEqual(self.refresher.guesses, ["water", "want", "wash"])

    def test_short_list_is_padded_with_empty_slots(self) -> None:
        self.buffer.write("he", TextCategory.LETTER)
        self.assertEqual(self.refresher.guesses, ["help", "", ""])
        self.assertTrue(self.tree.root.items[1].is_empty())

    def test_selecting_a_word_clears_guesses(self) -> None:
        self.buffer.write("he", TextCategory.LETTER)
        self.buffer.write("help", TextCategory.WORD)
        self.assertEqual(self.buffer.text, "help ")
        self.assertEqual(self.refresher.guesses, ["", "", ""])

    def test_close_stops_following(self) -> None:
        self.refresher.close()
        self.buffer.write("wa", TextCategory.LETTER)
        self.assertEqual(self.refresher.guesses, ["", "", ""])

    def test_guesser_is_case_insensitive_and_deduplicated(self) -> None:
        guesser = PrefixGuesser(["Yes", "yes", "you"])
        self.assertEqual(guesser.guess("Y", 5), ["yes", "you"])
        self.assertEqual(guesser.guess("", 5), [])

    def test_from_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "words.txt"
            path.write_text("# common words\nhello\n\nhelp\n", encoding="utf-8")
            guesser = PrefixGuesser.from_file(path)
        self.assertEqual(guesser.guess("hel", 5), ["hello", "help"])

    def test_pad(self) -> None:
        self.assertEqual(pad(["a"], "", 3), ["a", "", ""])
        self.assertEqual(pad(["a", "b", "c"], "", 2), ["a", "b"])
