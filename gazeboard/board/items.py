"""
gazeboard/board/items.py — Selectable board items.

Each item variant is its own dataclass; :class:`~gazeboard.board.actions.ItemPerformer`
dispatches on the variant to carry out a selection. Every selection ends by
firing exactly one :class:`FinishSignal`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, ClassVar, Optional

from gazeboard.core.constants import TextCategory

if TYPE_CHECKING:
    from gazeboard.board.menu import Menu

logger = logging.getLogger(__name__)

BUFFER_ACTIONS = frozenset({"delete", "read", "clear"})


class FinishSignal:
    """
    One-shot completion notification for a selected item.

    The first call runs the callback. Later calls are logged and dropped, so
    a collaborator that reports completion twice cannot start two scan steps.

    Args:
        callback: Continuation to run on completion.
        label: Item label, used in the warning on a repeated call.
    """

    def __init__(self, callback: Callable[[], None], label: str = "") -> None:
        self._callback = callback
        self._label = label
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def __call__(self) -> None:
        if self._fired:
            logger.warning("Item %r signalled finished more than once; ignored", self._label)
            return
        self._fired = True
        self._callback()


@dataclass(eq=False)
class Item:
    """
    Common fields of every selectable item.

    Attributes:
        label: Display text; also what is announced unless ``announcement``
            is set. Mutable: word-guess items rewrite it.
        wait_multiplier: Scales the dwell time while this item is highlighted.
        announcement: Spoken alias (e.g. ``"period"`` for ``"."``).
    """

    kind: ClassVar[str] = "item"

    label: str
    wait_multiplier: float = 1.0
    announcement: Optional[str] = None

    def __post_init__(self) -> None:
        if self.wait_multiplier < 1:
            raise ValueError(
                f"wait_multiplier must be >= 1, got {self.wait_multiplier} for {self.label!r}"
            )

    @property
    def announcement_text(self) -> str:
        return self.announcement if self.announcement is not None else self.label

    def is_empty(self) -> bool:
        """True when the item has nothing to offer and must be skipped."""
        return not self.label.strip()

    def to_dict(self) -> dict:
        return {"kind": self.kind, "label": self.label}


@dataclass(eq=False)
class NavigateMenu(Item):
    """Descends into the menu registered under ``target``."""

    kind: ClassVar[str] = "menu"

    target: str = ""
    collapse_on_slide: bool = False
    target_menu: Optional["Menu"] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.target:
            raise ValueError(f"menu item {self.label!r} needs a target")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "target": self.target}


@dataclass(eq=False)
class EmitText(Item):
    """
    Writes text to the buffer.

    When ``text`` is None the label supplies it: lower-cased for letters, as
    is for words and punctuation, and a single space for ``SPACE``.
    """

    kind: ClassVar[str] = "text"

    text: Optional[str] = None
    category: TextCategory = TextCategory.LETTER

    @property
    def value(self) -> str:
        if self.text is not None:
            return self.text
        if self.category is TextCategory.SPACE:
            return " "
        if self.category is TextCategory.LETTER:
            return self.label.lower()
        return self.label

    def to_dict(self) -> dict:
        return {**super().to_dict(), "category": self.category.value}


@dataclass(eq=False)
class BufferAction(Item):
    """Runs a named buffer action (``delete``, ``read``, ``clear``)."""

    kind: ClassVar[str] = "buffer"

    action: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.action:
            self.action = self.label.strip().lower()
        if self.action not in BUFFER_ACTIONS:
            raise ValueError(
                f"unknown buffer action {self.action!r}; expected one of {sorted(BUFFER_ACTIONS)}"
            )


@dataclass(eq=False)
class Request(Item):
    """Call bell: a long beep, then an optional spoken message."""

    kind: ClassVar[str] = "request"

    message: Optional[str] = None


@dataclass(eq=False)
class ToggleRun(Item):
    """Stops the scanner."""

    kind: ClassVar[str] = "toggle"


@dataclass(eq=False)
class SendEmail(Item):
    """Mails the buffer text to ``recipients``; ``label`` names them."""

    kind: ClassVar[str] = "email"

    recipients: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        self.recipients = tuple(self.recipients)


@dataclass(eq=False)
class Placeholder(Item):
    """Stand-in for an unimplemented or misconfigured item."""

    kind: ClassVar[str] = "placeholder"
