"""
gazeboard/board/menu.py — Menus and the menu tree.

A :class:`Menu` is an ordered tuple of items with a scan policy and a
visibility policy. :class:`MenuTree` builds every menu from a declarative
table, resolves navigation targets and wires parent/child links.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Iterable, Iterator, Optional, Protocol

from gazeboard.board.items import (
    BufferAction,
    EmitText,
    Item,
    NavigateMenu,
    Placeholder,
    Request,
    SendEmail,
    ToggleRun,
)
from gazeboard.core.constants import ScanPolicy, TextCategory, Visibility

logger = logging.getLogger(__name__)


class MenuConfigError(ValueError):
    """Raised when the declarative menu table cannot be built."""


class MenuView(Protocol):
    """Presentation sink; every method may be a no-op."""

    def show(self, menu: "Menu") -> None: ...

    def hide(self, menu: "Menu") -> None: ...

    def highlight(self, menu: "Menu", item: Item, on: bool) -> None: ...


class NullView:
    """Headless view that draws nothing."""

    def show(self, menu: "Menu") -> None:
        pass

    def hide(self, menu: "Menu") -> None:
        pass

    def highlight(self, menu: "Menu", item: Item, on: bool) -> None:
        pass


class Menu:
    """
    An ordered, immutable sequence of items plus its policies.

    Args:
        name: Menu key.
        items: Items in scan order.
        scan_policy: What happens when a scan cycle or selection completes.
        visibility: Whether the menu is shown only while active.
    """

    def __init__(
        self,
        name: str,
        items: Iterable[Item],
        scan_policy: ScanPolicy = ScanPolicy.FINISH,
        visibility: Visibility = Visibility.ALWAYS_VISIBLE,
    ) -> None:
        self.name = name
        self.items: tuple[Item, ...] = tuple(items)
        self.scan_policy = scan_policy
        self.visibility = visibility
        self.children: dict[str, Menu] = {}
        self._parent: Optional[weakref.ReferenceType[Menu]] = None

    @property
    def parent(self) -> Optional["Menu"]:
        return self._parent() if self._parent is not None else None

    @property
    def collapsible(self) -> bool:
        return self.visibility is Visibility.COLLAPSIBLE

    def attach_child(self, key: str, child: "Menu") -> None:
        """Register *child* under *key*; the first parent to attach it wins."""
        self.children[key] = child
        if child._parent is None and child is not self:
            child._parent = weakref.ref(self)

    def has_selectable(self) -> bool:
        return any(not item.is_empty() for item in self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Item]:
        return iter(self.items)

    def __repr__(self) -> str:
        return (
            f"Menu(name={self.name!r}, items={len(self.items)}, "
            f"scan={self.scan_policy.value}, hide={self.visibility.value})"
        )


# ──────────────────────────────────────────────
# Building from a declarative table
# ──────────────────────────────────────────────

def _build_item(fields: dict[str, Any], menu_key: str) -> Item:
    """
    Build one item from its table entry.

    Raises:
        MenuConfigError: On an unknown ``kind`` or a malformed entry.
    """
    fields = dict(fields)
    kind = fields.pop("kind", None)
    label = fields.pop("label", "")
    try:
        common = {
            "wait_multiplier": float(fields.pop("wait", 1.0)),
            "announcement": fields.pop("announce", None),
        }
        if kind == "menu":
            item: Item = NavigateMenu(
                label,
                target=fields.pop("target", ""),
                collapse_on_slide=bool(fields.pop("collapse", False)),
                **common,
            )
        elif kind == "text":
            item = EmitText(
                label,
                text=fields.pop("text", None),
                category=TextCategory(fields.pop("category", TextCategory.LETTER.value)),
                **common,
            )
        elif kind == "buffer":
            item = BufferAction(label, action=fields.pop("action", ""), **common)
        elif kind == "request":
            item = Request(label, message=fields.pop("message", None), **common)
        elif kind == "toggle":
            item = ToggleRun(label, **common)
        elif kind == "email":
            item = SendEmail(label, recipients=tuple(fields.pop("recipients", ())), **common)
        elif kind == "placeholder":
            item = Placeholder(label, **common)
        else:
            raise MenuConfigError(f"menu '{menu_key}': unknown item kind {kind!r}")
    except ValueError as exc:
        if isinstance(exc, MenuConfigError):
            raise
        raise MenuConfigError(f"menu '{menu_key}': {exc}") from exc
    if fields:
        raise MenuConfigError(
            f"menu '{menu_key}': unknown fields {sorted(fields)} on item {label!r}"
        )
    return item


class MenuTree:
    """
    All menus of a board, keyed by name.

    Args:
        menus: Menus keyed by name.
        root: Key of the menu scanning starts from.

    Raises:
        MenuConfigError: If *root* is not among *menus*.
    """

    def __init__(self, menus: dict[str, Menu], root: str) -> None:
        if root not in menus:
            raise MenuConfigError(f"root menu '{root}' is not defined")
        self._menus = menus
        self._root = root

    @classmethod
    def from_table(cls, table: Iterable[dict[str, Any]], root: str) -> "MenuTree":
        """
        Build every menu from a declarative table.

        Each entry is a mapping with ``key``, ``scan`` (``repeat``/``finish``),
        ``hide`` (``commboard``/``dropdown``) and ``items``. Navigation items
        whose target is missing are replaced by placeholders.

        Raises:
            MenuConfigError: On duplicate keys, unknown policies or item kinds.
        """
        menus: dict[str, Menu] = {}
        for entry in table:
            key = entry.get("key")
            if not key:
                raise MenuConfigError(f"menu entry without a key: {entry!r}")
            if key in menus:
                raise MenuConfigError(f"duplicate menu key '{key}'")
            try:
                scan = ScanPolicy(entry.get("scan", ScanPolicy.FINISH.value))
                hide = Visibility(entry.get("hide", Visibility.ALWAYS_VISIBLE.value))
            except ValueError as exc:
                raise MenuConfigError(f"menu '{key}': {exc}") from exc
            items = [_build_item(fields, key) for fields in entry.get("items", ())]
            menus[key] = Menu(key, items, scan, hide)

        for key, menu in list(menus.items()):
            menus[key] = cls._resolve_targets(menu, menus)

        tree = cls(menus, root)
        logger.info("Menu tree ready: %d menus, root '%s'", len(menus), root)
        return tree

    @staticmethod
    def _resolve_targets(menu: Menu, menus: dict[str, Menu]) -> Menu:
        items: list[Item] = []
        for item in menu.items:
            if isinstance(item, NavigateMenu):
                target = menus.get(item.target)
                if target is None:
                    logger.warning(
                        "Menu '%s': item %r targets unknown menu '%s'; using a placeholder",
                        menu.name, item.label, item.target,
                    )
                    item = Placeholder(
                        item.label,
                        wait_multiplier=item.wait_multiplier,
                        announcement=item.announcement,
                    )
                else:
                    item.target_menu = target
                    menu.attach_child(item.target, target)
            items.append(item)
        menu.items = tuple(items)
        return menu

    @property
    def root(self) -> Menu:
        return self._menus[self._root]

    def get(self, key: str) -> Optional[Menu]:
        return self._menus.get(key)

    def __getitem__(self, key: str) -> Menu:
        return self._menus[key]

    def __contains__(self, key: object) -> bool:
        return key in self._menus

    def __iter__(self) -> Iterator[Menu]:
        return iter(self._menus.values())

    def __len__(self) -> int:
        return len(self._menus)

    def collapsible(self) -> list[Menu]:
        """Menus that start hidden."""
        return [menu for menu in self._menus.values() if menu.collapsible]
