"""
gazeboard/core/events.py — Explicit publish/subscribe registry.

Listeners are added and removed by reference. Adding a listener twice, or
removing one that is not registered, raises :class:`ListenerError`: either
case means a scan step failed to tear down (or set up) its subscriptions.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class ListenerError(RuntimeError):
    """
    Raised on double registration or removal of an unknown listener.

    Args:
        registry: Name of the registry where the violation happened.
        listener: The offending listener.
        action: ``'add'`` or ``'remove'``.
    """

    def __init__(self, registry: str, listener: Callable[..., Any], action: str) -> None:
        self.registry = registry
        self.listener = listener
        self.action = action
        verb = "already registered" if action == "add" else "not registered"
        super().__init__(f"Listener {listener!r} {verb} on '{registry}'")


class ListenerRegistry:
    """
    Ordered set of listeners for one named event.

    Emission iterates over a snapshot, but a listener removed by an earlier
    listener in the same emission is skipped, so a torn-down handler never
    fires against superseded state.

    Args:
        name: Event name, used in logs and errors.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._listeners: list[Callable[..., Any]] = []

    @property
    def name(self) -> str:
        return self._name

    def add(self, listener: Callable[..., Any]) -> None:
        """
        Register *listener*.

        Raises:
            ListenerError: If *listener* is already registered.
        """
        if listener in self._listeners:
            raise ListenerError(self._name, listener, "add")
        self._listeners.append(listener)
        logger.debug("'%s': listener added (%d total)", self._name, len(self._listeners))

    def remove(self, listener: Callable[..., Any]) -> None:
        """
        Unregister *listener*.

        Raises:
            ListenerError: If *listener* is not registered.
        """
        if listener not in self._listeners:
            raise ListenerError(self._name, listener, "remove")
        self._listeners.remove(listener)
        logger.debug("'%s': listener removed (%d left)", self._name, len(self._listeners))

    def discard(self, listener: Callable[..., Any]) -> None:
        """Unregister *listener* if present; no error otherwise."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, *args: Any) -> None:
        """Invoke every registered listener with *args*, in registration order."""
        for listener in list(self._listeners):
            if listener in self._listeners:
                listener(*args)

    def clear(self) -> None:
        self._listeners.clear()

    def __contains__(self, listener: object) -> bool:
        return listener in self._listeners

    def __len__(self) -> int:
        return len(self._listeners)

    def __repr__(self) -> str:
        return f"ListenerRegistry(name={self._name!r}, listeners={len(self._listeners)})"
