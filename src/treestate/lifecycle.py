"""ScopeController — ties a scope's life to a tree node's activation.

The host framework calls activate() when the node enters the tree and
deactivate() when it leaves. Deactivation unregisters the scope before
disposing its states, so a global lookup never resolves to a state that
is halfway through disposal.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Sequence

from treestate.registry import StateRegistry, default_registry
from treestate.scope import StateScope
from treestate.state import State, declaring

logger = logging.getLogger("treestate.lifecycle")


def declare_states(factory: Callable[[], Sequence[State]]) -> Sequence[State]:
    """Build a node's states with declaration-ordered auto restoration keys.

    Usage:
        states = declare_states(lambda: [CounterState(), UserState()])
    """
    with declaring():
        return factory()


class ScopeController:
    """Owns at most one active scope and registers it with a registry."""

    __slots__ = ("_registry", "_scope")

    def __init__(self, registry: StateRegistry | None = None) -> None:
        self._registry = registry if registry is not None else default_registry
        self._scope: StateScope | None = None

    @property
    def registry(self) -> StateRegistry:
        return self._registry

    @property
    def scope(self) -> StateScope | None:
        return self._scope

    @property
    def active(self) -> bool:
        return self._scope is not None

    def activate(self, states: Sequence[State]) -> StateScope:
        """Build a scope from already-constructed states and register it."""
        if self._scope is not None:
            raise RuntimeError("ScopeController is already active; deactivate() it first")
        scope = StateScope(states)
        self._registry.register(scope)
        self._scope = scope
        logger.debug("Activated %r", scope)
        return scope

    def deactivate(self) -> None:
        """Unregister the scope, then dispose its states. Safe to call twice."""
        scope = self._scope
        if scope is None:
            return
        self._scope = None
        self._registry.unregister(scope)
        scope.dispose_states()
        logger.debug("Deactivated %r", scope)

    @contextmanager
    def activated(self, states: Sequence[State]) -> Iterator[StateScope]:
        """activate() for the duration of a with block.

        Usage:
            with ScopeController(registry).activated([CounterState()]) as scope:
                ...
        """
        scope = self.activate(states)
        try:
            yield scope
        finally:
            self.deactivate()
