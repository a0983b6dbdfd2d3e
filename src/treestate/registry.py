"""StateRegistry — the scopes that are active right now, for global lookup.

Business logic that holds no tree position reaches a state through
state(CounterState), which asks the registry. Scopes are searched
newest-first, so while an old and a new scope for the same part of the
tree are both alive, callers see the new one.

The registry is bounded: registering past capacity evicts the oldest
scope even if its tree node has not deactivated yet. That caps growth
when nodes are rebuilt without being torn down, at the price of a state
occasionally becoming unreachable through state() during deep nesting.
Pass capacity=None to tie scope lifetime strictly to activate/deactivate.

Thread safety: not thread-safe (all operations expected on the UI thread).
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TypeVar

from treestate.errors import NoActiveScopeError, StateNotFoundError
from treestate.scope import StateScope
from treestate.state import State

logger = logging.getLogger("treestate.registry")

S = TypeVar("S", bound=State)

DEFAULT_CAPACITY = 5


class StateRegistry:
    """Ordered, capacity-bounded sequence of active scopes (oldest first)."""

    __slots__ = ("_scopes", "_capacity")

    def __init__(self, capacity: int | None = DEFAULT_CAPACITY) -> None:
        if capacity is not None and capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._scopes: deque[StateScope] = deque()

    @property
    def capacity(self) -> int | None:
        return self._capacity

    @property
    def scopes(self) -> tuple[StateScope, ...]:
        return tuple(self._scopes)

    def register(self, scope: StateScope) -> None:
        """Append scope, replacing any scope built from the same collection."""
        stale = [s for s in self._scopes if s.source is scope.source]
        for s in stale:
            self._scopes.remove(s)
        self._scopes.append(scope)
        if self._capacity is not None and len(self._scopes) > self._capacity:
            evicted = self._scopes.popleft()
            logger.debug("Evicted oldest scope %r", evicted)
        logger.debug("Registered scope. Active scopes: %d", len(self._scopes))

    def unregister(self, scope: StateScope) -> None:
        """Remove scope. No-op if it is not registered (or was evicted)."""
        for i, s in enumerate(self._scopes):
            if s is scope:
                del self._scopes[i]
                logger.debug("Unregistered scope. Active scopes: %d", len(self._scopes))
                return

    def resolve(self, state_type: type[S]) -> S:
        """Find state_type in the newest scope that has it.

        Raises NoActiveScopeError when nothing is registered and
        StateNotFoundError when no active scope holds the type.
        """
        if not self._scopes:
            raise NoActiveScopeError()
        for scope in reversed(self._scopes):
            state = scope.find(state_type)
            if state is not None:
                return state
        raise StateNotFoundError(state_type, "any active scope")

    def clear(self) -> None:
        """Forget every scope. Meant for test harnesses."""
        self._scopes.clear()

    def __contains__(self, scope: object) -> bool:
        return any(s is scope for s in self._scopes)

    def __len__(self) -> int:
        return len(self._scopes)

    def __repr__(self) -> str:
        return f"StateRegistry({len(self._scopes)}/{self._capacity} scopes)"


default_registry = StateRegistry()


def state(state_type: type[S], registry: StateRegistry | None = None) -> S:
    """Get the state of state_type from whichever active scope is most recent.

    Usage:
        state(CounterState).increment()
    """
    return (registry if registry is not None else default_registry).resolve(state_type)
