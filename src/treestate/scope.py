"""StateScope — the set of states one tree node declares.

Built once when the node activates and never changed afterwards. Lookups
go by exact concrete type: asking for a base class of a registered state
does not match it.
"""

from __future__ import annotations

import logging
from typing import Iterator, Sequence, TypeVar

from treestate.errors import StateNotFoundError
from treestate.state import State

logger = logging.getLogger("treestate.scope")

S = TypeVar("S", bound=State)


class StateScope:
    """Immutable, type-keyed collection of states.

    If two states share a type, the later one shadows the earlier one for
    lookups, but both are kept in `states` and both get disposed.
    """

    __slots__ = ("_source", "_states", "_by_type")

    def __init__(self, states: Sequence[State]) -> None:
        self._source = states
        self._states: tuple[State, ...] = tuple(states)
        self._by_type: dict[type, State] = {}
        for state in self._states:
            state_type = type(state)
            if state_type in self._by_type:
                logger.warning(
                    "Duplicate %s in scope; the earlier instance is shadowed for lookups",
                    state_type.__qualname__,
                )
            self._by_type[state_type] = state

    @property
    def source(self) -> Sequence[State]:
        """The collection this scope was built from. Identity marks duplicates in a registry."""
        return self._source

    @property
    def states(self) -> tuple[State, ...]:
        return self._states

    def lookup(self, state_type: type[S]) -> S:
        """Return the state of exactly state_type. Raises StateNotFoundError."""
        state = self._by_type.get(state_type)
        if state is None:
            raise StateNotFoundError(state_type)
        return state

    def find(self, state_type: type[S]) -> S | None:
        return self._by_type.get(state_type)

    def dispose_states(self) -> None:
        """Dispose every state, shadowed duplicates included."""
        for state in self._states:
            state.dispose()

    def __contains__(self, state_type: object) -> bool:
        return state_type in self._by_type

    def __iter__(self) -> Iterator[State]:
        return iter(self._states)

    def __len__(self) -> int:
        return len(self._states)

    def __repr__(self) -> str:
        names = ", ".join(type(s).__name__ for s in self._states)
        return f"StateScope([{names}])"
