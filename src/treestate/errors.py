"""Error taxonomy.

Lookup failures always reach the caller as one of these classes so it can
tell "nothing registered yet" apart from "wrong type requested".
Restoration mismatches are the exception: State catches and logs them.
"""

from __future__ import annotations


class TreeStateError(Exception):
    """Base class for all treestate errors."""


class StateNotFoundError(TreeStateError, LookupError):
    """No container of the requested exact type is registered."""

    def __init__(self, state_type: type, where: str = "scope") -> None:
        self.state_type = state_type
        super().__init__(f"State of type {state_type.__qualname__} not found in {where}")


class NoActiveScopeError(TreeStateError, LookupError):
    """A lookup ran while no scope was active."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "state() was called while no scope is active. Make sure the tree node "
            "that declares the state has been activated before reaching it globally."
        )


class StateDisposedError(TreeStateError, RuntimeError):
    """A container was mutated after its owning scope was torn down."""

    def __init__(self, state) -> None:
        self.state = state
        super().__init__(f"{type(state).__qualname__} was disposed and can no longer be set")


class RestorationTypeMismatch(TreeStateError, TypeError):
    """A stored restoration value does not fit the container's value type."""

    def __init__(self, key: str, expected: type | tuple[type, ...], actual: object) -> None:
        self.key = key
        self.expected = expected
        self.actual = actual
        classes = expected if isinstance(expected, tuple) else (expected,)
        names = " | ".join(cls.__qualname__ for cls in classes)
        super().__init__(
            f"Restored value for {key!r} is {type(actual).__qualname__}, expected {names}"
        )
