"""State containers — typed, observable values with optional restoration.

A State holds one value. Reading it inside a reaction registers the
dependency; every set() notifies subscribers and dependent reactions, then
writes the value into the restoration store so a container rebuilt later
under the same key starts from it.

Thread safety: call set_scheduler() once from the UI thread. After that,
any .set() from a background thread is auto-marshaled. UI-thread .set()
remains synchronous.
"""

from __future__ import annotations

import contextvars
import logging
import threading
import types
from contextlib import contextmanager
from typing import Any, Callable, Generic, Iterator, TypeVar, Union, get_args, get_origin

from treestate._tracking import schedule, track
from treestate.errors import RestorationTypeMismatch, StateDisposedError
from treestate.storage import RestorationStore, default_storage

logger = logging.getLogger("treestate.state")

T = TypeVar("T")

Unsubscribe = Callable[[], None]

# ─── Auto-marshal ────────────────────────────────────────────────────────────
_scheduler = None
_scheduler_thread = None


def set_scheduler(scheduler) -> None:
    """Set the global thread scheduler for cross-thread State mutations.

    Call once from the main/UI thread:
        treestate.set_scheduler(app.call_from_thread)

    After this, any State.set() from a background thread is automatically
    marshaled. Main-thread mutations remain synchronous. Pass None to
    switch marshaling off again.
    """
    global _scheduler, _scheduler_thread
    _scheduler = scheduler
    _scheduler_thread = threading.current_thread() if scheduler is not None else None


# ─── Restoration keys ────────────────────────────────────────────────────────
# Per-type counters of the declaration currently running, or None outside one.
_declaration: contextvars.ContextVar[dict[type, int] | None] = contextvars.ContextVar(
    "declaration", default=None
)


@contextmanager
def declaring() -> Iterator[None]:
    """Number auto-keyed states by declaration order while inside the block.

    The n-th auto-keyed state of a given type gets the key
    "<module>.<qualname>#<n>", so rebuilding the same declaration yields
    the same keys and restoration finds the previous values.
    """
    token = _declaration.set({})
    try:
        yield
    finally:
        _declaration.reset(token)


def auto_restoration_id(state_type: type) -> str:
    counts = _declaration.get()
    ordinal = 0
    if counts is not None:
        ordinal = counts.get(state_type, 0)
        counts[state_type] = ordinal + 1
    return f"{state_type.__module__}.{state_type.__qualname__}#{ordinal}"


def _accepted_types(hint) -> type | tuple[type, ...]:
    """Classes a stored value may be an instance of for the type hint.

    Unions accept any of their members (None included for Optional);
    Any, TypeVars and other non-class hints accept everything.
    """
    origin = get_origin(hint)
    if origin is Union or origin is types.UnionType:
        members = []
        for arg in get_args(hint):
            accepted = _accepted_types(arg)
            if accepted is object:
                return object
            members.extend(accepted if isinstance(accepted, tuple) else (accepted,))
        return tuple(members)
    cls = origin or hint
    if cls is Any or not isinstance(cls, type):
        return object
    return cls


def _declared_value_type(state_type: type) -> type | tuple[type, ...] | None:
    """What the nearest `class X(State[T])` base allows, or None if there is none."""
    for klass in state_type.__mro__:
        for base in klass.__dict__.get("__orig_bases__", ()):
            if get_origin(base) is not State:
                continue
            args = get_args(base)
            return _accepted_types(args[0]) if args else None
    return None


class State(Generic[T]):
    """A single observable value with an immutable initial value.

    Subclass it to give each piece of state its own type, which is what
    scopes and the registry look it up by:

        class CounterState(State[int]):
            def __init__(self):
                super().__init__(0, restoration_id="counter")

            def increment(self):
                self.set(self.value + 1)
    """

    __slots__ = (
        "_value",
        "_initial_value",
        "_restoration_id",
        "_storage",
        "_subscribers",
        "_observers",
        "_disposed",
    )

    def __init__(
        self,
        initial_value: T,
        restoration_id: str | None = None,
        *,
        storage: RestorationStore | None = None,
    ) -> None:
        self._initial_value = initial_value
        self._value = initial_value
        self._storage = storage if storage is not None else default_storage
        self._restoration_id = (
            restoration_id if restoration_id is not None else auto_restoration_id(type(self))
        )
        self._subscribers: list[Callable[[T], None]] = []
        self._observers: dict = {}  # insertion-ordered set of reactions
        self._disposed = False
        self._restore()

    # --- Restoration ---

    def _restore(self) -> None:
        found, stored = self._storage.lookup(self._restoration_id)
        if not found:
            return
        try:
            self._check_restored(stored)
        except (RestorationTypeMismatch, TypeError) as exc:
            logger.warning("Failed to restore %s: %s", self._restoration_id, exc)
            return
        self._value = stored
        logger.debug("Restored %s = %r", self._restoration_id, stored)

    def _check_restored(self, stored: object) -> None:
        expected = _declared_value_type(type(self))
        if expected is None and self._initial_value is not None:
            expected = type(self._initial_value)
        if expected is None or expected is object:
            return
        if not isinstance(stored, expected):
            raise RestorationTypeMismatch(self._restoration_id, expected, stored)

    def _persist(self, value: T) -> None:
        try:
            self._storage.put(self._restoration_id, value)
        except Exception:
            logger.exception("Failed to save %s", self._restoration_id)
            return
        logger.debug("Saved %s = %r", self._restoration_id, value)

    # --- Read ---

    @property
    def value(self) -> T:
        """The current value. Inside a reaction, registers the dependency."""
        track(self)
        return self._value

    def get(self) -> T:
        return self.value

    @property
    def initial_value(self) -> T:
        return self._initial_value

    @property
    def restoration_id(self) -> str:
        return self._restoration_id

    @property
    def disposed(self) -> bool:
        return self._disposed

    # --- Write ---

    def set(self, value: T) -> None:
        """Replace the value, notify, then persist. Auto-marshals from background threads.

        Every call counts as a change, even when the value is equal to the
        current one.
        """
        if self._disposed:
            raise StateDisposedError(self)
        if _scheduler is not None and threading.current_thread() != _scheduler_thread:
            _scheduler(lambda v=value: self._set_direct(v))
        else:
            self._set_direct(value)

    def _set_direct(self, value: T) -> None:
        """Set value, notify, persist. Always runs on the scheduler thread."""
        if self._disposed:
            raise StateDisposedError(self)
        self._value = value
        self._notify(value)
        self._persist(value)

    def reset(self) -> None:
        """Go back to the initial value through the regular set() path."""
        self.set(self._initial_value)

    # --- Notification ---

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        """Call callback(value) after every set(). Returns a function that removes it."""
        if self._disposed:
            raise StateDisposedError(self)
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass  # already removed

        return _unsubscribe

    def _notify(self, value: T) -> None:
        """Run every subscriber, then every dependent reaction.

        A failing callback is logged and the rest still run.
        """
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.exception("Subscriber of %s failed", self._restoration_id)
        for observer in list(self._observers):
            try:
                schedule(observer)
            except Exception:
                logger.exception("Reaction on %s failed", self._restoration_id)

    def _add_observer(self, observer) -> None:
        if not self._disposed:
            self._observers[observer] = None

    def _remove_observer(self, observer) -> None:
        """Remove an observer. Called during dependency cleanup."""
        self._observers.pop(observer, None)

    # --- Lifecycle ---

    def dispose(self) -> None:
        """Drop every subscriber. Any later set() raises StateDisposedError."""
        if self._disposed:
            return
        self._disposed = True
        self._subscribers.clear()
        for observer in list(self._observers):
            observer._dependencies.discard(self)
        self._observers.clear()

    def __repr__(self) -> str:
        state = ", disposed" if self._disposed else ""
        return f"{type(self).__name__}({self._value!r}, key={self._restoration_id!r}{state})"
