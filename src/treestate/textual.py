"""Textual integration for treestate. Opt-in — requires textual.

ScopedWidget gives a node of the widget tree its own StateScope; scope_of()
and lookup() find the nearest one from any descendant. bind() keeps a
widget in sync with a state from that scope:

    class CounterLabel(Static):
        def on_mount(self):
            bind(self, CounterState, lambda s: self.update(f"Count: {s.value}"))

Guard + NoMatches + thread-marshal are enforced in bind(), not at callsites.
Textual coupling is isolated in this module; the core stays agnostic.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Sequence, TypeVar

from textual.css.query import NoMatches
from textual.widget import Widget

from treestate.errors import NoActiveScopeError
from treestate.lifecycle import ScopeController, declare_states
from treestate.reaction import Reaction
from treestate.registry import StateRegistry
from treestate.scope import StateScope
from treestate.state import State

S = TypeVar("S", bound=State)

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


class ScopedWidget(Widget):
    """A widget that declares states for itself and its descendants.

    The scope is activated when the widget is created. On unmount, the
    bindings made against it are disposed first, then the scope is torn
    down:

        class CounterPanel(ScopedWidget):
            def create_states(self):
                return [CounterState()]

            def compose(self):
                yield CounterLabel()
    """

    def __init__(self, *children: Widget, registry: StateRegistry | None = None, **kwargs) -> None:
        super().__init__(*children, **kwargs)
        self._state_bindings: list[Reaction] = []
        self._state_controller = ScopeController(registry)
        self._state_controller.activate(declare_states(self.create_states))

    def create_states(self) -> Sequence[State]:
        """Return the states this widget provides. Override in subclasses."""
        return []

    @property
    def state_scope(self) -> StateScope | None:
        return self._state_controller.scope

    def on_unmount(self) -> None:
        for binding in self._state_bindings:
            binding.dispose()
        self._state_bindings.clear()
        self._state_controller.deactivate()


def _scope_owner(node):
    for ancestor in node.ancestors_with_self:
        if getattr(ancestor, "state_scope", None) is not None:
            return ancestor
    raise NoActiveScopeError(f"{type(node).__name__} is not inside an active ScopedWidget")


def scope_of(node) -> StateScope:
    """The scope of the nearest active ScopedWidget at or above node."""
    return _scope_owner(node).state_scope


def lookup(node, state_type: type[S]) -> S:
    return scope_of(node).lookup(state_type)


@contextmanager
def pause(app):
    """Suspend bindings during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def bind(node, state_type: type[S], effect: Callable[[S], None]) -> Reaction:
    """Call effect(state) now and after every set() of the nearest state_type.

    The state is resolved once, through the scope node sits in. effect
    runs on every notification, equal values included. While the app is
    paused or not running the call is skipped, NoMatches from widget
    queries is swallowed, and triggers from other threads are marshaled
    with call_from_thread. The binding is disposed when the owning
    ScopedWidget unmounts; call .dispose() to stop it earlier.
    """
    owner = _scope_owner(node)
    target = owner.state_scope.lookup(state_type)
    app = node.app
    _main = threading.get_ident()

    def _guarded():
        target.value  # track, even when this run is skipped
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe)
        else:
            _safe()

    def _safe():
        try:
            effect(target)
        except NoMatches:
            pass

    binding = Reaction(_guarded)
    binding._run()
    bindings = getattr(owner, "_state_bindings", None)
    if bindings is not None:
        bindings.append(binding)
    return binding
