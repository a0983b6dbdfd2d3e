"""Tests for treestate.textual — Textual integration layer."""

import asyncio
import logging
import threading

import pytest
from textual.app import App
from textual.css.query import NoMatches
from textual.widgets import Static

from treestate import NoActiveScopeError, State, StateNotFoundError, StateRegistry, StateScope
from treestate import textual as stx


class CounterState(State[int]):
    def __init__(self):
        super().__init__(0, "textual-counter")


class NameState(State[str]):
    def __init__(self):
        super().__init__("guest", "textual-name")


class _MockApp:
    """Minimal mock matching the Textual App interface stx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running
        self._call_from_thread_log = []

    def call_from_thread(self, fn, *args):
        self._call_from_thread_log.append((fn, args))
        fn(*args)


class _MockNode:
    """Tree node exposing what scope_of() and bind() walk."""

    def __init__(self, parent=None, scope=None, app=None):
        self.parent = parent
        self.state_scope = scope
        self.app = app if app is not None else (parent.app if parent else None)
        self._state_bindings = []

    @property
    def ancestors_with_self(self):
        node, nodes = self, []
        while node is not None:
            nodes.append(node)
            node = node.parent
        return nodes


def _tree(app, *states):
    """(owner, leaf) with the scope on the owner two levels up."""
    owner = _MockNode(scope=StateScope(list(states)), app=app)
    return owner, _MockNode(parent=_MockNode(parent=owner))


class TestScopeOf:
    def test_nearest_scope_wins(self):
        outer = StateScope([CounterState()])
        inner = StateScope([CounterState()])
        root = _MockNode(scope=outer)
        middle = _MockNode(parent=root, scope=inner)
        leaf = _MockNode(parent=middle)
        assert stx.scope_of(leaf) is inner
        assert stx.scope_of(root) is outer

    def test_skips_nodes_without_scope(self):
        scope = StateScope([CounterState()])
        leaf = _MockNode(parent=_MockNode(parent=_MockNode(scope=scope)))
        assert stx.scope_of(leaf) is scope

    def test_no_scope_raises(self):
        with pytest.raises(NoActiveScopeError):
            stx.scope_of(_MockNode(parent=_MockNode()))

    def test_lookup(self):
        counter = CounterState()
        leaf = _MockNode(parent=_MockNode(scope=StateScope([counter])))
        assert stx.lookup(leaf, CounterState) is counter


class TestBind:
    def test_runs_immediately_with_nearest_state(self):
        counter = CounterState()
        _, leaf = _tree(_MockApp(), counter)
        seen = []
        stx.bind(leaf, CounterState, seen.append)
        assert seen == [counter]

    def test_reruns_on_every_set(self):
        counter = CounterState()
        _, leaf = _tree(_MockApp(), counter)
        values = []
        stx.bind(leaf, CounterState, lambda s: values.append(s.value))
        counter.set(1)
        counter.set(1)
        assert values == [0, 1, 1]

    def test_only_bound_state_triggers(self):
        counter, name = CounterState(), NameState()
        _, leaf = _tree(_MockApp(), counter, name)
        values = []
        stx.bind(leaf, CounterState, lambda s: values.append(s.value))
        name.set("Ada")
        assert values == [0]

    def test_registered_with_owner(self):
        owner, leaf = _tree(_MockApp(), CounterState())
        binding = stx.bind(leaf, CounterState, lambda s: None)
        assert owner._state_bindings == [binding]

    def test_missing_state_raises(self):
        _, leaf = _tree(_MockApp(), CounterState())
        with pytest.raises(StateNotFoundError):
            stx.bind(leaf, NameState, lambda s: None)

    def test_outside_scope_raises(self):
        with pytest.raises(NoActiveScopeError):
            stx.bind(_MockNode(app=_MockApp()), CounterState, lambda s: None)

    def test_dispose_stops(self):
        counter = CounterState()
        _, leaf = _tree(_MockApp(), counter)
        values = []
        binding = stx.bind(leaf, CounterState, lambda s: values.append(s.value))
        binding.dispose()
        counter.set(2)
        assert values == [0]

    def test_state_disposal_stops(self):
        counter = CounterState()
        _, leaf = _tree(_MockApp(), counter)
        binding = stx.bind(leaf, CounterState, lambda s: None)
        counter.dispose()
        assert binding._dependencies == set()

    def test_skips_when_not_running(self):
        counter = CounterState()
        _, leaf = _tree(_MockApp(is_running=False), counter)
        values = []
        stx.bind(leaf, CounterState, lambda s: values.append(s.value))
        counter.set(2)
        assert values == []

    def test_resumes_after_pause(self):
        app = _MockApp()
        counter = CounterState()
        _, leaf = _tree(app, counter)
        values = []
        stx.bind(leaf, CounterState, lambda s: values.append(s.value))
        with stx.pause(app):
            counter.set(2)
        assert values == [0]
        counter.set(3)
        assert values == [0, 3]

    def test_catches_nomatch(self):
        counter = CounterState()
        _, leaf = _tree(_MockApp(), counter)
        calls = []

        def _effect(s):
            calls.append(s.value)
            if s.value:
                raise NoMatches("CounterLabel")

        stx.bind(leaf, CounterState, _effect)
        counter.set(1)
        counter.set(2)
        assert calls == [0, 1, 2]

    def test_failing_effect_is_logged(self, caplog):
        counter = CounterState()
        _, leaf = _tree(_MockApp(), counter)

        def _effect(s):
            if s.value:
                raise ValueError("boom")

        stx.bind(leaf, CounterState, _effect)
        with caplog.at_level(logging.ERROR, logger="treestate.state"):
            counter.set(1)
        assert counter.value == 1
        assert "Reaction on textual-counter failed" in caplog.text

    def test_thread_marshal(self):
        """Triggers from background thread use call_from_thread."""
        app = _MockApp()
        counter = CounterState()
        _, leaf = _tree(app, counter)
        values = []
        stx.bind(leaf, CounterState, lambda s: values.append(s.value))

        t = threading.Thread(target=lambda: counter.set(2))
        t.start()
        t.join()

        assert values == [0, 2]
        assert len(app._call_from_thread_log) == 1


class _CounterLabel(Static):
    def on_mount(self):
        self.count_binding = stx.bind(self, CounterState, self.show_count)

    def show_count(self, state):
        self.app.renders.append(state.value)


class _CounterPanel(stx.ScopedWidget):
    def create_states(self):
        return [CounterState()]

    def compose(self):
        yield _CounterLabel("count", id="leaf")


class _CounterApp(App):
    def __init__(self, registry):
        super().__init__()
        self.registry = registry
        self.renders = []

    def compose(self):
        yield _CounterPanel(registry=self.registry, id="panel")


class TestScopedWidget:
    def test_mounted_tree(self):
        registry = StateRegistry()

        async def run():
            app = _CounterApp(registry)
            async with app.run_test() as pilot:
                await pilot.pause()
                leaf = app.query_one("#leaf")
                counter = stx.lookup(leaf, CounterState)
                assert registry.resolve(CounterState) is counter
                counter.set(3)
                assert app.renders == [0, 3]

                await app.query_one("#panel").remove()
                await pilot.pause()
                assert counter.disposed
                assert leaf.count_binding.disposed
                assert len(registry) == 0

        asyncio.run(run())


class TestPause:
    def test_pause_restores_on_exception(self):
        app = _MockApp()
        assert stx.is_safe(app)

        with pytest.raises(RuntimeError):
            with stx.pause(app):
                assert not stx.is_safe(app)
                raise RuntimeError("oops")

        assert stx.is_safe(app)

    def test_multiple_apps_independent(self):
        """Pausing one app does not affect another."""
        app_a = _MockApp()
        app_b = _MockApp()
        with stx.pause(app_a):
            assert not stx.is_safe(app_a)
            assert stx.is_safe(app_b)
