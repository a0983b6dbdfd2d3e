"""treestate: scoped, restorable reactive state for tree-structured UIs."""

from importlib.metadata import version as _version

__version__ = _version("treestate")

from treestate.errors import (
    TreeStateError,
    StateNotFoundError,
    NoActiveScopeError,
    StateDisposedError,
    RestorationTypeMismatch,
)
from treestate.storage import RestorationStore, default_storage
from treestate.state import State, set_scheduler
from treestate.scope import StateScope
from treestate.registry import DEFAULT_CAPACITY, StateRegistry, default_registry, state
from treestate.lifecycle import ScopeController, declare_states
from treestate.reaction import Reaction, autorun, reaction
# textual integration NOT auto-imported — opt-in only

__all__ = [
    "State",
    "StateScope",
    "StateRegistry",
    "ScopeController",
    "RestorationStore",
    "DEFAULT_CAPACITY",
    "default_registry",
    "default_storage",
    "state",
    "declare_states",
    "set_scheduler",
    "Reaction",
    "autorun",
    "reaction",
    "TreeStateError",
    "StateNotFoundError",
    "NoActiveScopeError",
    "StateDisposedError",
    "RestorationTypeMismatch",
]
