"""Dependency tracking — which reaction is reading state right now.

Uses contextvars to track which states are read during a reaction
evaluation, building the dependency graph automatically. There is no
batching: every State.set() re-runs its dependents synchronously, in the
order the writes were issued.
"""

from __future__ import annotations

import contextvars
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from treestate.reaction import Reaction

# The currently-evaluating reaction.
# When set, any State read registers itself as a dependency.
current_derivation: contextvars.ContextVar[Reaction | None] = contextvars.ContextVar(
    "current_derivation", default=None
)


def track(source) -> None:
    """Register the current reaction (if any) as a dependent of source.

    Disposed sources are skipped: they never notify again.
    """
    derivation = current_derivation.get()
    if derivation is None or source.disposed:
        return
    source._add_observer(derivation)
    derivation._dependencies.add(source)


def schedule(derivation: Reaction) -> None:
    """Re-run a derivation whose dependency changed."""
    derivation._run()
