"""
Canonical workflow types (``commission_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for state machines.  The commission approval workflow
and the draw gate both declare themselves with these, so Guard,
Transition and Workflow are defined once.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.

States are any hashable value; the commission workflow uses
``(status, approval_stage)`` pairs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Mapping


@dataclass(frozen=True)
class Guard:
    """A named condition that must hold before a transition fires.

    Non-goals: does not evaluate the condition -- the owning service does,
    and passes the outcome to ``Workflow.select``.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: Hashable
    to_state: Hashable
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle."""
    name: str
    description: str
    initial_state: Hashable
    states: tuple[Hashable, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[Hashable, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(f"{self.name}: initial state {self.initial_state!r} not in states")
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(f"{self.name}: transition {t.action} references an unknown state")
            if t.from_state in self.terminal_states:
                raise ValueError(f"{self.name}: terminal state {t.from_state!r} has an outgoing transition")

    @property
    def actions(self) -> frozenset[str]:
        return frozenset(t.action for t in self.transitions)

    def is_terminal(self, state: Hashable) -> bool:
        return state in self.terminal_states

    def transitions_from(self, state: Hashable, action: str) -> tuple[Transition, ...]:
        return tuple(
            t for t in self.transitions
            if t.from_state == state and t.action == action
        )

    def select(
        self,
        state: Hashable,
        action: str,
        guard_results: Mapping[str, bool] | None = None,
    ) -> Transition | None:
        """First transition for ``action`` from ``state`` whose guard holds."""
        results = guard_results or {}
        for t in self.transitions_from(state, action):
            if t.guard is None or results.get(t.guard.name, False):
                return t
        return None
