"""Release run states and the loop that drives a run through them.

A run starts ``idle`` and moves along ``TRANSITIONS`` until it reaches one of
the terminal states. Each non-terminal state has one handler, which returns
the next session; a handler error aborts the run.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Literal, Protocol

from semrel.core.result import Err, Ok, Result
from semrel.services.release.errors import ReleaseError

RunState = Literal[
    "idle",
    "classifying",
    "resolving",
    "versioning",
    "pipeline",
    "planned",
    "skipped",
    "succeeded",
    "failed",
    "cancelled",
]
RunStatus = Literal["planned", "skipped", "succeeded", "failed", "cancelled"]

TRANSITIONS: Mapping[RunState, frozenset[RunState]] = {
    "idle": frozenset({"classifying"}),
    "classifying": frozenset({"resolving", "skipped"}),
    "resolving": frozenset({"versioning", "skipped"}),
    # "planned" ends a version-only run before any step executes.
    "versioning": frozenset({"pipeline", "planned", "skipped"}),
    "pipeline": frozenset({"succeeded", "failed", "cancelled"}),
}

TERMINAL: frozenset[RunState] = frozenset(
    {"planned", "skipped", "succeeded", "failed", "cancelled"}
)


class RunSessionLike(Protocol):
    @property
    def state(self) -> RunState: ...


type StateHandler[S] = Callable[[S], Result[S, ReleaseError]]


def run_state_machine[S: RunSessionLike](
    *,
    initial: S,
    handlers: Mapping[RunState, StateHandler[S]],
    on_transition: Callable[[S], None] | None = None,
) -> Result[S, ReleaseError]:
    """Drive ``initial`` to a terminal state and return the final session.

    A handler moving the run along an edge missing from ``TRANSITIONS`` is a
    programming error and raises.
    """
    current = initial
    while current.state not in TERMINAL:
        handler = handlers.get(current.state)
        if handler is None:
            raise AssertionError(f"no handler for run state: {current.state}")

        result = handler(current)
        if isinstance(result, Err):
            return result

        nxt = result.value
        if nxt.state not in TRANSITIONS[current.state]:
            raise AssertionError(f"illegal run transition: {current.state} -> {nxt.state}")
        current = nxt
        if on_transition is not None:
            on_transition(current)
    return Ok(current)
