"""Navigation state machine for the agent wizard.

build_graph() returns a compiled LangGraph StateGraph of the forward path
(for visualization and validation). advance() and retreat() drive the
wizard one transition at a time and return a Step describing the outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from langgraph.graph import StateGraph, START, END

from agentwizard.routing import (
    LAST_SUB_STEP,
    LAST_PAGE,
    next_sub_step,
    page_after_flow,
    previous_position,
    route_after_flow,
    route_after_identity,
)
from agentwizard.state import AgentDraft, NavState, Position, START_POSITION
from agentwizard.validation import check_required_fields

logger = logging.getLogger(__name__)


FLOW_REQUIRED = "Conversation Flow is required to proceed"


@dataclass(frozen=True)
class Step:
    """Outcome of one navigation attempt.

    action is one of:
        move     -- position changed to ``position``
        submit   -- the wizard should submit from ``position``
        rejected -- a guard failed; ``errors`` lists every violation
        none     -- nothing to do (e.g. retreat from the first position)
    """

    action: str
    position: Position
    errors: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Node registry
# ---------------------------------------------------------------------------

# Graph node for each reachable position.
_POSITION_NODES = {
    Position(1, 1): "builder_1",
    Position(1, 3): "builder_3",
    Position(1, 5): "builder_5",
    Position(2, 1): "flow",
    Position(3, 1): "configuration",
}


def node_for(position: Position) -> str | None:
    """Graph node name for a position (pages 2 and 3 ignore the sub-step)."""
    if position.page > 1:
        position = Position(position.page, 1)
    return _POSITION_NODES.get(position)


def _visit(name: str):
    def node(state: dict) -> dict:
        return {"visited": list(state.get("visited") or []) + [name]}
    node.__name__ = f"{name}_node"
    return node


def _outcome(name: str):
    def node(state: dict) -> dict:
        return {
            "visited": list(state.get("visited") or []) + [name],
            "outcome": name,
        }
    node.__name__ = f"{name}_node"
    return node


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_graph():
    """Build and compile the navigation StateGraph.

    Invoking the compiled graph with a NavState walks the forward path from
    the first position and records every visited node in ``visited``.
    """
    builder = StateGraph(NavState)

    for name in ("builder_1", "builder_3", "builder_5", "flow", "configuration"):
        builder.add_node(name, _visit(name))
    builder.add_node("submit", _outcome("submit"))
    builder.add_node("blocked", _outcome("blocked"))

    builder.add_edge(START, "builder_1")
    builder.add_edge("builder_1", "builder_3")
    builder.add_edge("builder_3", "builder_5")
    builder.add_conditional_edges(
        "builder_5", route_after_identity, ["flow", "blocked"],
    )
    builder.add_conditional_edges(
        "flow", route_after_flow, ["submit", "configuration", "blocked"],
    )
    builder.add_edge("configuration", "submit")
    builder.add_edge("submit", END)
    builder.add_edge("blocked", END)

    return builder.compile()


def nav_state(draft: AgentDraft) -> NavState:
    """Project a draft onto the inputs the transition guards read."""
    return {
        "call_direction": draft.call_direction.value if draft.call_direction else None,
        "conversation_flow": draft.conversation_flow,
        "missing_fields": check_required_fields(draft),
        "visited": [],
    }


def advance(position: Position, draft: AgentDraft) -> Step:
    """Attempt to move forward from ``position``."""
    if position.page == 1:
        if position.sub_step < LAST_SUB_STEP:
            target = Position(1, next_sub_step(position.sub_step))
            logger.debug("Advance %s -> %s", position, target)
            return Step("move", target)

        errors = check_required_fields(draft)
        if errors:
            logger.debug("Advance from %s rejected: %s", position, errors)
            return Step("rejected", position, errors)
        return Step("move", Position(2, 1))

    if position.page == 2:
        if not draft.conversation_flow.strip():
            return Step("rejected", position, [FLOW_REQUIRED])
        page = page_after_flow(draft.call_direction)
        if page is None:
            logger.debug("Direction %s submits from page 2", draft.call_direction)
            return Step("submit", position)
        return Step("move", Position(page, 1))

    if position.page >= LAST_PAGE:
        return Step("submit", position)

    return Step("none", position)


def retreat(position: Position) -> Step:
    """Move back one position; a no-op at the first position."""
    target = previous_position(position)
    if target is None:
        return Step("none", position)
    logger.debug("Retreat %s -> %s", position, target)
    return Step("move", target)


def start_fresh() -> Step:
    return Step("move", START_POSITION)
