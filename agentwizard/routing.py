"""Routing functions for the wizard navigation state machine.

The visible three-step builder on page 1 occupies sub-steps 1, 3 and 5.
Sub-steps 2 and 4 are never produced by advance or retreat.

route_after_* functions take a NavState dict and return the name of the next
node in the navigation graph.
"""

from __future__ import annotations

from agentwizard.state import CallDirection, Position


FIRST_SUB_STEP = 1
LAST_SUB_STEP = 5
LAST_PAGE = 3

# Directions whose agents need no business configuration page.
_DIRECT_SUBMIT = {CallDirection.WEB, CallDirection.OUTBOUND}


def page_after_flow(direction: CallDirection | None) -> int | None:
    """Page reached when leaving the conversation-flow page.

    Returns:
        3 for the configuration page, or None when the wizard submits
        directly.
    """
    if direction in _DIRECT_SUBMIT:
        return None
    return 3


def next_sub_step(sub_step: int) -> int:
    if sub_step == 1:
        return 3
    if sub_step == 3:
        return 5
    return sub_step + 1


def previous_sub_step(sub_step: int) -> int:
    if sub_step == 5:
        return 3
    if sub_step == 3:
        return 1
    return sub_step - 1


def is_first_position(position: Position) -> bool:
    return position.page == 1 and position.sub_step == FIRST_SUB_STEP


def previous_position(position: Position) -> Position | None:
    """Position reached by retreating, or None at the first position."""
    if is_first_position(position):
        return None
    if position.page == 1:
        return Position(1, previous_sub_step(position.sub_step))
    if position.page == 2:
        return Position(1, LAST_SUB_STEP)
    return Position(position.page - 1, 1)


# ---------------------------------------------------------------------------
# Graph routing
# ---------------------------------------------------------------------------

def route_after_identity(state: dict) -> str:
    if state.get("missing_fields"):
        return "blocked"
    return "flow"


def route_after_flow(state: dict) -> str:
    if not (state.get("conversation_flow") or "").strip():
        return "blocked"
    direction = state.get("call_direction")
    direction = CallDirection(direction) if direction else None
    if page_after_flow(direction) is None:
        return "submit"
    return "configuration"
