"""Tests for wizard navigation: routing, transitions and the LangGraph graph."""

import pytest

from agentwizard.graph import FLOW_REQUIRED, advance, build_graph, nav_state, node_for, retreat
from agentwizard.routing import (
    next_sub_step,
    page_after_flow,
    previous_position,
    previous_sub_step,
)
from agentwizard.state import AgentDraft, CallDirection, Position


class TestSubSteps:

    def test_skip_rule_forward(self) -> None:
        assert next_sub_step(1) == 3
        assert next_sub_step(3) == 5

    def test_skip_rule_backward(self) -> None:
        assert previous_sub_step(5) == 3
        assert previous_sub_step(3) == 1

    def test_stray_positions_step_by_one(self) -> None:
        assert next_sub_step(2) == 3
        assert next_sub_step(4) == 5
        assert previous_sub_step(2) == 1
        assert previous_sub_step(4) == 3


class TestPageAfterFlow:

    @pytest.mark.parametrize("direction", [CallDirection.WEB, CallDirection.OUTBOUND])
    def test_direct_submit(self, direction: CallDirection) -> None:
        assert page_after_flow(direction) is None

    def test_inbound_needs_configuration(self) -> None:
        assert page_after_flow(CallDirection.INBOUND) == 3


class TestAdvance:

    def test_builder_steps(self) -> None:
        draft = AgentDraft()

        first = advance(Position(1, 1), draft)
        second = advance(first.position, draft)

        assert (first.action, first.position) == ("move", Position(1, 3))
        assert (second.action, second.position) == ("move", Position(1, 5))

    def test_page_one_guard_reports_everything(self) -> None:
        step = advance(Position(1, 5), AgentDraft())

        assert step.action == "rejected"
        assert step.position == Position(1, 5)
        assert len(step.errors) == 6

    def test_page_one_guard_passes(self, complete_draft: AgentDraft) -> None:
        step = advance(Position(1, 5), complete_draft)

        assert (step.action, step.position) == ("move", Position(2, 1))

    def test_empty_flow_rejected(self, complete_draft: AgentDraft) -> None:
        complete_draft.conversation_flow = "   "

        step = advance(Position(2, 1), complete_draft)

        assert step.action == "rejected"
        assert step.errors == [FLOW_REQUIRED]

    def test_web_submits_from_flow_page(self, complete_draft: AgentDraft) -> None:
        complete_draft.call_direction = CallDirection.WEB
        complete_draft.conversation_flow = "Greet."

        step = advance(Position(2, 1), complete_draft)

        assert step.action == "submit"
        assert step.position == Position(2, 1)

    def test_outbound_submits_from_flow_page(self, complete_draft: AgentDraft) -> None:
        complete_draft.call_direction = CallDirection.OUTBOUND
        complete_draft.conversation_flow = "Greet."

        assert advance(Position(2, 1), complete_draft).action == "submit"

    def test_inbound_goes_to_configuration(self, complete_draft: AgentDraft) -> None:
        complete_draft.conversation_flow = "Greet."

        step = advance(Position(2, 1), complete_draft)

        assert (step.action, step.position) == ("move", Position(3, 1))

    def test_configuration_page_submits(self, complete_draft: AgentDraft) -> None:
        assert advance(Position(3, 1), complete_draft).action == "submit"


class TestRetreat:

    @pytest.mark.parametrize(
        "start,expected",
        [
            (Position(1, 5), Position(1, 3)),
            (Position(1, 3), Position(1, 1)),
            (Position(2, 1), Position(1, 5)),
            (Position(3, 1), Position(2, 1)),
        ],
    )
    def test_mirrors_advance(self, start: Position, expected: Position) -> None:
        assert previous_position(start) == expected
        assert retreat(start).position == expected

    def test_disabled_at_first_position(self) -> None:
        step = retreat(Position(1, 1))

        assert step.action == "none"
        assert step.position == Position(1, 1)


class TestGraph:

    def test_node_names(self) -> None:
        assert node_for(Position(1, 3)) == "builder_3"
        assert node_for(Position(1, 2)) is None
        assert node_for(Position(3, 1)) == "configuration"

    def test_web_never_visits_configuration(self, complete_draft: AgentDraft) -> None:
        complete_draft.call_direction = CallDirection.WEB
        complete_draft.conversation_flow = "Greet."

        result = build_graph().invoke(nav_state(complete_draft))

        assert result["visited"] == ["builder_1", "builder_3", "builder_5", "flow", "submit"]
        assert result["outcome"] == "submit"

    def test_inbound_visits_configuration(self, complete_draft: AgentDraft) -> None:
        complete_draft.conversation_flow = "Greet."

        result = build_graph().invoke(nav_state(complete_draft))

        assert "configuration" in result["visited"]
        assert result["outcome"] == "submit"

    def test_missing_fields_block_after_builder(self) -> None:
        result = build_graph().invoke(nav_state(AgentDraft()))

        assert result["visited"] == ["builder_1", "builder_3", "builder_5", "blocked"]
        assert result["outcome"] == "blocked"

    def test_empty_flow_blocks_on_flow_page(self, complete_draft: AgentDraft) -> None:
        result = build_graph().invoke(nav_state(complete_draft))

        assert result["visited"][-2:] == ["flow", "blocked"]
