"""Tests for field validation and the page-1 required-field check."""

import pytest

from agentwizard.state import AgentDraft, CallDirection
from agentwizard.validation import (
    REQUIRED_FIELDS,
    ValidationState,
    check_required_fields,
    validate_field,
)


class TestValidateField:

    def test_agent_name_required(self) -> None:
        assert validate_field("agent_name", "   ") == "Agent name is required"
        assert validate_field("agent_name", "Sarah") is None

    def test_company_name_required(self) -> None:
        assert validate_field("company_name", "") == "Company name is required"

    @pytest.mark.parametrize("field_name", ["role", "industry", "welcome_message"])
    def test_other_fields_always_valid(self, field_name: str) -> None:
        assert validate_field(field_name, "") is None


class TestCheckRequiredFields:

    def test_empty_draft_reports_every_violation_in_order(self) -> None:
        assert check_required_fields(AgentDraft()) == [
            "Voice is required",
            "Call Type is required",
            "Role is required",
            "Agent Name is required",
            "Company Name is required",
            "Company Information is required",
        ]

    def test_complete_draft_passes(self, complete_draft: AgentDraft) -> None:
        assert check_required_fields(complete_draft) == []

    @pytest.mark.parametrize("field_name,message", REQUIRED_FIELDS)
    def test_each_missing_field_is_reported(
        self, complete_draft: AgentDraft, field_name: str, message: str
    ) -> None:
        value = None if field_name == "call_direction" else ""
        setattr(complete_draft, field_name, value)

        assert check_required_fields(complete_draft) == [message]

    def test_whitespace_counts_as_empty(self, complete_draft: AgentDraft) -> None:
        complete_draft.role = "   "

        assert check_required_fields(complete_draft) == ["Role is required"]


class TestValidationState:

    def test_untouched_field_is_not_valid(self) -> None:
        state = ValidationState()

        assert state.is_valid("agent_name") is False

    def test_touch_then_fix(self) -> None:
        state = ValidationState()

        assert state.touch("agent_name", "") == "Agent name is required"
        assert state.is_valid("agent_name") is False

        state.touch("agent_name", "Sarah")
        assert state.is_valid("agent_name") is True
        assert "agent_name" not in state.errors

    def test_force_touch_marks_required_fields(self) -> None:
        state = ValidationState()
        draft = AgentDraft(call_direction=CallDirection.WEB, role="Support")

        state.force_touch(draft)

        assert {name for name, _ in REQUIRED_FIELDS} <= state.touched
        assert state.errors == {
            "agent_name": "Agent name is required",
            "company_name": "Company name is required",
        }
        assert state.is_valid("role") is True

    def test_clear(self) -> None:
        state = ValidationState()
        state.touch("company_name", "")

        state.clear()

        assert state.touched == set()
        assert state.errors == {}
