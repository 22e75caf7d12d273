"""Tests for the reverse transforms from edited text back into the draft."""

from agentwizard.assembler import assemble_prompt
from agentwizard.decomposer import (
    apply_agent_prompt_text,
    apply_review_text,
    compose_review_text,
    extract_conversation_flow,
    parse_agent_prompt_text,
)
from agentwizard.state import AgentDraft, QAItem


class TestReviewText:

    def test_compose_with_qa_and_flow(self) -> None:
        draft = AgentDraft(
            additional_qa=[QAItem(1, "Hours?", "9 to 5")],
            conversation_flow="Greet the caller.",
        )

        assert compose_review_text(draft) == (
            "## ADDITIONAL Q&A RESPONSES\n\n"
            "1. **Q: Hours?**\n   A: 9 to 5\n\n"
            "## CONVERSATION FLOW\n\n"
            "Greet the caller."
        )

    def test_compose_flow_only(self) -> None:
        draft = AgentDraft(conversation_flow="Greet the caller.")

        assert compose_review_text(draft) == "## CONVERSATION FLOW\n\nGreet the caller."

    def test_unedited_flow_round_trips(self) -> None:
        draft = AgentDraft(
            additional_qa=[QAItem(1, "Hours?", "9 to 5")],
            conversation_flow="Step 1: Greet.\n\nStep 2: Qualify.",
        )

        assert extract_conversation_flow(compose_review_text(draft)) == draft.conversation_flow

    def test_user_edit_wins(self) -> None:
        draft = AgentDraft(conversation_flow="Greet the caller.")
        edited = compose_review_text(draft).replace("Greet the caller.", "Say hello warmly.\n")

        apply_review_text(draft, edited)

        assert draft.conversation_flow == "Say hello warmly."

    def test_missing_marker_keeps_whole_text(self) -> None:
        draft = AgentDraft(conversation_flow="old")

        apply_review_text(draft, "I rewrote everything, headers included.")

        assert draft.conversation_flow == "I rewrote everything, headers included."

    def test_reassembled_prompt_carries_the_edit(self) -> None:
        draft = AgentDraft(language="", extraction_fields=[], conversation_flow="old")

        apply_review_text(draft, "## CONVERSATION FLOW\n\nnew flow")

        assert assemble_prompt(draft) == "### CONVERSATION FLOW\nnew flow"


class TestAgentPromptText:

    def test_recovers_identity_and_company_information(self) -> None:
        text = (
            "### AGENT IDENTITY\n"
            "Agent Name: Maya\n"
            "Company: Globex\n"
            "Role: Support\n"
            "Language: English\n"
            "\n"
            "### COMPANY INFORMATION\n"
            "We build things.\n"
            "\n"
            "Mostly rockets.\n"
            "\n"
            "### CONVERSATION FLOW\n"
            "Hello there."
        )

        assert parse_agent_prompt_text(text) == {
            "agent_name": "Maya",
            "company_name": "Globex",
            "role": "Support",
            "company_description": "We build things.\nMostly rockets.",
        }

    def test_unrecognized_lines_are_ignored(self) -> None:
        assert parse_agent_prompt_text("Just some notes\nAnother: line") == {}

    def test_apply_updates_only_found_fields(self) -> None:
        draft = AgentDraft(agent_name="Sarah", company_name="Acme", role="Sales")

        updated = apply_agent_prompt_text(draft, "Role: Support")

        assert updated == ["role"]
        assert draft.role == "Support"
        assert draft.agent_name == "Sarah"
        assert draft.company_name == "Acme"

    def test_assembled_identity_is_recovered(self) -> None:
        draft = AgentDraft(
            agent_name="Sarah",
            company_name="Acme",
            role="Lead Qualification",
            company_description="We sell widgets",
        )
        copy = AgentDraft()

        apply_agent_prompt_text(copy, assemble_prompt(draft, include_compliance=False))

        assert copy.agent_name == "Sarah"
        assert copy.company_name == "Acme"
        assert copy.role == "Lead Qualification"
        assert copy.company_description == "We sell widgets"

    def test_company_information_ends_at_notes_heading(self) -> None:
        text = (
            "### COMPANY INFORMATION\n"
            "We sell widgets\n"
            "\n"
            "##Notes\n"
            "- Be concise.\n"
            "- Role: never invent facts."
        )

        assert parse_agent_prompt_text(text) == {"company_description": "We sell widgets"}
