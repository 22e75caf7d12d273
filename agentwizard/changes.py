"""Heuristic unsaved-changes detection for the exit guard.

The check ORs together a fixed list of "non-default?" predicates. It is
approximate: fields outside the list (schedule, custom functions, FAQs)
never trigger a confirmation on their own.
"""

from __future__ import annotations

from agentwizard.state import DEFAULT_REGION, AgentDraft


def _has_identity(draft: AgentDraft) -> bool:
    return bool(draft.agent_name or draft.company_name or draft.role)


def _has_description(draft: AgentDraft) -> bool:
    return bool(draft.prompt_description) or any(
        t.strip() for t in draft.call_transcripts
    )


def _has_variables(draft: AgentDraft) -> bool:
    return len(draft.dynamic_variables) > 0


def _has_extraction_fields(draft: AgentDraft) -> bool:
    return any(f.name.strip() or f.description.strip() for f in draft.extraction_fields)


def _has_generated_content(draft: AgentDraft) -> bool:
    return bool(
        draft.conversation_flow
        or draft.response_rules
        or draft.operating_rules
        or draft.edge_cases
    )


def _has_configuration(draft: AgentDraft) -> bool:
    return bool(
        draft.industry
        or draft.company_description
        or draft.company_website
        or draft.call_direction
        or draft.region != DEFAULT_REGION
        or draft.inbound_phone
        or draft.outbound_phone
    )


def _has_voice(draft: AgentDraft) -> bool:
    return draft.voice_id != ""


def _has_website_data(draft: AgentDraft) -> bool:
    return bool(draft.website.url or draft.website.content)


CHANGE_PREDICATES = (
    _has_identity,
    _has_description,
    _has_variables,
    _has_extraction_fields,
    _has_generated_content,
    _has_configuration,
    _has_voice,
    _has_website_data,
)


def has_meaningful_changes(draft: AgentDraft) -> bool:
    """True when closing the wizard should ask for confirmation first."""
    return any(predicate(draft) for predicate in CHANGE_PREDICATES)
