"""Reverse transforms: hand-edited text back into draft fields.

Both transforms are best effort. Lines that are not recognized are ignored,
and nothing here is guaranteed to survive a round trip except the
conversation flow of the review text.
"""

from __future__ import annotations

import re

from agentwizard.assembler import format_additional_qa
from agentwizard.state import AgentDraft


FLOW_MARKER = "## CONVERSATION FLOW\n\n"
QA_MARKER = "## ADDITIONAL Q&A RESPONSES\n\n"

_FLOW_RE = re.compile(r"## CONVERSATION FLOW\n\n([\s\S]*)")

_PREFIXES = (
    ("Agent Name:", "agent_name"),
    ("Company:", "company_name"),
    ("Role:", "role"),
)
_COMPANY_INFO_HEADER = "### COMPANY INFORMATION"


# ---------------------------------------------------------------------------
# Review text (Q&A + conversation flow)
# ---------------------------------------------------------------------------

def compose_review_text(draft: AgentDraft) -> str:
    """Combined Q&A and conversation-flow text shown on the review page."""
    text = ""
    if draft.additional_qa:
        text += f"{QA_MARKER}{format_additional_qa(draft.additional_qa)}\n\n"
    if draft.conversation_flow:
        text += f"{FLOW_MARKER}{draft.conversation_flow}"
    return text


def extract_conversation_flow(text: str) -> str:
    """Pull the conversation flow out of edited review text.

    Everything after the flow marker is taken, trimmed. When the marker is
    missing the whole text is the flow, so user edits are never dropped.
    """
    match = _FLOW_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


def apply_review_text(draft: AgentDraft, text: str) -> None:
    draft.conversation_flow = extract_conversation_flow(text)


# ---------------------------------------------------------------------------
# Agent prompt text (identity + company information)
# ---------------------------------------------------------------------------

def parse_agent_prompt_text(text: str) -> dict[str, str]:
    """Scan agent prompt text for identity lines and company information.

    Returns:
        Mapping of draft field name to recovered value. Only fields that were
        found in the text are present.
    """
    values: dict[str, str] = {}
    company_lines: list[str] = []
    in_company = False
    found_company = False

    for raw in text.split("\n"):
        line = raw.strip()

        if line.startswith(_COMPANY_INFO_HEADER):
            in_company = True
            found_company = True
            continue
        if in_company:
            if line.startswith("#"):
                in_company = False
            elif line:
                company_lines.append(line)
                continue
            else:
                continue

        for prefix, field_name in _PREFIXES:
            if line.startswith(prefix):
                values[field_name] = line[len(prefix):].strip()
                break

    if found_company:
        values["company_description"] = "\n".join(company_lines)
    return values


def apply_agent_prompt_text(draft: AgentDraft, text: str) -> list[str]:
    """Write recognized agent prompt values back into the draft.

    Returns:
        Names of the fields that were updated.
    """
    values = parse_agent_prompt_text(text)
    for field_name, value in values.items():
        setattr(draft, field_name, value)
    return list(values)
