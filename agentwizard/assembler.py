"""Prompt assembly: AgentDraft -> ordered sections -> prompt text.

One assembler serves both the saved prompt and the live preview. The preview
(display) variant differs only in leaving out compliance-only sections, which
is controlled by ``include_compliance``.

Section order is fixed:

    identity, dynamic variables, company information, additional Q&A,
    conversation flow, response rules, edge cases, operating rules,
    compliance, notes, FAQs, extraction fields

A section is emitted only when its source is non-empty, and sections are
separated by exactly one blank line.
"""

from __future__ import annotations

from dataclasses import dataclass

from agentwizard.normalize import normalize_field_name
from agentwizard.state import AgentDraft, FAQItem, QAItem


@dataclass(frozen=True)
class Section:
    key: str
    title: str | None
    body: str

    def render(self) -> str:
        if self.title is None:
            return self.body
        return f"### {self.title}\n{self.body}"


SECTION_ORDER = (
    "identity",
    "dynamicVariables",
    "companyInfo",
    "additionalQA",
    "conversationFlow",
    "responseRules",
    "edgeCases",
    "operatingRules",
    "compliance",
    "notes",
    "faqs",
    "extractionFields",
)

# Sections left out of the display variant.
COMPLIANCE_SECTIONS = frozenset({"compliance"})

FAQ_INTRO = "Here are some frequently asked questions you should be prepared to answer:"
EXTRACTION_INTRO = (
    "During the conversation, make sure to naturally collect and save the "
    "following information:"
)
EXTRACTION_CLOSING = (
    "Make sure to ask for this information naturally during the conversation "
    "when appropriate, and save it for future reference."
)


# ---------------------------------------------------------------------------
# Block formatting
# ---------------------------------------------------------------------------

def _strip_quotes(text: str) -> str:
    """Remove one leading and one trailing double quote."""
    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]
    return text


def format_additional_qa(items: list[QAItem]) -> str:
    return "\n\n".join(
        f"{qa.number}. **Q: {qa.question}**\n   A: {_strip_quotes(qa.answer)}"
        for qa in items
    )


def format_faqs(faqs: list[FAQItem]) -> str:
    lines = [FAQ_INTRO]
    for index, faq in enumerate(faqs, start=1):
        lines.append(f"{index}. Q: {faq.question}\n   A: {faq.answer}")
    return "\n".join(lines)


def _identity_lines(draft: AgentDraft, language_line: str) -> list[str]:
    lines = []
    if draft.agent_name:
        lines.append(f"Agent Name: {draft.agent_name}")
    if draft.company_name:
        lines.append(f"Company: {draft.company_name}")
    if draft.role:
        lines.append(f"Role: {draft.role}")
    if draft.language:
        lines.append(f"Language: {draft.language}")
    if language_line:
        lines.append(language_line)
    return lines


def _variable_lines(draft: AgentDraft) -> list[str]:
    return [
        f"- {{{v.name}}}: {v.description}"
        for v in draft.dynamic_variables
        if v.name
    ]


def _extraction_block(draft: AgentDraft) -> str:
    entries = []
    fields = [f for f in draft.extraction_fields if f.name.strip()]
    for index, f in enumerate(fields, start=1):
        name = f.name.strip()
        entry = f"{index}. {name} (stored as: {normalize_field_name(name)})"
        if f.description.strip():
            entry += f"\n   Description: {f.description.strip()}"
        entries.append(entry)
    if not entries:
        return ""
    return "\n".join([EXTRACTION_INTRO, *entries, "", EXTRACTION_CLOSING])


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_sections(
    draft: AgentDraft,
    *,
    language_line: str = "",
    notes: str = "",
    include_compliance: bool = True,
) -> list[Section]:
    """Build the ordered list of present sections for a draft.

    Args:
        draft: The agent being configured.
        language_line: Directive derived from the selected voice's language.
        notes: Boilerplate notes block, emitted only alongside company
               information.
        include_compliance: False for the display variant.

    Returns:
        Sections in canonical order; absent sections are omitted.
    """
    candidates: dict[str, tuple[str | None, str]] = {}

    identity = _identity_lines(draft, language_line)
    if identity:
        candidates["identity"] = ("AGENT IDENTITY", "\n".join(identity))

    variables = _variable_lines(draft)
    if variables:
        candidates["dynamicVariables"] = (
            "DYNAMIC VARIABLES (System Populated)", "\n".join(variables),
        )

    if draft.company_description.strip():
        candidates["companyInfo"] = (
            "COMPANY INFORMATION", draft.company_description.strip(),
        )

    if draft.additional_qa:
        candidates["additionalQA"] = (
            "ADDITIONAL Q&A RESPONSES", format_additional_qa(draft.additional_qa),
        )

    for key, title, text in (
        ("conversationFlow", "CONVERSATION FLOW", draft.conversation_flow),
        ("responseRules", "RESPONSE RULES", draft.response_rules),
        ("edgeCases", "EDGE CASE RESPONSES", draft.edge_cases),
        ("operatingRules", "OPERATING RULES", draft.operating_rules),
        ("compliance", "COMPLIANCE REQUIREMENTS", draft.compliance),
    ):
        if text.strip():
            candidates[key] = (title, text.strip())

    if notes.strip() and "companyInfo" in candidates:
        candidates["notes"] = (None, notes.strip())

    if draft.faqs:
        candidates["faqs"] = ("FREQUENTLY ASKED QUESTIONS", format_faqs(draft.faqs))

    extraction = _extraction_block(draft)
    if extraction:
        candidates["extractionFields"] = ("INFORMATION TO EXTRACT", extraction)

    sections = []
    for key in SECTION_ORDER:
        if key not in candidates:
            continue
        if not include_compliance and key in COMPLIANCE_SECTIONS:
            continue
        title, body = candidates[key]
        sections.append(Section(key=key, title=title, body=body))
    return sections


def render_sections(sections: list[Section]) -> str:
    return "\n\n".join(s.render() for s in sections)


def assemble_prompt(
    draft: AgentDraft,
    *,
    language_line: str = "",
    notes: str = "",
    include_compliance: bool = True,
) -> str:
    """Assemble the prompt text for a draft.

    The full variant (``include_compliance=True``) is what gets persisted;
    the display variant feeds the editable preview.
    """
    return render_sections(
        build_sections(
            draft,
            language_line=language_line,
            notes=notes,
            include_compliance=include_compliance,
        )
    )


def sections_map(sections: list[Section]) -> dict[str, str]:
    """Parsed-section map (key -> body) in canonical order."""
    return {s.key: s.body for s in sections}
