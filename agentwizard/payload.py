"""Conversion between AgentDraft and persisted agent records.

build_agent_payload() produces the create/update request body.
draft_from_agent() pre-populates a draft from an existing record.
"""

from __future__ import annotations

import logging
import uuid

from agentwizard.normalize import normalize_extraction_fields
from agentwizard.state import (
    DEFAULT_REGION,
    DEFAULT_TIMEZONE,
    AgentDraft,
    CallDirection,
    CustomFunction,
    DynamicVariable,
    ExtractionField,
    FAQItem,
    QAItem,
    ScheduleConfig,
    WebsiteData,
)

logger = logging.getLogger(__name__)


BUSINESS_HOURS_START = "09:00"
BUSINESS_HOURS_END = "18:00"
SALES_CYCLE_STAGES = [
    "initial_contact",
    "qualification",
    "proposal",
    "negotiation",
    "closing",
]
WEB_REGION = "worldwide"
# Region where the outbound number is assigned by the platform.
NO_OUTBOUND_PHONE_REGION = "indian"


def default_welcome_message(agent_name: str, company_name: str) -> str:
    return f"Hi, I'm {agent_name} calling you from {company_name}"


# ---------------------------------------------------------------------------
# Draft -> payload
# ---------------------------------------------------------------------------

def _basic_info(draft: AgentDraft) -> dict:
    return {
        "agent_name": draft.agent_name,
        "company_name": draft.company_name,
        "intended_role": draft.role,
        "target_industry": draft.industry,
        "primary_service": draft.company_description,
    }


def _custom_functions(draft: AgentDraft) -> list[dict]:
    return [
        {
            "name": func.name,
            "description": func.description,
            "api_key": func.api_key,
            "event_type_id": func.event_type_id,
        }
        for func in draft.custom_functions
    ]


def build_agent_payload(
    draft: AgentDraft,
    *,
    prompt: str,
    parsed_sections: dict[str, str],
    editing: bool = False,
    privileged: bool = False,
) -> dict:
    """Build the create/update request body for a draft.

    Args:
        draft: The completed draft.
        prompt: Full assembled prompt (compliance sections included).
        parsed_sections: Section key -> body map for the same prompt.
        editing: True when updating an existing agent.
        privileged: True for callers allowed to assign a company.

    Returns:
        Payload dict. Keys whose value is absent are omitted.
    """
    web = draft.call_direction == CallDirection.WEB

    payload = {
        "name": draft.agent_name,
        "voice_id": draft.voice_id,
        "prompt": prompt,
        "parsed_sections": parsed_sections,
        "welcome_message": draft.welcome_message
        or default_welcome_message(draft.agent_name, draft.company_name),
        "configuration_data": {
            "basic_info": _basic_info(draft),
            "company_website": draft.company_website,
            "business_hours_start": BUSINESS_HOURS_START,
            "business_hours_end": BUSINESS_HOURS_END,
            "timezone": draft.timezone or DEFAULT_TIMEZONE,
            "extraction_fields": normalize_extraction_fields(draft.extraction_fields),
            "custom_functions": _custom_functions(draft),
        },
        "region": WEB_REGION if web else draft.region,
        "inbound_phone": draft.inbound_phone or None,
        "outbound_phone": (
            None
            if draft.region == NO_OUTBOUND_PHONE_REGION
            else (draft.outbound_phone or None)
        ),
        "company_id": (draft.company_id or None) if privileged else None,
        "enable_sales_cycle": draft.schedule.enabled,
        "default_call_days": list(draft.schedule.call_days),
        "sales_cycle_config": (
            {"enable_ai_insights": True, "stages": list(SALES_CYCLE_STAGES)}
            if draft.schedule.enabled
            else None
        ),
        "website_data": (
            draft.website.to_scratch()
            if not editing and draft.website.is_loaded
            else None
        ),
    }
    return {key: value for key, value in payload.items() if value is not None}


# ---------------------------------------------------------------------------
# Record -> draft
# ---------------------------------------------------------------------------

def infer_call_direction(agent: dict) -> CallDirection:
    """Infer the call direction of a persisted agent."""
    if agent.get("region") == WEB_REGION:
        return CallDirection.WEB
    if agent.get("inbound_phone"):
        return CallDirection.INBOUND
    return CallDirection.OUTBOUND


def _extraction_fields(raw: list) -> list[ExtractionField]:
    """Accept both ``{name, description}`` objects and legacy name strings."""
    if not raw:
        return [ExtractionField()]
    if isinstance(raw[0], str):
        return [ExtractionField(name=name) for name in raw]
    if isinstance(raw[0], dict):
        return [
            ExtractionField(
                name=f.get("name") or "",
                description=f.get("description") or "",
            )
            for f in raw
        ]
    logger.warning("Ignoring extraction fields in unknown format: %r", raw[:1])
    return [ExtractionField()]


def _custom_function(func: dict) -> CustomFunction:
    return CustomFunction(
        id=func.get("id") or f"func_{uuid.uuid4().hex}",
        name=func.get("name") or "",
        description=func.get("description") or "",
        api_key=func.get("api_key") or "",
        event_type_id=func.get("event_type_id") or "",
    )


def _qa_items(raw) -> list[QAItem]:
    if not isinstance(raw, list):
        return []
    return [
        QAItem(
            number=item.get("number", index),
            question=item.get("question") or "",
            answer=item.get("answer") or "",
        )
        for index, item in enumerate(raw, start=1)
    ]


def _dynamic_variables(raw) -> list[DynamicVariable]:
    if not isinstance(raw, list):
        return []
    return [
        DynamicVariable(name=v.get("name") or "", description=v.get("description") or "")
        for v in raw
    ]


def apply_parsed_sections(draft: AgentDraft, sections: dict) -> None:
    """Copy generated section values into the draft.

    Only keys present in ``sections`` are applied.
    """
    if "conversationFlow" in sections:
        draft.conversation_flow = sections.get("conversationFlow") or ""
    if "additionalQA" in sections:
        draft.additional_qa = _qa_items(sections["additionalQA"])
    if "dynamicVariables" in sections:
        draft.dynamic_variables = _dynamic_variables(sections["dynamicVariables"])
    company_info = sections.get("companyInfo")
    if isinstance(company_info, dict) and company_info.get("content"):
        draft.company_description = company_info["content"]
    for key, attr in (
        ("responseRules", "response_rules"),
        ("edgeCases", "edge_cases"),
        ("operatingRules", "operating_rules"),
        ("compliance", "compliance"),
    ):
        if isinstance(sections.get(key), str):
            setattr(draft, attr, sections[key])


def draft_from_agent(agent: dict) -> AgentDraft:
    """Pre-populate a draft from an existing agent record."""
    config = agent.get("configuration_data") or {}
    basic = config.get("basic_info") or {}

    draft = AgentDraft(
        agent_name=agent.get("name") or "",
        voice_id=agent.get("voice_id") or "",
        welcome_message=agent.get("welcome_message") or "",
        region=agent.get("region") or DEFAULT_REGION,
        inbound_phone=agent.get("inbound_phone") or "",
        outbound_phone=agent.get("outbound_phone") or "",
        company_id=agent.get("company_id") or "",
        call_direction=infer_call_direction(agent),
        company_name=basic.get("company_name") or "",
        role=basic.get("intended_role") or "",
        industry=basic.get("target_industry") or "",
        company_description=basic.get("primary_service") or "",
        company_website=config.get("company_website") or "",
        timezone=config.get("timezone") or DEFAULT_TIMEZONE,
        generated_prompt=agent.get("prompt") or "",
    )

    draft.extraction_fields = _extraction_fields(config.get("extraction_fields") or [])
    draft.custom_functions = [
        _custom_function(f) for f in config.get("custom_functions") or []
    ]

    schedule = ScheduleConfig()
    if agent.get("enable_sales_cycle") is not None:
        schedule.enabled = bool(agent["enable_sales_cycle"])
    if agent.get("default_call_days"):
        schedule.call_days = list(agent["default_call_days"])
    draft.schedule = schedule

    sections = agent.get("parsed_sections")
    if isinstance(sections, dict):
        apply_parsed_sections(draft, sections)

    website = agent.get("website_data")
    if website:
        draft.website = WebsiteData.from_scratch({**website, "isLoaded": True})
        draft.faqs = [
            FAQItem(question=f.get("question") or "", answer=f.get("answer") or "")
            for f in website.get("faqs") or []
            if isinstance(f, dict)
        ]

    return draft
