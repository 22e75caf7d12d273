"""AgentDraft and NavigationPosition definitions for the wizard state machine."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TypedDict


class CallDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"
    WEB = "web"


DEFAULT_LANGUAGE = (
    "Starts with English then adapts between English and Hinglish "
    "based on customer preference"
)
DEFAULT_REGION = "international"
DEFAULT_TIMEZONE = "Asia/Kolkata"
DEFAULT_CALL_DAYS = [1, 3, 5]


@dataclass(frozen=True)
class Position:
    page: int = 1
    sub_step: int = 1


START_POSITION = Position(1, 1)


class NavState(TypedDict, total=False):
    """State carried through the LangGraph navigation graph."""

    # Position
    page: int
    sub_step: int

    # Inputs to the transition guards
    call_direction: str | None
    conversation_flow: str
    missing_fields: list[str]

    # Outcome
    visited: list[str]
    outcome: str


@dataclass
class DynamicVariable:
    name: str = ""
    description: str = ""


@dataclass
class ExtractionField:
    name: str = ""
    description: str = ""


@dataclass
class QAItem:
    number: int
    question: str
    answer: str


@dataclass
class FAQItem:
    question: str
    answer: str


@dataclass
class CustomFunction:
    id: str
    name: str = "book_appointment_cal"
    description: str = "When users ask to book an appointment, book it on the calendar."
    api_key: str = ""
    event_type_id: str = ""


@dataclass
class ScheduleConfig:
    enabled: bool = True
    call_days: list[int] = field(default_factory=lambda: list(DEFAULT_CALL_DAYS))


@dataclass
class WebsiteData:
    url: str = ""
    content: str = ""
    faqs: list[dict] = field(default_factory=list)
    business_context: str = ""
    tasks: str = ""
    is_loaded: bool = False

    def to_scratch(self) -> dict:
        """Serialize to the session scratch layout."""
        return {
            "url": self.url,
            "content": self.content,
            "faqs": list(self.faqs),
            "business_context": self.business_context,
            "tasks": self.tasks,
            "isLoaded": self.is_loaded,
        }

    @classmethod
    def from_scratch(cls, data: dict) -> WebsiteData:
        return cls(
            url=data.get("url") or "",
            content=data.get("content") or "",
            faqs=list(data.get("faqs") or []),
            business_context=data.get("business_context") or "",
            tasks=data.get("tasks") or "",
            is_loaded=bool(data.get("isLoaded", False)),
        )


@dataclass
class AgentDraft:
    # Identity
    agent_name: str = ""
    company_name: str = ""
    role: str = ""
    industry: str = ""
    language: str = DEFAULT_LANGUAGE

    # Voice and call configuration
    voice_id: str = ""
    call_direction: CallDirection | None = None
    welcome_message: str = ""

    # Company
    company_description: str = ""
    company_website: str = ""

    # Conversation input
    prompt_description: str = ""
    call_transcripts: list[str] = field(default_factory=list)

    # Generated / edited prompt content
    generated_prompt: str = ""
    conversation_flow: str = ""
    dynamic_variables: list[DynamicVariable] = field(default_factory=list)
    additional_qa: list[QAItem] = field(default_factory=list)
    response_rules: str = ""
    edge_cases: str = ""
    operating_rules: str = ""
    compliance: str = ""
    faqs: list[FAQItem] = field(default_factory=list)
    tasks: list[str] = field(default_factory=list)
    extraction_fields: list[ExtractionField] = field(
        default_factory=lambda: [ExtractionField()]
    )

    # Business configuration
    region: str = DEFAULT_REGION
    inbound_phone: str = ""
    outbound_phone: str = ""
    company_id: str = ""
    timezone: str = DEFAULT_TIMEZONE
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    custom_functions: list[CustomFunction] = field(default_factory=list)

    # Website-derived draft
    website: WebsiteData = field(default_factory=WebsiteData)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["call_direction"] = (
            self.call_direction.value if self.call_direction else None
        )
        return data


# Fields that can be set directly by name from the outer surface.
TEXT_FIELDS = {
    "agent_name",
    "company_name",
    "role",
    "industry",
    "language",
    "voice_id",
    "welcome_message",
    "company_description",
    "company_website",
    "prompt_description",
    "conversation_flow",
    "response_rules",
    "edge_cases",
    "operating_rules",
    "compliance",
    "region",
    "inbound_phone",
    "outbound_phone",
    "company_id",
    "timezone",
}


def parse_call_direction(value: str | CallDirection | None) -> CallDirection | None:
    """Coerce a raw call direction value, treating blanks as unset."""
    if value is None or isinstance(value, CallDirection):
        return value
    value = value.strip().lower()
    if not value:
        return None
    return CallDirection(value)
