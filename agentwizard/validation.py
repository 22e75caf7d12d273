"""Field validation and required-field gating.

Validators are deliberately permissive: only the agent name and company name
must be non-empty while editing. The required-field check run at the
page 1 -> page 2 boundary is stricter and reports every violation at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from agentwizard.state import AgentDraft


_FIELD_RULES = {
    "agent_name": "Agent name is required",
    "company_name": "Company name is required",
}

# (field, message) pairs checked before leaving page 1, in reporting order.
REQUIRED_FIELDS = [
    ("voice_id", "Voice is required"),
    ("call_direction", "Call Type is required"),
    ("role", "Role is required"),
    ("agent_name", "Agent Name is required"),
    ("company_name", "Company Name is required"),
    ("company_description", "Company Information is required"),
]


def validate_field(field_name: str, value: str | None) -> str | None:
    """Return an error message for the candidate value, or None if valid."""
    message = _FIELD_RULES.get(field_name)
    if message is None:
        return None
    if not (value or "").strip():
        return message
    return None


def _field_value(draft: AgentDraft, field_name: str) -> str:
    value = getattr(draft, field_name)
    if value is None:
        return ""
    return getattr(value, "value", value)


def check_required_fields(draft: AgentDraft) -> list[str]:
    """Check every page-1 requirement against the draft.

    Returns:
        One message per violated requirement, in REQUIRED_FIELDS order.
        An empty list means the draft may leave page 1.
    """
    errors = []
    for field_name, message in REQUIRED_FIELDS:
        if not str(_field_value(draft, field_name)).strip():
            errors.append(message)
    return errors


@dataclass
class ValidationState:
    touched: set[str] = field(default_factory=set)
    errors: dict[str, str] = field(default_factory=dict)

    def record(self, field_name: str, value: str | None) -> str | None:
        """Recompute the error for a field after a change."""
        error = validate_field(field_name, value)
        if error:
            self.errors[field_name] = error
        else:
            self.errors.pop(field_name, None)
        return error

    def touch(self, field_name: str, value: str | None) -> str | None:
        """Mark a field as edited and revalidate it."""
        self.touched.add(field_name)
        return self.record(field_name, value)

    def force_touch(self, draft: AgentDraft) -> None:
        """Touch every required field, as done by a page-advance attempt."""
        for field_name, _ in REQUIRED_FIELDS:
            self.touch(field_name, str(_field_value(draft, field_name)))

    def is_valid(self, field_name: str) -> bool:
        """Whether the field should show its positive affordance."""
        return field_name in self.touched and field_name not in self.errors

    def clear(self) -> None:
        self.touched.clear()
        self.errors.clear()
