"""Field normalization for names that leave the wizard.

Extraction-field names and dynamic-variable names are stored as snake_case
keys. Task lists travel as a single ``##Tasks`` string and are edited as
individual lines.
"""

from __future__ import annotations

import logging
import re

from agentwizard.state import ExtractionField

logger = logging.getLogger(__name__)


_WHITESPACE_RE = re.compile(r"\s+")
_INVALID_KEY_CHARS_RE = re.compile(r"[^a-z0-9_]")
_TASKS_HEADER_RE = re.compile(r"^##\s*tasks?\s*\n?", re.IGNORECASE)
_TASKS_HEADER_LINE_RE = re.compile(r"^##\s*tasks", re.IGNORECASE)
_TASK_NUMBER_RE = re.compile(r"^\d+\.\s+")


def to_snake_key(value: str) -> str:
    """Lowercase, collapse whitespace runs to one underscore, drop the rest.

    Only characters in [a-z0-9_] survive.
    """
    value = _WHITESPACE_RE.sub("_", value.lower())
    return _INVALID_KEY_CHARS_RE.sub("", value)


def normalize_field_name(name: str) -> str:
    """Normalize an extraction-field name into its persisted key."""
    return to_snake_key(name.strip())


def normalize_extraction_fields(fields: list[ExtractionField]) -> list[dict]:
    """Prepare extraction fields for persistence.

    Args:
        fields: Fields as edited in the wizard.

    Returns:
        List of ``{"name", "description"}`` dicts with normalized names.
        Entries whose trimmed name is empty are dropped, as are entries whose
        name normalizes to nothing (e.g. punctuation only).
    """
    normalized = []
    for f in fields:
        name = f.name.strip()
        if not name:
            continue
        key = normalize_field_name(name)
        if not key:
            logger.warning("Dropping extraction field with unusable name: %r", name)
            continue
        normalized.append({"name": key, "description": f.description.strip()})
    return normalized


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

def parse_tasks_string(tasks: str) -> list[str]:
    """Split a ``##Tasks`` block into one entry per non-empty line."""
    cleaned = _TASKS_HEADER_RE.sub("", tasks).strip()
    return [line.strip() for line in cleaned.split("\n") if line.strip()]


def strip_task_number(task: str) -> str:
    return _TASK_NUMBER_RE.sub("", task)


def tasks_to_string(tasks: list[str]) -> str:
    """Serialize task entries back into a ``##Tasks`` block."""
    if not tasks:
        return ""
    body = "\n".join(tasks)
    if _TASKS_HEADER_LINE_RE.match(tasks[0].strip()):
        return body
    return f"##Tasks\n{body}"
