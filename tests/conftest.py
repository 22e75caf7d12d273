"""Shared fixtures for the wizard tests."""

from __future__ import annotations

import pytest

from agentwizard.clients import MockWizardAPI
from agentwizard.config import load_wizard_config
from agentwizard.scratch import MockScratchStore
from agentwizard.state import AgentDraft, CallDirection, ExtractionField


VOICES = [
    {"id": "v-en", "name": "Emma", "gender": "female", "language": "en"},
    {"id": "v-hi", "name": "English Indian Woman", "gender": "female", "language": "hi"},
    {"id": "v-es", "name": "Spanish Male", "gender": "male", "language": "es"},
]


@pytest.fixture
def config() -> dict:
    return load_wizard_config("default")


@pytest.fixture
def api() -> MockWizardAPI:
    return MockWizardAPI(responses={"list_voices": VOICES})


@pytest.fixture
def scratch() -> MockScratchStore:
    return MockScratchStore()


@pytest.fixture
def complete_draft() -> AgentDraft:
    """A draft that satisfies every page-1 requirement."""
    return AgentDraft(
        agent_name="Sarah",
        company_name="Acme",
        role="Lead Qualification",
        company_description="We sell widgets",
        voice_id="v-en",
        call_direction=CallDirection.INBOUND,
        extraction_fields=[ExtractionField("Email Address", "")],
    )
