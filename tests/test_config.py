"""Tests for wizard profile loading and scratch storage."""

import json

import pytest

from agentwizard.config import (
    WizardConfigError,
    get_profile_name,
    load_wizard_config,
    notes_block,
)
from agentwizard.scratch import MockScratchStore


class TestLoadWizardConfig:

    def test_default_profile(self, config: dict) -> None:
        assert config["defaults"]["max_call_days"] == 4
        assert config["defaults"]["outbound_call_days"] == [1, 3, 5]
        assert config["transcription"]["max_files"] == 6

    def test_missing_profile(self, tmp_path) -> None:
        with pytest.raises(WizardConfigError, match="not found"):
            load_wizard_config("nope", base_path=str(tmp_path))

    def test_invalid_json(self, tmp_path) -> None:
        (tmp_path / "broken").mkdir()
        (tmp_path / "broken" / "config.json").write_text("{not json")

        with pytest.raises(WizardConfigError, match="invalid JSON"):
            load_wizard_config("broken", base_path=str(tmp_path))

    def test_missing_section(self, tmp_path) -> None:
        (tmp_path / "partial").mkdir()
        (tmp_path / "partial" / "config.json").write_text(
            json.dumps({"defaults": {}, "boilerplate": {}})
        )

        with pytest.raises(WizardConfigError, match="'transcription'"):
            load_wizard_config("partial", base_path=str(tmp_path))

    def test_profile_name_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("WIZARD_PROFILE", "staging")

        assert get_profile_name() == "staging"


class TestNotesBlock:

    def test_joins_lines(self, config: dict) -> None:
        block = notes_block(config)

        assert block.startswith("##Notes\n- ")
        assert "\n- Never lie or make up information" in block

    def test_plain_string(self) -> None:
        assert notes_block({"boilerplate": {"notes": "##Notes"}}) == "##Notes"


class TestMockScratchStore:

    def test_save_load_clear(self) -> None:
        store = MockScratchStore()

        store.save("s1", {"url": "https://acme.test", "isLoaded": True})

        assert store.load("s1") == {"url": "https://acme.test", "isLoaded": True}
        assert store.load("s2") is None

        store.clear("s1")

        assert store.load("s1") is None

    def test_last_write_wins(self) -> None:
        store = MockScratchStore()

        store.save("s1", {"url": "a"})
        store.save("s1", {"content": "b"})

        assert store.load("s1") == {"content": "b"}
