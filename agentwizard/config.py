"""Wizard profile configuration loader.

Loads profile-specific JSON configuration files from disk.
Each profile has a directory under profiles/<profile>/config.json holding
draft defaults, the prompt boilerplate and transcription limits.
"""

from __future__ import annotations

import json
import os
from pathlib import Path


class WizardConfigError(Exception):
    """Raised when a wizard profile cannot be loaded or is invalid."""


_REQUIRED_SECTIONS = ("defaults", "boilerplate", "transcription")

# Default base path: <project_root>/profiles/
_DEFAULT_BASE_PATH = str(
    Path(__file__).resolve().parent.parent / "profiles"
)


def get_profile_name() -> str:
    return os.environ.get("WIZARD_PROFILE", "default")


def load_wizard_config(
    profile: str,
    base_path: str | None = None,
) -> dict:
    """Load a wizard profile from a JSON file.

    Args:
        profile: Directory name under the profiles folder (e.g. "default").
        base_path: Root directory containing profile folders.
                   Defaults to <project_root>/profiles/.

    Returns:
        Parsed profile configuration dict.

    Raises:
        WizardConfigError: If the config file is missing, invalid, or
                           lacks required sections.
    """
    if base_path is None:
        base_path = _DEFAULT_BASE_PATH

    config_path = os.path.join(base_path, profile, "config.json")

    if not os.path.isfile(config_path):
        raise WizardConfigError(
            f"Wizard profile not found: {config_path}"
        )

    try:
        with open(config_path, "r") as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise WizardConfigError(
            f"Wizard profile has invalid JSON: {config_path}: {e}"
        ) from e

    for section in _REQUIRED_SECTIONS:
        if section not in config:
            raise WizardConfigError(
                f"Wizard profile missing required section '{section}': "
                f"{config_path}"
            )

    return config


def notes_block(config: dict) -> str:
    """Boilerplate notes block as prompt text."""
    notes = config["boilerplate"].get("notes") or []
    if isinstance(notes, str):
        return notes
    return "\n".join(notes)
