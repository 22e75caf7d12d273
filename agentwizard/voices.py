"""Voice catalog helpers.

The speaking language of an agent is derived from the name of its selected
voice, and rendered as a one-line directive in the assembled prompt.
"""

from __future__ import annotations


_HINGLISH_VOICE_NAMES = {"english indian woman"}


def find_voice(voice_id: str, voices: list[dict]) -> dict | None:
    for voice in voices:
        if voice.get("id") == voice_id:
            return voice
    return None


def language_from_voice(voice_id: str, voices: list[dict]) -> str:
    """Infer the speaking language from the voice's display name.

    Unknown voices and names without a language hint fall back to English.
    """
    voice = find_voice(voice_id, voices)
    if voice is None:
        return "English"

    name = (voice.get("name") or "").lower()
    if "hindi" in name or "hinglish" in name or name in _HINGLISH_VOICE_NAMES:
        return "Hinglish"
    if "spanish" in name:
        return "Spanish"
    if "french" in name:
        return "French"
    return "English"


def language_line(language: str) -> str:
    return f"Your speaking language is {language}."


def language_line_for_voice(voice_id: str, voices: list[dict]) -> str:
    """Directive line for the selected voice, or empty when none is selected."""
    if not voice_id or not voices:
        return ""
    return language_line(language_from_voice(voice_id, voices))
