"""Tests for audio file checks and transcript formatting."""

import pytest

from agentwizard.transcription import (
    AudioFile,
    InvalidAudioFiles,
    append_transcripts,
    format_transcripts_for_prompt,
    validate_audio_files,
)


def _audio(name: str, size: int = 10) -> AudioFile:
    return AudioFile(filename=name, content=b"\0" * size)


class TestValidateAudioFiles:

    def test_accepts_known_formats(self) -> None:
        validate_audio_files([_audio("call.MP3"), _audio("clip.3gp")])

    def test_requires_a_file(self) -> None:
        with pytest.raises(InvalidAudioFiles, match="at least one"):
            validate_audio_files([])

    def test_limits_file_count(self) -> None:
        with pytest.raises(InvalidAudioFiles, match="Maximum 6 files"):
            validate_audio_files([_audio(f"{i}.wav") for i in range(7)])

    def test_limits_file_size(self) -> None:
        with pytest.raises(InvalidAudioFiles, match="exceeds 1MB"):
            validate_audio_files([_audio("big.wav", 2 * 1024 * 1024)], max_file_size=1024 * 1024)

    @pytest.mark.parametrize("name", ["notes.txt", "noextension"])
    def test_rejects_unknown_formats(self, name: str) -> None:
        with pytest.raises(InvalidAudioFiles, match="unsupported format"):
            validate_audio_files([_audio(name)])


class TestFormatting:

    def test_successes_only_with_speaker_segments(self) -> None:
        results = [
            {
                "filename": "a.mp3",
                "status": "success",
                "transcript": {
                    "text": "Hello there.",
                    "segments": [
                        {"speaker": "Agent", "text": "Hello"},
                        {"speaker": "Caller", "text": "there."},
                    ],
                },
            },
            {"filename": "b.mp3", "status": "failed", "error": "corrupt"},
            {"filename": "c.mp3", "status": "success", "transcript": {"text": "Bye.", "segments": []}},
        ]

        assert format_transcripts_for_prompt(results) == (
            "Hello there.\n\nConversation Flow:\nAgent: Hello\nCaller: there.\n"
            "\n\n---\n\n"
            "Bye."
        )

    def test_append_keeps_existing_description(self) -> None:
        assert append_transcripts("We sell widgets", "Hello.") == (
            "We sell widgets\n\n--- Audio Transcription ---\n\nHello."
        )

    def test_append_to_empty_description(self) -> None:
        assert append_transcripts("", "Hello.") == "Hello."

    def test_segments_with_missing_keys(self) -> None:
        results = [
            {
                "filename": "a.mp3",
                "status": "success",
                "transcript": {"text": "Hi.", "segments": [{"text": "hello"}, {"speaker": "Agent"}]},
            },
        ]

        assert format_transcripts_for_prompt(results) == (
            "Hi.\n\nConversation Flow:\nSpeaker: hello\nAgent: \n"
        )
