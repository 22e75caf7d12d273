"""Audio transcription helpers.

File checks run before any upload; formatting turns successful
transcription results into description text.
"""

from __future__ import annotations

from dataclasses import dataclass


ACCEPTED_FORMATS = (
    "mp3", "wav", "m4a", "ogg", "webm", "aac", "flac",
    "mp4", "mpeg", "opus", "wma", "amr", "3gp",
)
MAX_FILES = 6
MAX_FILE_SIZE = 100 * 1024 * 1024

TRANSCRIPTION_DIVIDER = "--- Audio Transcription ---"


class InvalidAudioFiles(ValueError):
    """Raised when a selection of audio files fails the pre-upload checks."""


@dataclass
class AudioFile:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        if "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[1].lower()


def validate_audio_files(
    files: list[AudioFile],
    *,
    accepted_formats=ACCEPTED_FORMATS,
    max_files: int = MAX_FILES,
    max_file_size: int = MAX_FILE_SIZE,
) -> None:
    """Check file count, size and extension.

    Raises:
        InvalidAudioFiles: On the first violation found.
    """
    if not files:
        raise InvalidAudioFiles("Please select at least one audio file")
    if len(files) > max_files:
        raise InvalidAudioFiles(f"Maximum {max_files} files allowed")

    for f in files:
        if f.size > max_file_size:
            limit_mb = max_file_size // (1024 * 1024)
            raise InvalidAudioFiles(f'File "{f.filename}" exceeds {limit_mb}MB limit')
        if f.extension not in accepted_formats:
            raise InvalidAudioFiles(
                f'File "{f.filename}" has unsupported format. '
                f"Accepted: {', '.join(accepted_formats)}"
            )


def successful(results: list[dict]) -> list[dict]:
    return [r for r in results if r.get("status") == "success"]


def failed(results: list[dict]) -> list[dict]:
    return [r for r in results if r.get("status") == "failed"]


def format_transcripts_for_prompt(results: list[dict]) -> str:
    """Render successful transcripts, with speaker segments when present."""
    parts = []
    for result in successful(results):
        transcript = result.get("transcript")
        if not transcript:
            continue
        text = transcript.get("text") or ""
        segments = transcript.get("segments") or []
        if segments:
            text += "\n\nConversation Flow:\n"
            text += "".join(
                f"{s.get('speaker') or 'Speaker'}: {s.get('text') or ''}\n"
                for s in segments
            )
        parts.append(text)
    return "\n\n---\n\n".join(parts)


def append_transcripts(description: str, formatted: str) -> str:
    """Append transcript text to an existing description, never replacing it."""
    if not description:
        return formatted
    return f"{description}\n\n{TRANSCRIPTION_DIVIDER}\n\n{formatted}"
