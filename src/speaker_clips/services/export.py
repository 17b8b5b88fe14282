from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Mapping

from speaker_clips.types import SpeakerId, TranscriptFormat, TranscriptionResult

EXTENSIONS: dict[str, str] = {"text": "txt", "markdown": "md", "json": "json"}


def _sanitize_path_component(value: str, fallback: str) -> str:
    clean = re.sub(r"[^a-zA-Z0-9._-]+", "_", value.strip())
    clean = clean.strip("._")
    return clean or fallback


def format_timestamp(ms: int) -> str:
    whole = max(ms, 0) // 1000
    hours, rem = divmod(whole, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def display_name(speaker: SpeakerId, names: Mapping[SpeakerId, str] | None = None) -> str:
    name = (names or {}).get(speaker, "").strip()
    return name or f"Speaker {speaker}"


def to_text(result: TranscriptionResult, names: Mapping[SpeakerId, str] | None = None) -> str:
    blocks = [
        f"{display_name(u.speaker, names)} {format_timestamp(u.start)}\n{u.text}\n"
        for u in result.utterances
    ]
    return "\n".join(blocks)


def to_markdown(
    result: TranscriptionResult,
    names: Mapping[SpeakerId, str] | None = None,
    title: str | None = None,
) -> str:
    lines: list[str] = []

    if title:
        lines.append(f"# {title}")
        lines.append("")

    lines.append("## Transcript")
    lines.append("")

    if not result.utterances:
        lines.append(result.text or "")
        return "\n".join(lines).strip() + "\n"

    for utterance in result.utterances:
        label = display_name(utterance.speaker, names)
        timestamp = format_timestamp(utterance.start)
        lines.append(f"- [{timestamp}] **{label}**: {utterance.text}")

    return "\n".join(lines).strip() + "\n"


def to_json(result: TranscriptionResult, names: Mapping[SpeakerId, str] | None = None) -> str:
    payload = {
        "id": result.id,
        "status": result.status,
        "text": result.text,
        "speakers": {
            speaker: display_name(speaker, names)
            for speaker in dict.fromkeys(u.speaker for u in result.utterances)
        },
        "utterances": [
            {
                "speaker": u.speaker,
                "start": u.start,
                "end": u.end,
                "text": u.text,
            }
            for u in result.utterances
        ],
    }
    return json.dumps(payload, indent=2, sort_keys=True)


def render(
    result: TranscriptionResult,
    fmt: TranscriptFormat = "text",
    names: Mapping[SpeakerId, str] | None = None,
    title: str | None = None,
) -> str:
    if fmt == "text":
        return to_text(result, names)
    if fmt == "markdown":
        return to_markdown(result, names, title=title)
    if fmt == "json":
        return to_json(result, names)
    raise ValueError(f"Unsupported transcript format: {fmt}")


def write_transcript(
    result: TranscriptionResult,
    output_dir: Path,
    *,
    stem: str = "transcription",
    fmt: TranscriptFormat = "text",
    names: Mapping[SpeakerId, str] | None = None,
) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{_sanitize_path_component(stem, 'transcription')}.{EXTENSIONS[fmt]}"
    path = output_dir / filename
    path.write_text(render(result, fmt, names, title=stem), encoding="utf-8")
    return path
