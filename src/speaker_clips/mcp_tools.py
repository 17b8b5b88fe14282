from __future__ import annotations

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from speaker_clips.session import TranscriptionSession, load_audio_file
from speaker_clips.types import Utterance


def _utterance_dict(utterance: Utterance) -> dict[str, Any]:
    return {
        "speaker": utterance.speaker,
        "start": utterance.start,
        "end": utterance.end,
        "text": utterance.text,
    }


class ToolRegistry:
    def __init__(self, session: TranscriptionSession) -> None:
        self.session = session

    def register(self, mcp: FastMCP) -> None:
        session = self.session

        @mcp.tool
        async def transcribe(path: str) -> dict[str, Any]:
            audio_path = Path(path).expanduser()
            if not audio_path.is_file():
                return {"error": "file_not_found", "path": path}

            if not session.choose_file(load_audio_file(audio_path)):
                return {"error": "invalid_file", "message": session.error}

            result = await session.transcribe()
            job = session.job
            if result is None:
                return {
                    "status": job.status.value if job is not None else "failed",
                    "error": session.error,
                    "detail": job.error if job is not None else None,
                }
            return {
                "status": job.status.value if job is not None else result.status,
                "transcript_id": result.id,
                "utterance_count": len(result.utterances),
                "speakers": list(session.speaker_names),
            }

        @mcp.tool
        def speakers() -> dict[str, Any]:
            return {
                "speakers": [
                    {
                        "speaker": speaker,
                        "name": name,
                        "display_name": session.display_name(speaker),
                        "excerpts": [
                            _utterance_dict(u) for u in session.excerpts.get(speaker, [])
                        ],
                    }
                    for speaker, name in session.speaker_names.items()
                ]
            }

        @mcp.tool
        def excerpts() -> dict[str, Any]:
            return {
                "excerpts": {
                    speaker: [_utterance_dict(u) for u in items]
                    for speaker, items in session.excerpts.items()
                }
            }

        @mcp.tool
        def rename_speaker(speaker: str, name: str) -> dict[str, Any]:
            if not session.rename_speaker(speaker, name):
                return {"error": "speaker_not_found", "speaker": speaker}
            return {"speaker": speaker, "display_name": session.display_name(speaker)}

        @mcp.tool
        def read_transcript(format: str = "text") -> dict[str, Any]:
            if format not in ("text", "markdown", "json"):
                return {"error": "invalid_format", "format": format}
            content = session.export(format)  # type: ignore[arg-type]
            if content is None:
                return {"error": "no_transcript"}
            return {"format": format, "content": content}
