"""Command-line entrypoints for speaker-clips."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from speaker_clips.config import load_settings
from speaker_clips.main import LOG_FORMAT
from speaker_clips.orchestrator import JobOrchestrator
from speaker_clips.playback import PlaybackController, TemporaryFileHandles
from speaker_clips.services.assemblyai import AssemblyAIClient
from speaker_clips.services.export import format_timestamp, write_transcript
from speaker_clips.session import TranscriptionSession, load_audio_file
from speaker_clips.types import Job

app = typer.Typer(help="Transcribe conversations and preview each speaker.")


@app.callback()
def main() -> None:
    """speaker-clips command line."""


def _status_printer(job: Job) -> None:
    detail = f" ({job.error})" if job.error else ""
    typer.echo(f"[{job.status.value}]{detail}")


@app.command()
def transcribe(
    audio_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Audio file to transcribe."),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Directory for the transcript (defaults to DATA_DIR).",
    ),
    fmt: str = typer.Option("text", "--format", "-f", help="text, markdown or json."),
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        help="AssemblyAI API key (defaults to ASSEMBLYAI_API_KEY).",
    ),
) -> None:
    """Upload a recording, wait for the diarized transcript and write it to disk."""
    if fmt not in ("text", "markdown", "json"):
        raise typer.BadParameter(f"Unsupported format: {fmt}", param_hint="--format")

    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    client = AssemblyAIClient(
        base_url=settings.assemblyai_base_url,
        timeout_seconds=settings.http_timeout_seconds,
    )
    orchestrator = JobOrchestrator(
        client,
        poll_interval_seconds=settings.poll_interval_seconds,
        max_attempts=settings.max_poll_attempts,
    )
    session = TranscriptionSession(
        orchestrator,
        PlaybackController(None, TemporaryFileHandles()),
        credentials=api_key or settings.assemblyai_api_key,
        on_job_status=_status_printer,
    )

    if not session.choose_file(load_audio_file(audio_path)):
        typer.echo(session.error, err=True)
        raise typer.Exit(code=1)

    result = asyncio.run(session.transcribe())
    if result is None:
        typer.echo(session.error or "Transcription failed", err=True)
        raise typer.Exit(code=1)

    for speaker, excerpts in session.excerpts.items():
        typer.echo(f"{session.display_name(speaker)}:")
        for utterance in excerpts:
            typer.echo(f"  [{format_timestamp(utterance.start)}] {utterance.text}")

    target = write_transcript(
        result,
        output_dir or settings.data_dir,
        stem=audio_path.stem,
        fmt=fmt,  # type: ignore[arg-type]
        names=session.speaker_names,
    )
    typer.echo(f"Transcript written to {target}")


if __name__ == "__main__":
    app()
