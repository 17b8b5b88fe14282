from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Callable

from speaker_clips.errors import TranscriptionError
from speaker_clips.excerpts import select_excerpts, unique_speakers
from speaker_clips.orchestrator import JobOrchestrator
from speaker_clips.playback import PlaybackController
from speaker_clips.services.export import display_name, render
from speaker_clips.types import (
    AudioFile,
    Job,
    SpeakerId,
    TranscriptFormat,
    TranscriptionResult,
    Utterance,
)

logger = logging.getLogger(__name__)

INVALID_FILE_MESSAGE = "Please upload a valid audio file"
PROCESSING_FAILED_MESSAGE = "Error processing the audio file. Please try again."


def load_audio_file(path: Path) -> AudioFile:
    content_type, _ = mimetypes.guess_type(path.name)
    return AudioFile(
        name=path.name,
        data=path.read_bytes(),
        content_type=content_type or "application/octet-stream",
    )


class TranscriptionSession:
    """State behind one user's view: chosen file, latest transcript, names and clips.

    Every submission takes a new generation number. A submission that resolves
    after a newer one started, or after a different file was chosen, is dropped
    without touching the session.
    """

    def __init__(
        self,
        orchestrator: JobOrchestrator,
        playback: PlaybackController,
        credentials: str = "",
        on_job_status: Callable[[Job], None] | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.playback = playback
        self.credentials = credentials
        self.on_job_status = on_job_status

        self.file: AudioFile | None = None
        self.result: TranscriptionResult | None = None
        self.speaker_names: dict[SpeakerId, str] = {}
        self.excerpts: dict[SpeakerId, list[Utterance]] = {}
        self.error: str | None = None
        self.loading = False
        self.job: Job | None = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def choose_file(self, audio: AudioFile) -> bool:
        if not audio.content_type.startswith("audio/"):
            self.error = INVALID_FILE_MESSAGE
            self.file = None
            return False

        self.playback.stop()
        self._generation += 1
        self.file = audio
        self.error = None
        self.result = None
        self.job = None
        self.loading = False
        self.speaker_names = {}
        self.excerpts = {}
        logger.info("Selected %s (%d bytes)", audio.name, len(audio.data))
        return True

    async def transcribe(self) -> TranscriptionResult | None:
        if self.file is None:
            return None

        self._generation += 1
        token = self._generation
        self.loading = True
        self.error = None

        def track(job: Job) -> None:
            if token == self._generation:
                self.job = job
                if self.on_job_status is not None:
                    self.on_job_status(job)

        try:
            result = await self.orchestrator.submit(self.file.data, self.credentials, on_status=track)
        except TranscriptionError as exc:
            if token != self._generation:
                logger.info("Ignoring failure of superseded submission: %s", exc)
                return None
            logger.error("Transcription failed: %s", exc)
            self.error = PROCESSING_FAILED_MESSAGE
            return None
        finally:
            if token == self._generation:
                self.loading = False

        if token != self._generation:
            logger.info("Ignoring result of superseded submission %s", result.id)
            return None

        self._apply(result)
        return result

    def _apply(self, result: TranscriptionResult) -> None:
        self.result = result
        self.speaker_names = {speaker: "" for speaker in unique_speakers(result.utterances)}
        self.excerpts = select_excerpts(result.utterances)

    def rename_speaker(self, speaker: SpeakerId, name: str) -> bool:
        if speaker not in self.speaker_names:
            logger.warning("Ignoring rename of unknown speaker %s", speaker)
            return False
        self.speaker_names[speaker] = name
        return True

    def display_name(self, speaker: SpeakerId) -> str:
        return display_name(speaker, self.speaker_names)

    async def play_excerpt(self, start: int, end: int) -> None:
        await self.playback.play(self.file, start, end)

    def export(self, fmt: TranscriptFormat = "text") -> str | None:
        if self.result is None:
            return None
        title = Path(self.file.name).stem if self.file is not None else None
        return render(self.result, fmt, self.speaker_names, title=title)

    def close(self) -> None:
        self.playback.stop()
