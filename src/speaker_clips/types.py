from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

SpeakerId = str
TranscriptFormat = Literal["markdown", "json", "text"]


class JobStatus(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    SUBMITTING = "submitting"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.TIMED_OUT)


@dataclass(frozen=True, slots=True)
class Utterance:
    speaker: SpeakerId
    start: int
    end: int
    text: str

    @property
    def duration(self) -> int:
        return self.end - self.start


@dataclass(frozen=True, slots=True)
class TranscriptionResult:
    utterances: tuple[Utterance, ...]
    status: str = "completed"
    id: str | None = None
    text: str = ""


@dataclass(slots=True)
class Job:
    status: JobStatus = JobStatus.IDLE
    provider_job_id: str | None = None
    attempts: int = 0
    error: str | None = None


@dataclass(frozen=True, slots=True)
class AudioFile:
    name: str
    data: bytes
    content_type: str = "audio/mpeg"
