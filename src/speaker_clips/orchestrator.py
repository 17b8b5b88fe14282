from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol

from speaker_clips.config import DEFAULT_MAX_POLL_ATTEMPTS, DEFAULT_POLL_INTERVAL_SECONDS
from speaker_clips.errors import (
    AuthError,
    RemoteProcessingError,
    TranscriptionError,
    TranscriptionTimeoutError,
)
from speaker_clips.types import Job, JobStatus, TranscriptionResult, Utterance

logger = logging.getLogger(__name__)

StatusCallback = Callable[[Job], None]
Sleep = Callable[[float], Awaitable[Any]]


class TranscriptionClient(Protocol):
    async def upload(self, audio: bytes, credentials: str) -> str: ...

    async def request_transcription(
        self,
        upload_url: str,
        credentials: str,
        speaker_labels: bool = True,
    ) -> str: ...

    async def get_status(self, job_id: str, credentials: str) -> dict[str, Any]: ...


class JobOrchestrator:
    """Runs one upload -> submit -> poll cycle per ``submit`` call.

    The orchestrator keeps no state between calls; deciding which of several
    overlapping submissions is current belongs to the caller.
    """

    def __init__(
        self,
        client: TranscriptionClient,
        *,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.poll_interval_seconds = poll_interval_seconds
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def submit(
        self,
        audio: bytes,
        credentials: str,
        on_status: StatusCallback | None = None,
    ) -> TranscriptionResult:
        job = Job()

        def advance(status: JobStatus, error: str | None = None) -> None:
            job.status = status
            job.error = error
            if on_status is not None:
                on_status(job)

        if not credentials or not credentials.strip():
            advance(JobStatus.FAILED, "AssemblyAI API key is required")
            raise AuthError("AssemblyAI API key is required")

        try:
            advance(JobStatus.UPLOADING)
            upload_url = await self.client.upload(audio, credentials)

            advance(JobStatus.SUBMITTING)
            job.provider_job_id = await self.client.request_transcription(
                upload_url, credentials, speaker_labels=True
            )
            logger.info("Submitted transcript %s", job.provider_job_id)

            advance(JobStatus.POLLING)
            payload = await self._poll(job, credentials)
        except TranscriptionTimeoutError as exc:
            advance(JobStatus.TIMED_OUT, str(exc))
            raise
        except TranscriptionError as exc:
            advance(JobStatus.FAILED, str(exc))
            raise

        result = normalize(payload)
        advance(JobStatus.COMPLETED)
        logger.info(
            "Transcript %s completed with %d utterances",
            job.provider_job_id,
            len(result.utterances),
        )
        return result

    async def _poll(self, job: Job, credentials: str) -> dict[str, Any]:
        job_id = str(job.provider_job_id)
        while job.attempts < self.max_attempts:
            payload = await self.client.get_status(job_id, credentials)
            job.attempts += 1

            status = str(payload.get("status") or "").lower()
            if status == "completed":
                return payload
            if status == "error":
                message = payload.get("error") or "AssemblyAI reported error status"
                raise RemoteProcessingError(f"Transcription failed: {message}")

            logger.debug("Transcript %s is %s (attempt %d)", job_id, status or "unknown", job.attempts)
            if job.attempts < self.max_attempts:
                await self._sleep(self.poll_interval_seconds)

        raise TranscriptionTimeoutError(
            f"Transcription timed out after {self.max_attempts} status checks"
        )


def normalize(payload: dict[str, Any]) -> TranscriptionResult:
    """Convert a completed provider payload, keeping utterance order untouched."""
    raw_utterances = payload.get("utterances")
    if not isinstance(raw_utterances, list):
        raw_utterances = []

    utterances = tuple(
        Utterance(
            speaker=str(item.get("speaker") or ""),
            start=_as_ms(item.get("start")),
            end=_as_ms(item.get("end")),
            text=str(item.get("text") or ""),
        )
        for item in raw_utterances
        if isinstance(item, dict)
    )
    transcript_id = payload.get("id")
    return TranscriptionResult(
        utterances=utterances,
        status=str(payload.get("status") or "completed"),
        id=str(transcript_id) if transcript_id is not None else None,
        text=str(payload.get("text") or "").strip(),
    )


def _as_ms(value: object) -> int:
    try:
        return int(float(str(value))) if value is not None else 0
    except (TypeError, ValueError):
        return 0
