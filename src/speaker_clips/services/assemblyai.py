from __future__ import annotations

import logging
from typing import Any

import httpx

from speaker_clips.config import DEFAULT_BASE_URL
from speaker_clips.errors import (
    AuthError,
    RemoteProcessingError,
    SubmitError,
    TranscriptionError,
    UploadError,
)

logger = logging.getLogger(__name__)

AUTH_REJECTED_STATUSES = (401, 403)


class AssemblyAIClient:
    """Thin async wrapper over the AssemblyAI v2 upload and transcript endpoints.

    Each call opens its own ``httpx.AsyncClient`` so nothing is shared between
    concurrent submissions. Pass ``transport`` to route requests elsewhere
    (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 600.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport)

    async def upload(self, audio: bytes, credentials: str) -> str:
        upload_url = f"{self.base_url}/upload"
        try:
            async with self._client() as client:
                response = await client.post(
                    upload_url,
                    headers=self._headers(credentials),
                    content=audio,
                )
        except httpx.HTTPError as exc:
            raise UploadError(f"AssemblyAI upload failed: {exc}") from exc

        self._raise_for_status(response, "upload", UploadError)
        uploaded = self._json(response, UploadError).get("upload_url")
        if not uploaded:
            raise UploadError("AssemblyAI upload response missing upload_url")
        logger.debug("Uploaded %d bytes", len(audio))
        return str(uploaded)

    async def request_transcription(
        self,
        upload_url: str,
        credentials: str,
        speaker_labels: bool = True,
    ) -> str:
        transcript_url = f"{self.base_url}/transcript"
        request_payload = {
            "audio_url": upload_url,
            "speaker_labels": speaker_labels,
        }
        try:
            async with self._client() as client:
                response = await client.post(
                    transcript_url,
                    headers=self._headers(credentials),
                    json=request_payload,
                )
        except httpx.HTTPError as exc:
            raise SubmitError(f"AssemblyAI transcript create failed: {exc}") from exc

        self._raise_for_status(response, "transcript create", SubmitError)
        transcript_id = self._json(response, SubmitError).get("id")
        if not transcript_id:
            raise SubmitError("AssemblyAI transcript response missing id")
        return str(transcript_id)

    async def get_status(self, job_id: str, credentials: str) -> dict[str, Any]:
        transcript_url = f"{self.base_url}/transcript/{job_id}"
        try:
            async with self._client() as client:
                response = await client.get(transcript_url, headers=self._headers(credentials))
        except httpx.HTTPError as exc:
            raise RemoteProcessingError(f"AssemblyAI transcript poll failed: {exc}") from exc

        self._raise_for_status(response, "transcript poll", RemoteProcessingError)
        return self._json(response, RemoteProcessingError)

    @staticmethod
    def _headers(credentials: str) -> dict[str, str]:
        return {"authorization": credentials}

    @staticmethod
    def _raise_for_status(
        response: httpx.Response,
        stage: str,
        error_cls: type[TranscriptionError],
    ) -> None:
        if response.status_code in AUTH_REJECTED_STATUSES:
            raise AuthError(f"AssemblyAI rejected the API key during {stage} ({response.status_code})")
        if response.status_code >= 400:
            raise error_cls(
                f"AssemblyAI {stage} failed ({response.status_code}): {response.text[:400]}"
            )

    @staticmethod
    def _json(response: httpx.Response, error_cls: type[TranscriptionError]) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise error_cls(f"AssemblyAI returned invalid JSON: {response.text[:400]}") from exc
        if not isinstance(payload, dict):
            raise error_cls("AssemblyAI returned an unexpected payload")
        return payload
