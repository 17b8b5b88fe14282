"""Failure classes raised by the transcription job orchestrator."""

from __future__ import annotations


class TranscriptionError(RuntimeError):
    """Base class for every orchestrator failure. ``str(exc)`` is user readable."""


class AuthError(TranscriptionError):
    """Credentials were missing or the provider rejected them."""


class UploadError(TranscriptionError):
    """The provider rejected the raw audio bytes."""


class SubmitError(TranscriptionError):
    """The provider rejected the transcription request."""


class RemoteProcessingError(TranscriptionError):
    """The provider reported a terminal error for the job."""


class TranscriptionTimeoutError(TranscriptionError, TimeoutError):
    """The job did not reach a terminal status within the polling budget."""
