"""Bounded playback of one time range of an audio file.

Only one range plays at a time. Every transition goes through ``stop`` first,
which pauses the media element, detaches the boundary watcher and releases the
temporary handle that backed the previous range.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol

from speaker_clips.types import AudioFile

logger = logging.getLogger(__name__)

PositionCallback = Callable[[float], None]


class MediaElement(Protocol):
    @property
    def position(self) -> float:
        """Current playback position in milliseconds."""
        ...

    def set_source(self, handle: str | None) -> None: ...

    def seek(self, position_ms: float) -> None: ...

    async def play(self) -> None: ...

    def pause(self) -> None: ...

    def subscribe(self, callback: PositionCallback) -> None: ...

    def unsubscribe(self, callback: PositionCallback) -> None: ...


class SourceHandles(Protocol):
    def acquire(self, source: AudioFile) -> str: ...

    def release(self, handle: str) -> None: ...


class TemporaryFileHandles:
    """Backs each playback session with a temporary copy of the audio bytes."""

    def __init__(self, directory: Path | None = None) -> None:
        self.directory = directory
        self._outstanding: set[str] = set()

    @property
    def outstanding(self) -> frozenset[str]:
        return frozenset(self._outstanding)

    def acquire(self, source: AudioFile) -> str:
        suffix = Path(source.name).suffix
        fd, path = tempfile.mkstemp(prefix="clip-", suffix=suffix, dir=self.directory)
        with os.fdopen(fd, "wb") as handle:
            handle.write(source.data)
        self._outstanding.add(path)
        return path

    def release(self, handle: str) -> None:
        self._outstanding.discard(handle)
        Path(handle).unlink(missing_ok=True)


def range_key(start: int, end: int) -> str:
    return f"{start}-{end}"


@dataclass(slots=True)
class _PlaybackSession:
    range_key: str
    handle: str
    watcher: PositionCallback | None = None
    playing: bool = False


class PlaybackController:
    def __init__(self, media: MediaElement | None, handles: SourceHandles) -> None:
        self._media = media
        self._handles = handles
        self._session: _PlaybackSession | None = None

    @property
    def state(self) -> tuple[str | None, bool]:
        if self._session is None:
            return None, False
        return self._session.range_key, self._session.playing

    @property
    def current_range(self) -> str | None:
        return self._session.range_key if self._session is not None else None

    @property
    def is_playing(self) -> bool:
        return self._session is not None and self._session.playing

    async def play(self, source: AudioFile | None, start: int, end: int) -> None:
        media = self._media
        if source is None or media is None:
            return

        key = range_key(start, end)
        if self._session is not None and self._session.range_key == key:
            self.stop()
            return

        self.stop()

        try:
            handle = self._handles.acquire(source)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Could not open %s for playback", source.name)
            return

        session = _PlaybackSession(range_key=key, handle=handle)

        def watch_boundary(position_ms: float) -> None:
            if self._session is not session:
                return
            if position_ms >= end:
                logger.debug("Reached end of range %s", key)
                self.stop()

        self._session = session

        try:
            media.set_source(handle)
            media.seek(start)
            media.subscribe(watch_boundary)
            session.watcher = watch_boundary
            await media.play()
        except Exception:  # pylint: disable=broad-except
            logger.exception("Audio playback error for range %s", key)
            if self._session is session:
                self.stop()
            return

        # A newer play/stop may have run while media.play() was suspended.
        if self._session is session:
            session.playing = True

    def stop(self) -> None:
        session = self._session
        self._session = None
        if session is None:
            return

        media = self._media
        try:
            if media is not None:
                if session.watcher is not None:
                    media.unsubscribe(session.watcher)
                    session.watcher = None
                media.pause()
                media.seek(0)
                media.set_source(None)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Could not reset media after range %s", session.range_key)
        finally:
            self._handles.release(session.handle)
