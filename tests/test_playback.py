import asyncio
from pathlib import Path

from fakes import CountingHandles, FakeMedia
from speaker_clips.playback import PlaybackController, PositionCallback, TemporaryFileHandles
from speaker_clips.types import AudioFile

SOURCE = AudioFile(name="meeting.mp3", data=b"ID3-fake-audio", content_type="audio/mpeg")


def _controller(media: FakeMedia | None = None) -> tuple[PlaybackController, FakeMedia, CountingHandles]:
    media = media or FakeMedia()
    handles = CountingHandles()
    return PlaybackController(media, handles), media, handles


def test_play_seeks_and_starts_range() -> None:
    controller, media, handles = _controller()

    asyncio.run(controller.play(SOURCE, 1000, 5000))

    assert controller.state == ("1000-5000", True)
    assert media.playing
    assert media.position == 1000
    assert media.source == handles.acquired[0]
    assert len(media.listeners) == 1


def test_same_range_toggles_off() -> None:
    controller, media, handles = _controller()

    async def scenario() -> None:
        await controller.play(SOURCE, 1000, 5000)
        await controller.play(SOURCE, 1000, 5000)

    asyncio.run(scenario())

    assert controller.state == (None, False)
    assert not media.playing
    assert media.listeners == []
    assert handles.outstanding == []
    assert media.play_calls == 1


def test_different_range_supersedes() -> None:
    controller, media, handles = _controller()

    async def scenario() -> None:
        await controller.play(SOURCE, 1000, 5000)
        await controller.play(SOURCE, 2000, 6000)

    asyncio.run(scenario())

    assert controller.state == ("2000-6000", True)
    assert len(media.listeners) == 1
    assert handles.released == [handles.acquired[0]]
    assert handles.outstanding == [handles.acquired[1]]
    assert media.position == 2000


def test_reaching_end_stops_once_and_detaches_watcher() -> None:
    controller, media, handles = _controller()
    asyncio.run(controller.play(SOURCE, 1000, 5000))
    watcher = media.listeners[0]

    media.advance_to(4999)
    assert controller.state == ("1000-5000", True)

    media.advance_to(5000)
    assert controller.state == (None, False)
    assert media.listeners == []
    assert not media.playing
    assert handles.outstanding == []

    # A late notification to the old watcher changes nothing.
    watcher(6000)
    assert handles.released == [handles.acquired[0]]


def test_stale_watcher_does_not_stop_newer_session() -> None:
    controller, media, _ = _controller()

    async def scenario() -> PositionCallback:
        await controller.play(SOURCE, 0, 1000)
        old_watcher = media.listeners[0]
        await controller.play(SOURCE, 3000, 9000)
        return old_watcher

    old_watcher = asyncio.run(scenario())
    old_watcher(5000)

    assert controller.state == ("3000-9000", True)


def test_stop_is_idempotent() -> None:
    controller, media, handles = _controller()
    asyncio.run(controller.play(SOURCE, 0, 1000))

    controller.stop()
    controller.stop()

    assert controller.state == (None, False)
    assert media.source is None
    assert len(handles.released) == 1


def test_missing_source_or_media_is_noop() -> None:
    controller, media, handles = _controller()
    asyncio.run(controller.play(None, 0, 1000))
    assert controller.state == (None, False)
    assert handles.acquired == []

    headless = PlaybackController(None, handles)
    asyncio.run(headless.play(SOURCE, 0, 1000))
    assert headless.state == (None, False)
    assert handles.acquired == []


def test_rejected_play_cleans_up() -> None:
    controller, media, handles = _controller(FakeMedia(fail_play=True))

    asyncio.run(controller.play(SOURCE, 0, 1000))

    assert controller.state == (None, False)
    assert media.listeners == []
    assert handles.outstanding == []


class SlowMedia(FakeMedia):
    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()

    async def play(self) -> None:
        self.play_calls += 1
        if self.play_calls == 1:
            await self.gate.wait()
        self.playing = True


def test_play_superseded_while_starting() -> None:
    media = SlowMedia()
    controller, _, handles = _controller(media)

    async def scenario() -> None:
        first = asyncio.create_task(controller.play(SOURCE, 0, 1000))
        await asyncio.sleep(0)
        await controller.play(SOURCE, 2000, 3000)
        media.gate.set()
        await first

    asyncio.run(scenario())

    assert controller.state == ("2000-3000", True)
    assert len(media.listeners) == 1
    assert handles.outstanding == [handles.acquired[1]]


def test_temporary_file_handles(tmp_path: Path) -> None:
    handles = TemporaryFileHandles(tmp_path)

    handle = handles.acquire(SOURCE)
    assert Path(handle).read_bytes() == SOURCE.data
    assert Path(handle).suffix == ".mp3"
    assert handles.outstanding == {handle}

    handles.release(handle)
    assert not Path(handle).exists()
    assert handles.outstanding == frozenset()


def test_controller_with_temporary_files_leaves_nothing_behind(tmp_path: Path) -> None:
    media = FakeMedia()
    handles = TemporaryFileHandles(tmp_path)
    controller = PlaybackController(media, handles)

    async def scenario() -> None:
        await controller.play(SOURCE, 0, 1000)
        await controller.play(SOURCE, 1000, 2000)

    asyncio.run(scenario())
    assert len(handles.outstanding) == 1

    media.advance_to(2000)
    assert handles.outstanding == frozenset()
    assert list(tmp_path.iterdir()) == []


class SeekFailingMedia(FakeMedia):
    def seek(self, position_ms: float) -> None:
        if position_ms:
            raise ValueError("cannot seek")
        super().seek(position_ms)


def test_failed_seek_releases_handle_without_error() -> None:
    controller, media, handles = _controller(SeekFailingMedia())

    asyncio.run(controller.play(SOURCE, 1000, 2000))

    assert controller.state == (None, False)
    assert media.listeners == []
    assert media.source is None
    assert handles.outstanding == []
    assert media.play_calls == 0


class PauseFailingMedia(FakeMedia):
    def pause(self) -> None:
        raise RuntimeError("element gone")


def test_stop_releases_handle_when_pause_fails() -> None:
    controller, media, handles = _controller(PauseFailingMedia())
    asyncio.run(controller.play(SOURCE, 0, 1000))

    controller.stop()

    assert controller.state == (None, False)
    assert media.listeners == []
    assert handles.outstanding == []


def test_superseding_play_survives_failing_pause() -> None:
    controller, media, handles = _controller(PauseFailingMedia())

    async def scenario() -> None:
        await controller.play(SOURCE, 0, 1000)
        await controller.play(SOURCE, 2000, 3000)

    asyncio.run(scenario())

    assert controller.state == ("2000-3000", True)
    assert len(media.listeners) == 1
    assert handles.outstanding == [handles.acquired[1]]
