import asyncio

import numpy as np
import pytest

from camspin.capture.camera import SyntheticCamera
from camspin.capture.uploader import PhotoUploader, decode_photo, encode_frame
from camspin.config.settings import CaptureSettings
from camspin.core.events import EventBus, EventType
from tests.test_utils import FlakyStore


def test_synthetic_camera_frames():
    with SyntheticCamera(resolution=(160, 120)) as camera:
        assert camera.is_open
        first = camera.capture_frame()
        second = camera.capture_frame()

    assert first.shape == (120, 160, 3)
    assert first.dtype == np.uint8
    # The face bobs between frames
    assert not np.array_equal(first, second)
    assert camera.capture_frame() is None


def test_encode_frame_makes_jpeg_data_url():
    frame = np.full((480, 640, 3), 128, dtype=np.uint8)
    payload = encode_frame(frame, size=(320, 240), quality=70)

    assert payload.startswith("data:image/jpeg;base64,")
    image = decode_photo(payload)
    assert image.format == "JPEG"
    assert image.size == (320, 240)


def test_encode_crops_to_fill():
    tall = np.zeros((800, 200, 3), dtype=np.uint8)
    image = decode_photo(encode_frame(tall))
    assert image.size == (320, 240)


@pytest.mark.parametrize("payload", ["", "hello", "data:image/jpeg;base64,!!!!", "data:image/png"])
def test_decode_rejects_garbage(payload):
    assert decode_photo(payload) is None


def uploader_setup(clock, frame_loop, **kwargs):
    store = FlakyStore(clock=clock)
    bus = EventBus()
    events = []
    bus.subscribe(EventType.PHOTO_CAPTURED, events.append)
    bus.subscribe(EventType.PHOTO_ERROR, events.append)
    uploader = PhotoUploader(
        SyntheticCamera(resolution=(160, 120)),
        store,
        "ABCD",
        "p1",
        frame_loop,
        CaptureSettings(capture_interval=0.4),
        bus,
    )
    return store, uploader, events


async def step(clock, frame_loop, frames: int, seconds: float) -> None:
    for _ in range(frames):
        clock.advance(seconds)
        frame_loop.step()
        await asyncio.sleep(0)


def test_uploads_are_throttled(clock, frame_loop):
    """
    Scenario: frames every 0.25 s for 1.25 s with a 0.4 s capture interval.
    Verify: uploads at 0.25, 0.75 and 1.25 only, each replacing the photo.
    """
    store, uploader, events = uploader_setup(clock, frame_loop)

    async def run():
        await store.create_room("ABCD", {})
        await store.set_player("ABCD", "p1", {"name": "Ava", "photo": None})
        assert uploader.start()
        await step(clock, frame_loop, 5, 0.25)
        await uploader.drain()

    asyncio.run(run())

    photo_writes = [w for w in store.writes if w.op == "update_player"]
    assert len(photo_writes) == 3
    assert uploader.uploads == 3
    assert store._players["ABCD"]["p1"]["photo"].startswith("data:image/jpeg;base64,")
    assert isinstance(store._players["ABCD"]["p1"]["updatedAt"], float)
    assert [e.type for e in events] == [EventType.PHOTO_CAPTURED] * 3


def test_paused_uploader_sends_nothing(clock, frame_loop):
    store, uploader, _ = uploader_setup(clock, frame_loop)

    async def run():
        await store.create_room("ABCD", {})
        await store.set_player("ABCD", "p1", {"name": "Ava"})
        uploader.start()
        assert uploader.toggle() is False
        await step(clock, frame_loop, 4, 0.5)
        assert uploader.toggle() is True
        await step(clock, frame_loop, 1, 0.5)
        await uploader.drain()

    asyncio.run(run())
    assert uploader.uploads == 1


def test_failed_upload_is_reported(clock, frame_loop):
    store, uploader, events = uploader_setup(clock, frame_loop)

    async def run():
        await store.create_room("ABCD", {})
        await store.set_player("ABCD", "p1", {"name": "Ava"})
        store.fail_player_updates = 1
        uploader.start()
        await step(clock, frame_loop, 2, 0.5)
        await uploader.drain()

    asyncio.run(run())
    assert uploader.failures == 1
    assert uploader.uploads == 1
    assert [e.type for e in events] == [EventType.PHOTO_ERROR, EventType.PHOTO_CAPTURED]


def test_stop_closes_camera(clock, frame_loop):
    _, uploader, _ = uploader_setup(clock, frame_loop)
    assert uploader.start()
    assert uploader.is_running
    uploader.stop()
    uploader.stop()
    assert not uploader.is_running
    assert not uploader.source.is_open
