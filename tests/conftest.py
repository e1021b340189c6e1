import pytest

from camspin.animation.scheduler import FrameLoop, ManualClock
from camspin.store.memory import InMemoryRoomStore
from tests.test_utils import RoomScenario, make_settings


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def store(clock):
    return InMemoryRoomStore(clock=clock)


@pytest.fixture
def frame_loop(clock):
    return FrameLoop(fps=60, clock=clock)


@pytest.fixture
def scenario(tmp_path):
    """Factory fixture to create room scenarios."""

    def _builder(settings=None, seed=7, records=False):
        return RoomScenario(settings, seed=seed, records_dir=tmp_path if records else None)

    return _builder
