import asyncio

import pytest

from camspin.animation.physics import SpinPhase
from camspin.core.errors import RoomClosedError, RoomNotFoundError
from camspin.core.events import EventType
from camspin.core.state import RoomPhase
from camspin.session.persistence import SessionRecord
from camspin.session.spectator import SpectatorSession
from tests.test_utils import RoomScenario

NAMES = ["Ava", "Ben", "Cleo"]


def test_late_subscriber_sees_finished_winner(scenario):
    """
    Scenario: a player joins after the round is over.
    Verify: the first room snapshot already shows FINISHED and the winner
    is resolved from the roster, with no animation running.
    """
    async def run(game: RoomScenario):
        await game.open(NAMES)
        winner_id = await game.play_round()
        late = await game.join("Dana")
        return winner_id, late

    game = scenario()
    winner_id, late = asyncio.run(run(game))

    assert late.phase == RoomPhase.FINISHED
    assert late.winner.id == winner_id
    assert late.winner.name in NAMES
    assert late.engine.state.phase == SpinPhase.IDLE
    assert not late.engine.is_moving


def test_spectator_spins_ambiently(scenario):
    async def run(game: RoomScenario):
        await game.open(NAMES)
        game.host.request_spin()
        await game.run_frames(30)

    game = scenario()
    asyncio.run(run(game))

    host_offset = game.host.engine.offset
    for spectator in game.spectators:
        assert spectator.engine.state.phase == SpinPhase.ACCELERATING
        assert spectator.engine.offset > 0
        assert spectator.winner is None
    # Spectators start one frame late, so they never mirror the host offset
    assert all(s.engine.offset != host_offset for s in game.spectators)


def test_phase_changed_event_carries_winner_name(scenario):
    async def run(game: RoomScenario):
        await game.open(NAMES)
        events = RoomScenario.record_events(game.spectators[0].context)
        winner_id = await game.play_round()
        return winner_id, events

    game = scenario()
    winner_id, events = asyncio.run(run(game))

    changes = [e.data for e in events if e.type == EventType.PHASE_CHANGED]
    assert [c["to"] for c in changes] == ["spinning", "finished"]
    assert changes[-1]["winner_id"] == winner_id
    assert changes[-1]["winner_name"] == game.host.winner.name


def test_room_deletion_closes_session(scenario):
    async def run(game: RoomScenario):
        await game.open(NAMES)
        spectator = game.spectators[0]
        events = RoomScenario.record_events(spectator.context)
        spectator.attach_camera(_StubCamera())
        game.host.request_spin()
        await game.run_frames(3)
        await game.host.close_room()
        return spectator, events

    game = scenario()
    spectator, events = asyncio.run(run(game))

    assert spectator.is_closed
    assert not spectator.is_joined
    assert spectator.close_reason == "room closed by host"
    assert spectator.engine.state.phase == SpinPhase.IDLE
    assert not spectator.uploader.is_running
    assert [e.data["reason"] for e in events if e.type == EventType.ROOM_CLOSED] == ["room closed by host"]


def test_connection_loss_closes_session(scenario):
    async def run(game: RoomScenario):
        await game.open(NAMES)
        game.store.disconnect(game.code)

    game = scenario()
    asyncio.run(run(game))
    for spectator in game.spectators:
        assert spectator.is_closed
        assert spectator.close_reason.startswith("connection lost")


def test_closed_session_cannot_rejoin_directly(scenario):
    async def run(game: RoomScenario):
        await game.open(NAMES)
        spectator = game.spectators[0]
        await spectator.leave()
        with pytest.raises(RoomClosedError):
            await spectator.join(game.code, "Ava")
        return spectator

    game = scenario()
    spectator = asyncio.run(run(game))
    assert spectator.close_reason == "left room"
    assert len(game.host.roster) == 2


def test_join_missing_room(scenario):
    async def run(game: RoomScenario):
        await game.open([])
        spectator = SpectatorSession(game.make_context("lost"))
        with pytest.raises(RoomNotFoundError):
            await spectator.join("ZZZZ" if game.code != "ZZZZ" else "YYYY", "Lost")
        return spectator

    spectator = asyncio.run(run(scenario()))
    assert not spectator.is_joined


@pytest.mark.parametrize("code,name", [("a!", "Ava"), ("", "Ava"), ("  ", "Ava"), ("ABCD", "   ")])
def test_join_validates_input(scenario, code, name):
    async def run(game: RoomScenario):
        await game.open([])
        spectator = SpectatorSession(game.make_context("bad"))
        with pytest.raises(ValueError):
            await spectator.join(code, name)

    asyncio.run(run(scenario()))


def test_join_normalizes_code(scenario):
    async def run(game: RoomScenario):
        await game.open([])
        spectator = SpectatorSession(game.make_context("typed"))
        await spectator.join(" ".join(game.code.lower()), "  Eve ")
        return spectator

    game = scenario()
    spectator = asyncio.run(run(game))
    assert spectator.code == game.code
    assert spectator.name == "Eve"
    assert game.host.roster[0].name == "Eve"


def test_rejoin_from_saved_record(scenario):
    async def run(game: RoomScenario):
        await game.open(["Ava"])
        again = SpectatorSession(game.make_context("ava"))
        assert await again.rejoin() is True
        return again

    game = scenario(records=True)
    again = asyncio.run(run(game))
    assert again.code == game.code
    assert again.name == "Ava"


def test_rejoin_room_gone_clears_record(scenario):
    async def run(game: RoomScenario):
        await game.open([])
        again = SpectatorSession(game.make_context("ava"))
        again.context.records.save(SessionRecord(code="QQQQ", role="player", name="Ava"))
        return await again.rejoin(), again

    game = scenario(records=True)
    rejoined, again = asyncio.run(run(game))
    assert rejoined is False
    assert again.context.records.load() is None


def test_rejoin_without_record(scenario):
    async def run(game: RoomScenario):
        await game.open([])
        return await SpectatorSession(game.make_context("new")).rejoin()

    assert asyncio.run(run(scenario(records=True))) is False


def test_attach_camera_requires_join(scenario):
    game = scenario()
    spectator = SpectatorSession(game.make_context("early"))
    with pytest.raises(RoomClosedError):
        spectator.attach_camera(_StubCamera())


class _StubCamera:
    def __init__(self):
        self.is_open = False

    def open(self):
        self.is_open = True
        return True

    def close(self):
        self.is_open = False

    def capture_frame(self):
        return None
