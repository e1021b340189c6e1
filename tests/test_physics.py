import math
import random

import pytest

from camspin.animation.physics import DecelerateTo, Idle, PhysicsEngine, Spin, SpinPhase, SpinState
from camspin.animation.selector import WinnerSelector
from camspin.animation.strip import StripLayout
from camspin.config.settings import PhysicsSettings


def run_until_landed(engine: PhysicsEngine, max_ticks: int = 5000) -> int:
    for tick in range(1, max_ticks + 1):
        engine.tick()
        if engine.state.phase == SpinPhase.IDLE:
            return tick
    raise AssertionError(f"engine did not land within {max_ticks} ticks")


def test_spin_accelerates_to_max_speed():
    engine = PhysicsEngine()
    engine.send(Spin())

    engine.tick()
    assert engine.state.velocity == pytest.approx(1.5)
    assert engine.offset == pytest.approx(1.5)

    for _ in range(100):
        engine.tick()
    assert engine.state.velocity == 40.0
    assert engine.state.phase == SpinPhase.ACCELERATING


def test_spin_keeps_current_velocity():
    engine = PhysicsEngine(initial=SpinState(velocity=20.0))
    engine.send(Spin())
    engine.tick()
    assert engine.state.velocity == pytest.approx(21.5)


def test_idle_decays_and_snaps_to_rest():
    engine = PhysicsEngine(initial=SpinState(offset=100.0, velocity=10.0))

    engine.tick()
    assert engine.state.velocity == pytest.approx(9.8)

    for _ in range(400):
        engine.tick()
    assert engine.state.velocity == 0.0
    assert not engine.is_moving

    resting = engine.offset
    engine.tick()
    assert engine.offset == resting


def test_decelerate_lands_exactly_on_target():
    """
    Scenario: strip at full speed is told to settle two cycles ahead.
    Verify: offset snaps to the target, velocity is zero, the landed
    index is kept on the state and reported once.
    """
    engine = PhysicsEngine(initial=SpinState(velocity=40.0, phase=SpinPhase.ACCELERATING))
    landed: list[int] = []
    engine.on_landed(landed.append)

    engine.send(DecelerateTo(target=2340.0, winner_index=1))
    run_until_landed(engine)

    assert engine.offset == 2340.0
    assert engine.state.velocity == 0.0
    assert engine.state.winner_index == 1
    assert engine.state.target_offset is None
    assert landed == [1]

    for _ in range(200):
        engine.tick()
    assert landed == [1]
    assert engine.offset == 2340.0


def test_deceleration_speed_is_clamped():
    engine = PhysicsEngine(initial=SpinState(velocity=40.0, phase=SpinPhase.ACCELERATING))
    engine.send(DecelerateTo(target=100_000.0, winner_index=0))

    for _ in range(50):
        engine.tick()
        assert abs(engine.state.velocity) <= 15.0


@pytest.mark.parametrize("roster_size", [2, 3, 5, 8, 10])
@pytest.mark.parametrize("extra_cycles", [1, 2])
def test_landing_is_bounded(roster_size, extra_cycles):
    """Every selected target is reached in bounded time from full speed."""
    rng = random.Random(roster_size * 10 + extra_cycles)
    selector = WinnerSelector(StripLayout(), rng)

    for start in (0.0, 777.0, 12_345.6):
        engine = PhysicsEngine(initial=SpinState(offset=start, velocity=40.0, phase=SpinPhase.ACCELERATING))
        selection = selector.select_winner(roster_size, engine.offset, extra_cycles)
        engine.send(DecelerateTo(selection.target_offset, selection.winner_index))

        ticks = run_until_landed(engine)
        assert ticks < 2000
        assert engine.offset == selection.target_offset


def test_landed_not_emitted_when_interrupted():
    engine = PhysicsEngine(initial=SpinState(velocity=40.0, phase=SpinPhase.ACCELERATING))
    landed: list[int] = []
    engine.on_landed(landed.append)

    engine.send(DecelerateTo(target=3000.0, winner_index=2))
    for _ in range(10):
        engine.tick()
    engine.send(Idle())
    for _ in range(1000):
        engine.tick()

    assert landed == []
    assert engine.state.winner_index == -1


def test_spin_after_landing_clears_winner_index():
    engine = PhysicsEngine()
    engine.send(DecelerateTo(target=50.0, winner_index=3))
    run_until_landed(engine)
    assert engine.state.winner_index == 3

    engine.send(Spin())
    assert engine.state.winner_index == -1
    assert engine.state.phase == SpinPhase.ACCELERATING


def test_landed_callback_error_does_not_break_engine():
    engine = PhysicsEngine()
    seen: list[int] = []

    def broken(index: int) -> None:
        raise RuntimeError("boom")

    engine.on_landed(broken)
    engine.on_landed(seen.append)
    engine.send(DecelerateTo(target=10.0, winner_index=0))
    run_until_landed(engine)

    assert seen == [0]


def test_remove_landed_callback():
    engine = PhysicsEngine()
    seen: list[int] = []
    remove = engine.on_landed(seen.append)
    remove()
    remove()

    engine.send(DecelerateTo(target=10.0, winner_index=0))
    run_until_landed(engine)
    assert seen == []


@pytest.mark.parametrize("target", [math.inf, -math.inf, math.nan])
def test_non_finite_target_rejected(target):
    engine = PhysicsEngine()
    engine.send(Spin())

    with pytest.raises(ValueError):
        engine.send(DecelerateTo(target=target, winner_index=0))
    assert engine.state.phase == SpinPhase.ACCELERATING


def test_unknown_command_rejected():
    engine = PhysicsEngine()
    with pytest.raises(TypeError):
        engine.send("spin")


def test_custom_physics_settings():
    engine = PhysicsEngine(PhysicsSettings(max_speed=10.0, acceleration=5.0))
    engine.send(Spin())
    for _ in range(5):
        engine.tick()
    assert engine.state.velocity == 10.0
    assert engine.ticks == 5
