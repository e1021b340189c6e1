"""Strip physics for the shuffle carousel.

Each renderer owns one PhysicsEngine. The engine is driven one tick per
frame and controlled only through send(), which takes one of the command
dataclasses below. The host engine decelerates onto a selected target;
spectator engines only ever spin and idle.
"""

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Callable, Optional, Union
import logging
import math

from camspin.config.settings import PhysicsSettings

logger = logging.getLogger(__name__)


class SpinPhase(Enum):
    """Motion phase of one renderer's strip."""
    IDLE = auto()
    ACCELERATING = auto()
    DECELERATING = auto()


@dataclass(frozen=True)
class SpinState:
    """Continuous strip state. Never shared across devices."""
    offset: float = 0.0
    velocity: float = 0.0
    phase: SpinPhase = SpinPhase.IDLE
    target_offset: Optional[float] = None
    winner_index: int = -1


@dataclass(frozen=True)
class Spin:
    """Accelerate toward max speed with no known target."""


@dataclass(frozen=True)
class DecelerateTo:
    """Settle onto target, then report winner_index as landed."""
    target: float
    winner_index: int


@dataclass(frozen=True)
class Idle:
    """Drop any spin and drift to rest."""


SpinCommand = Union[Spin, DecelerateTo, Idle]
LandedCallback = Callable[[int], None]


class PhysicsEngine:
    """Per-renderer strip simulation.

    Idle: velocity decays exponentially and snaps to zero below epsilon.
    Accelerating: velocity grows by a fixed step up to max speed.
    Decelerating: velocity is damped, pulled toward the target by a
    force proportional to the remaining distance and clamped to the max
    deceleration speed. Once both distance and speed fall below the
    landing thresholds the offset snaps to the target and a single
    landed callback fires.
    """

    def __init__(
        self,
        settings: Optional[PhysicsSettings] = None,
        initial: Optional[SpinState] = None,
        name: str = "strip",
    ) -> None:
        self.settings = settings or PhysicsSettings()
        self.name = name
        self._state = initial or SpinState()
        self._landed_callbacks: list[LandedCallback] = []
        self._ticks = 0

    @property
    def state(self) -> SpinState:
        """Current state (immutable copy)."""
        return self._state

    @property
    def offset(self) -> float:
        return self._state.offset

    @property
    def ticks(self) -> int:
        """Ticks run since creation."""
        return self._ticks

    @property
    def is_moving(self) -> bool:
        return self._state.phase != SpinPhase.IDLE or self._state.velocity != 0.0

    def on_landed(self, callback: LandedCallback) -> Callable[[], None]:
        """Register a landed callback. Returns a remover."""
        self._landed_callbacks.append(callback)

        def remove() -> None:
            if callback in self._landed_callbacks:
                self._landed_callbacks.remove(callback)

        return remove

    def send(self, command: SpinCommand) -> None:
        """Apply a control command. Consumed synchronously."""
        state = self._state
        if isinstance(command, Spin):
            self._state = replace(
                state, phase=SpinPhase.ACCELERATING, target_offset=None, winner_index=-1
            )
        elif isinstance(command, DecelerateTo):
            if not math.isfinite(command.target):
                raise ValueError(f"Target offset must be finite, got {command.target}")
            self._state = replace(
                state,
                phase=SpinPhase.DECELERATING,
                target_offset=command.target,
                winner_index=command.winner_index,
            )
            logger.debug(
                f"[{self.name}] decelerating from {state.offset:.1f} to {command.target:.1f}"
            )
        elif isinstance(command, Idle):
            self._state = replace(
                state, phase=SpinPhase.IDLE, target_offset=None, winner_index=-1
            )
        else:
            raise TypeError(f"Unknown spin command: {command!r}")

    def tick(self) -> float:
        """Advance one frame. Returns the new offset."""
        self._ticks += 1
        phase = self._state.phase

        if phase == SpinPhase.DECELERATING:
            self._tick_decelerate()
        elif phase == SpinPhase.ACCELERATING:
            self._tick_accelerate()
        else:
            self._tick_idle()

        return self._state.offset

    def _tick_idle(self) -> None:
        s = self.settings
        velocity = self._state.velocity * s.idle_damping
        if abs(velocity) < s.idle_epsilon:
            velocity = 0.0
        self._state = replace(
            self._state, velocity=velocity, offset=self._state.offset + velocity
        )

    def _tick_accelerate(self) -> None:
        s = self.settings
        velocity = self._state.velocity
        if velocity < s.max_speed:
            velocity = min(velocity + s.acceleration, s.max_speed)
        self._state = replace(
            self._state, velocity=velocity, offset=self._state.offset + velocity
        )

    def _tick_decelerate(self) -> None:
        s = self.settings
        state = self._state
        target = state.target_offset
        distance = target - state.offset

        velocity = state.velocity * s.decel_damping
        velocity += distance * s.restoring_force
        velocity = max(-s.max_decel_speed, min(s.max_decel_speed, velocity))

        if abs(distance) < s.land_distance and abs(velocity) < s.land_velocity:
            winner_index = state.winner_index
            # Keep winner_index so renderers can highlight the landed card
            self._state = SpinState(
                offset=target,
                velocity=0.0,
                phase=SpinPhase.IDLE,
                target_offset=None,
                winner_index=winner_index,
            )
            logger.debug(f"[{self.name}] landed on index {winner_index} after {self._ticks} ticks")
            self._emit_landed(winner_index)
            return

        self._state = replace(state, velocity=velocity, offset=state.offset + velocity)

    def _emit_landed(self, winner_index: int) -> None:
        for callback in list(self._landed_callbacks):
            try:
                callback(winner_index)
            except Exception as e:
                logger.error(f"Error in landed callback: {e}")
