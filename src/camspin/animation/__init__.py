"""Animation module for CamSpin."""

from camspin.animation.physics import (
    PhysicsEngine,
    SpinState,
    SpinPhase,
    SpinCommand,
    Spin,
    DecelerateTo,
    Idle,
)
from camspin.animation.selector import WinnerSelector, Selection
from camspin.animation.strip import StripLayout, VisibleSlots
from camspin.animation.scheduler import FrameLoop, ManualClock, TimerHandle

__all__ = [
    # Physics
    "PhysicsEngine",
    "SpinState",
    "SpinPhase",
    "SpinCommand",
    "Spin",
    "DecelerateTo",
    "Idle",
    # Selection
    "WinnerSelector",
    "Selection",
    # Layout
    "StripLayout",
    "VisibleSlots",
    # Scheduling
    "FrameLoop",
    "ManualClock",
    "TimerHandle",
]
