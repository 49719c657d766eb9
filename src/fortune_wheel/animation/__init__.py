"""Animation module for the fortune wheel."""

from fortune_wheel.animation.scheduler import FrameScheduler
from fortune_wheel.animation.spin import (
    SpinAnimationEngine,
    SpinParams,
    SpinState,
    compute_final_angle,
    index_under_pointer,
    step,
)

__all__ = [
    "FrameScheduler",
    "SpinAnimationEngine",
    "SpinParams",
    "SpinState",
    "compute_final_angle",
    "index_under_pointer",
    "step",
]
