"""Spin physics and the engine that drives the wheel frame by frame.

The wheel spins at a constant speed while the outcome is pending. Once a
target index is known the engine freezes a final angle at least a few full
turns ahead and decelerates onto it so the target wedge stops under the
pointer at the top of the wheel.

All physics lives in :func:`step`, a pure function of the previous state,
the frame timestamp and the tuning constants. The engine only schedules
frames, renders and reports.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from fortune_wheel.animation.scheduler import FrameScheduler

logger = logging.getLogger(__name__)

TWO_PI = 2 * math.pi

# Pointer sits at the top of the wheel in screen rotation convention
POINTER_ANGLE = -math.pi / 2


@dataclass(frozen=True)
class SpinParams:
    """Tuning constants for the wheel physics."""

    spin_speed: float = 6.0          # rad/s while the outcome is pending
    max_deceleration: float = 10.0   # rad/s^2 cap on target-seeking braking
    epsilon: float = 0.002           # rad, convergence threshold
    max_dt: float = 0.032            # s, frame delta clamp after stalls
    min_turns: int = 3               # full turns between target and stop
    abort_deceleration: float = 4.0  # rad/s^2 when stopping without target


@dataclass(frozen=True)
class SpinState:
    """Continuous wheel state, advanced once per frame by :func:`step`."""

    angle: float = 0.0
    velocity: float = 0.0
    decelerating: bool = False
    final_angle: Optional[float] = None
    last_timestamp: Optional[float] = None  # ms
    aborting: bool = False
    stopped: bool = False

    @property
    def remaining(self) -> Optional[float]:
        if self.final_angle is None:
            return None
        return self.final_angle - self.angle


def segment_angle(segment_count: int) -> float:
    if segment_count < 1:
        raise ValueError("segment_count must be at least 1")
    return TWO_PI / segment_count


def compute_final_angle(
    current_angle: float,
    index: int,
    segment_count: int,
    min_turns: int = 3,
) -> float:
    """Resting angle that puts the center of ``index`` under the pointer.

    The result is the smallest angle at or beyond
    ``current_angle + min_turns * 2pi`` that is congruent to the alignment
    angle, so the wheel always spins down forwards.
    """
    seg = segment_angle(segment_count)
    if not 0 <= index < segment_count:
        raise ValueError(f"index {index} out of range for {segment_count} segments")

    center = index * seg + seg / 2
    desired = POINTER_ANGLE - center
    base = current_angle + min_turns * TWO_PI
    return base + (desired - base) % TWO_PI


def index_under_pointer(angle: float, segment_count: int) -> int:
    """Index of the wedge currently under the pointer."""
    seg = segment_angle(segment_count)
    wheel_local = (POINTER_ANGLE - angle) % TWO_PI
    return int(wheel_local // seg) % segment_count


def step(state: SpinState, timestamp: float, params: SpinParams) -> SpinState:
    """Advance the wheel by one frame.

    Args:
        state: State after the previous frame
        timestamp: Frame timestamp in milliseconds
        params: Physics tuning constants

    Returns:
        The new state. ``stopped`` is set once motion has ended.
    """
    if state.stopped:
        return state

    if state.last_timestamp is None:
        dt = 0.0
    else:
        dt = min(params.max_dt, max(0.0, (timestamp - state.last_timestamp) / 1000.0))

    angle = state.angle
    velocity = state.velocity

    if state.decelerating and state.final_angle is not None:
        remaining = state.final_angle - angle
        if remaining <= params.epsilon:
            return replace(
                state,
                angle=state.final_angle,
                velocity=0.0,
                last_timestamp=timestamp,
                stopped=True,
            )

        # v^2 = 2 * a * d gives the braking that lands exactly on target
        ideal = (velocity * velocity) / max(0.001, 2 * remaining)
        decel = min(ideal, params.max_deceleration)
        velocity = max(0.0, velocity - decel * dt)

        travel = velocity * dt
        if dt > 0 and (velocity <= 0.0 or travel >= remaining):
            # Arrives (or would stall short) within this frame
            return replace(
                state,
                angle=state.final_angle,
                velocity=0.0,
                last_timestamp=timestamp,
                stopped=True,
            )
        return replace(state, angle=angle + travel, velocity=velocity, last_timestamp=timestamp)

    if state.aborting:
        velocity = max(0.0, velocity - params.abort_deceleration * dt)
        return replace(
            state,
            angle=angle + velocity * dt,
            velocity=velocity,
            last_timestamp=timestamp,
            stopped=velocity <= 0.0,
        )

    velocity = params.spin_speed
    return replace(state, angle=angle + velocity * dt, velocity=velocity, last_timestamp=timestamp)


class SpinAnimationEngine:
    """Owns the wheel's SpinState and runs the per-frame loop.

    Lifecycle:
        1. start() - constant-speed spin while the outcome is pending
        2. set_target(index) - freeze the final angle and decelerate onto it
           (or stop_without_target() after a failure)
        3. on_stopped callbacks fire once with the index when motion ends
    """

    def __init__(
        self,
        segment_count: int,
        scheduler: FrameScheduler,
        params: Optional[SpinParams] = None,
        render: Optional[Callable[[float], None]] = None,
    ):
        segment_angle(segment_count)  # validates
        self._segment_count = segment_count
        self._scheduler = scheduler
        self._params = params or SpinParams()
        self._render = render

        self._state = SpinState()
        self._target_index: Optional[int] = None
        self._frame_handle: Optional[int] = None
        self._running = False
        self._stop_reported = False
        self._on_stopped: List[Callable[[int], None]] = []

    @property
    def state(self) -> SpinState:
        return self._state

    @property
    def params(self) -> SpinParams:
        return self._params

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_landing(self) -> bool:
        """True while decelerating onto a target."""
        return self._running and self._state.decelerating

    @property
    def target_index(self) -> Optional[int]:
        return self._target_index

    @property
    def segment_count(self) -> int:
        return self._segment_count

    def set_segment_count(self, segment_count: int) -> None:
        """Change the number of wedges. Not allowed while landing on a target."""
        segment_angle(segment_count)
        if self.is_landing:
            raise RuntimeError("Cannot change segments while decelerating")
        self._segment_count = segment_count
        self._redraw()

    def on_stopped(self, callback: Callable[[int], None]) -> None:
        """Register a callback for when the wheel stops on its target."""
        self._on_stopped.append(callback)

    def start(self) -> None:
        """Spin at constant speed until a target is set."""
        if self.is_landing:
            logger.debug("start() ignored while decelerating")
            return
        if self._running and not self._state.aborting:
            return

        self._state = SpinState(angle=self._state.angle, velocity=self._params.spin_speed)
        self._target_index = None
        self._stop_reported = False
        self._running = True
        # A coasting wheel still has a frame pending; reuse it
        if self._frame_handle is None:
            self._arm()
        logger.info("Wheel spinning")

    def set_target(self, index: int) -> None:
        """Decelerate so that wedge ``index`` stops under the pointer."""
        if not 0 <= index < self._segment_count:
            raise ValueError(f"index {index} out of range for {self._segment_count} segments")
        if self.is_landing:
            logger.warning(f"Target already set to {self._target_index}, ignoring {index}")
            return
        if not self._running:
            self.start()

        final_angle = compute_final_angle(
            self._state.angle, index, self._segment_count, self._params.min_turns
        )
        velocity = self._state.velocity
        if self._state.aborting or velocity <= 0.0:
            velocity = self._params.spin_speed

        self._target_index = index
        self._state = replace(
            self._state,
            velocity=velocity,
            decelerating=True,
            final_angle=final_angle,
            aborting=False,
        )
        logger.info(f"Wheel target set: index {index}, final angle {final_angle:.3f}")

    def stop_without_target(self) -> None:
        """Coast to a stop without aligning to any wedge."""
        if not self._running or self._state.decelerating:
            return
        self._state = replace(self._state, aborting=True)
        logger.info("Wheel stopping without target")

    def cancel(self) -> None:
        """Stop the frame loop immediately. No callbacks fire afterwards."""
        if self._frame_handle is not None:
            self._scheduler.cancel_frame(self._frame_handle)
            self._frame_handle = None
        self._running = False
        self._state = replace(
            self._state,
            velocity=0.0,
            decelerating=False,
            final_angle=None,
            aborting=False,
            last_timestamp=None,
        )

    def on_frame(self, timestamp: float) -> None:
        """Advance physics, redraw and re-arm. Called by the scheduler."""
        self._frame_handle = None
        if not self._running:
            return

        self._state = step(self._state, timestamp, self._params)
        self._redraw()

        if not self._state.stopped:
            self._arm()
            return

        self._running = False
        if self._state.decelerating and self._target_index is not None:
            self._report_stop(self._target_index)
        else:
            logger.info("Wheel coasted to a stop")

    def _arm(self) -> None:
        self._frame_handle = self._scheduler.request_frame(self.on_frame)

    def _redraw(self) -> None:
        if self._render is not None:
            self._render(self._state.angle)

    def _report_stop(self, index: int) -> None:
        if self._stop_reported:
            return
        self._stop_reported = True
        logger.info(f"Wheel stopped on index {index}")
        for callback in list(self._on_stopped):
            try:
                callback(index)
            except Exception as e:
                logger.error(f"Error in stop callback: {e}")
