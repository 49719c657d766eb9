"""Per-frame callback scheduling, modelled on a display refresh loop.

Callbacks requested during a frame run on the *next* frame, each at most
once, with that frame's timestamp in milliseconds.
"""

import itertools
import logging
from typing import Callable, Dict

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]


class FrameScheduler:
    """Queue of one-shot frame callbacks flushed by the host render loop."""

    def __init__(self) -> None:
        self._pending: Dict[int, FrameCallback] = {}
        self._ids = itertools.count(1)
        self._last_timestamp: float = float("-inf")

    def request_frame(self, callback: FrameCallback) -> int:
        """Schedule ``callback`` for the next frame. Returns a handle."""
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        """Cancel a pending callback. Unknown handles are ignored."""
        self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def run_frame(self, timestamp: float) -> int:
        """Run every callback requested before this frame.

        Frames with a timestamp older than the previous frame are dropped.

        Returns:
            Number of callbacks invoked
        """
        if timestamp < self._last_timestamp:
            logger.debug(f"Dropping out-of-order frame at {timestamp:.1f}ms")
            return 0
        self._last_timestamp = timestamp

        batch = self._pending
        self._pending = {}
        for callback in batch.values():
            try:
                callback(timestamp)
            except Exception as e:
                logger.error(f"Error in frame callback: {e}")
        return len(batch)
