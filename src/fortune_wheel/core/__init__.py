"""Core framework components for the fortune wheel."""

from .state import AcquisitionState, StateMachine
from .events import EventBus, Event, EventType
from .segments import Segment, build_segments, default_segments, is_loss_label

__all__ = [
    "AcquisitionState",
    "StateMachine",
    "EventBus",
    "Event",
    "EventType",
    "Segment",
    "build_segments",
    "default_segments",
    "is_loss_label",
]
