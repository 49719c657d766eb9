# tests/test_core.py
import unittest

from fortune_wheel.core.events import Event, EventBus, EventType, spin_pressed_event
from fortune_wheel.core.segments import (
    DEFAULT_LABELS,
    Segment,
    build_segments,
    default_segments,
    is_loss_label,
)
from fortune_wheel.core.state import AcquisitionState, StateMachine


class TestEventBus(unittest.IsolatedAsyncioTestCase):
    """Test pub/sub dispatch."""

    def setUp(self):
        self.bus = EventBus()

    def test_emit_reaches_subscribers(self):
        seen = []
        unsubscribe = self.bus.subscribe(EventType.SPIN_PRESSED, seen.append)
        everything = []
        self.bus.subscribe_all(everything.append)

        self.bus.emit(spin_pressed_event())
        self.bus.emit(Event(EventType.RESET_PRESSED))
        unsubscribe()
        self.bus.emit(spin_pressed_event())

        self.assertEqual(len(seen), 1)
        self.assertEqual(seen[0].source, "button")
        self.assertEqual(len(everything), 3)

    def test_handler_error_is_logged(self):
        def broken(event):
            raise RuntimeError("boom")

        after = []
        self.bus.subscribe(EventType.WHEEL_STARTED, broken)
        self.bus.subscribe(EventType.WHEEL_STARTED, after.append)
        with self.assertLogs("fortune_wheel.core.events", level="ERROR"):
            self.bus.emit(Event(EventType.WHEEL_STARTED))
        self.assertEqual(len(after), 1)

    async def test_queued_events_reach_async_handlers(self):
        seen = []

        async def handler(event):
            seen.append(event.data["n"])

        self.bus.subscribe(EventType.WHEEL_STOPPED, handler)
        self.bus.queue_event(Event(EventType.WHEEL_STOPPED, data={"n": 1}))
        self.bus.queue_event(Event(EventType.WHEEL_STOPPED, data={"n": 2}))
        self.assertEqual(seen, [])

        await self.bus.process_queue()
        self.assertEqual(seen, [1, 2])

    def test_history_filter_and_limit(self):
        for _ in range(5):
            self.bus.emit(Event(EventType.WHEEL_STARTED))
        self.bus.emit(Event(EventType.SHUTDOWN))

        self.assertEqual(len(self.bus.get_history(EventType.WHEEL_STARTED, limit=3)), 3)
        self.assertEqual(self.bus.get_history(limit=1)[0].type, EventType.SHUTDOWN)
        self.bus.clear_history()
        self.assertEqual(self.bus.get_history(), [])


class TestStateMachine(unittest.TestCase):
    """Test acquisition state transitions."""

    def test_happy_path(self):
        sm = StateMachine()
        changes = []
        sm.add_listener(lambda old, new: changes.append(new))

        for state in (
            AcquisitionState.SUBMITTING,
            AcquisitionState.AWAITING_CONFIRMATION,
            AcquisitionState.POLLING,
            AcquisitionState.RESOLVED,
        ):
            self.assertTrue(sm.transition(state))

        self.assertTrue(sm.is_terminal)
        self.assertFalse(sm.is_active)
        self.assertEqual(changes[-1], AcquisitionState.RESOLVED)

    def test_invalid_transition_rejected(self):
        sm = StateMachine()
        with self.assertLogs("fortune_wheel.core.state", level="WARNING"):
            self.assertFalse(sm.transition(AcquisitionState.POLLING))
        self.assertEqual(sm.state, AcquisitionState.IDLE)

    def test_terminal_states_do_not_advance(self):
        sm = StateMachine(AcquisitionState.TIMED_OUT)
        self.assertFalse(sm.can_transition(AcquisitionState.POLLING))
        self.assertFalse(sm.can_transition(AcquisitionState.RESOLVED))
        sm.reset()
        self.assertEqual(sm.state, AcquisitionState.IDLE)

    def test_active_while_in_flight(self):
        sm = StateMachine(AcquisitionState.AWAITING_CONFIRMATION)
        self.assertTrue(sm.is_active)
        self.assertFalse(sm.is_terminal)


class TestSegments(unittest.TestCase):

    def test_default_wheel(self):
        segments = default_segments()
        self.assertEqual([s.label for s in segments], DEFAULT_LABELS)
        self.assertEqual(segments[0], Segment("T-shirt", "tshirt"))
        self.assertEqual(segments[1].asset_key, "betterlucknexttime")

    def test_unknown_label_has_no_asset(self):
        self.assertEqual(build_segments(["Gold bar"]), [Segment("Gold bar")])

    def test_empty_labels_rejected(self):
        with self.assertRaises(ValueError):
            build_segments([])

    def test_loss_labels(self):
        self.assertTrue(is_loss_label("Better luck next time"))
        self.assertTrue(is_loss_label("Try again"))
        self.assertTrue(is_loss_label("No prize"))
        self.assertFalse(is_loss_label("Stickers"))
        self.assertFalse(is_loss_label(None))


if __name__ == '__main__':
    unittest.main()
