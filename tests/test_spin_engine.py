# tests/test_spin_engine.py
import unittest

from fortune_wheel.animation.scheduler import FrameScheduler
from fortune_wheel.animation.spin import SpinAnimationEngine, index_under_pointer


class TestSpinAnimationEngine(unittest.TestCase):
    """Test the engine lifecycle against a manually driven frame scheduler."""

    def setUp(self):
        self.scheduler = FrameScheduler()
        self.rendered = []
        self.stops = []
        self.engine = SpinAnimationEngine(
            segment_count=10,
            scheduler=self.scheduler,
            render=self.rendered.append,
        )
        self.engine.on_stopped(self.stops.append)
        self.now = 0.0

    def _frames(self, count: int, frame_ms: float = 16.0) -> None:
        for _ in range(count):
            self.scheduler.run_frame(self.now)
            self.now += frame_ms

    def _run_until_idle(self, limit: int = 20_000) -> int:
        for frame in range(limit):
            if not self.engine.is_running:
                return frame
            self._frames(1)
        self.fail("engine never stopped")

    def test_start_arms_one_frame(self):
        self.engine.start()
        self.assertTrue(self.engine.is_running)
        self.assertEqual(self.scheduler.pending, 1)

        self.engine.start()
        self.assertEqual(self.scheduler.pending, 1)

    def test_spins_at_constant_speed(self):
        self.engine.start()
        self._frames(10)
        state = self.engine.state
        self.assertAlmostEqual(state.velocity, self.engine.params.spin_speed)
        self.assertGreater(state.angle, 0.0)
        self.assertEqual(len(self.rendered), 10)
        self.assertEqual(self.rendered[-1], state.angle)

    def test_target_stops_on_index_once(self):
        self.engine.start()
        self._frames(20)
        self.engine.set_target(7)
        self._run_until_idle()

        self.assertEqual(self.stops, [7])
        self.assertEqual(self.scheduler.pending, 0)
        self.assertEqual(self.engine.state.velocity, 0.0)
        self.assertEqual(index_under_pointer(self.engine.state.angle, 10), 7)

        # Further frames change nothing
        self._frames(5)
        self.assertEqual(self.stops, [7])

    def test_set_target_without_start(self):
        self.engine.set_target(2)
        self.assertTrue(self.engine.is_running)
        self._run_until_idle()
        self.assertEqual(self.stops, [2])

    def test_start_ignored_while_decelerating(self):
        self.engine.start()
        self._frames(3)
        self.engine.set_target(4)
        final = self.engine.state.final_angle

        self.engine.start()
        self.assertTrue(self.engine.state.decelerating)
        self.assertEqual(self.engine.state.final_angle, final)
        self.assertEqual(self.engine.target_index, 4)

    def test_second_target_is_ignored(self):
        self.engine.start()
        self.engine.set_target(1)
        final = self.engine.state.final_angle
        self.engine.set_target(6)
        self.assertEqual(self.engine.target_index, 1)
        self.assertEqual(self.engine.state.final_angle, final)
        self._run_until_idle()
        self.assertEqual(self.stops, [1])

    def test_invalid_target(self):
        self.engine.start()
        with self.assertRaises(ValueError):
            self.engine.set_target(10)
        with self.assertRaises(ValueError):
            self.engine.set_target(-1)
        self.assertFalse(self.engine.state.decelerating)

    def test_cancel_prevents_callbacks(self):
        self.engine.start()
        self._frames(5)
        self.engine.set_target(3)
        self._frames(5)

        self.engine.cancel()
        self.engine.cancel()
        self.assertFalse(self.engine.is_running)
        self.assertEqual(self.scheduler.pending, 0)

        self._frames(2000)
        self.assertEqual(self.stops, [])

    def test_stop_without_target_is_silent(self):
        self.engine.start()
        self._frames(5)
        self.engine.stop_without_target()
        self._run_until_idle()

        self.assertEqual(self.stops, [])
        self.assertEqual(self.engine.state.velocity, 0.0)
        self.assertEqual(self.scheduler.pending, 0)

    def test_restart_after_stop(self):
        self.engine.set_target(0)
        self._run_until_idle()
        self.engine.start()
        self.engine.set_target(5)
        self._run_until_idle()
        self.assertEqual(self.stops, [0, 5])

    def test_target_during_coast_respins(self):
        self.engine.start()
        self._frames(5)
        self.engine.stop_without_target()
        self._frames(5)
        self.engine.set_target(8)
        self.assertEqual(self.engine.state.velocity, self.engine.params.spin_speed)
        self._run_until_idle()
        self.assertEqual(self.stops, [8])

    def test_restart_during_coast_keeps_one_frame(self):
        self.engine.start()
        self._frames(2)
        self.engine.stop_without_target()
        self._frames(1)

        self.engine.start()
        self.assertEqual(self.scheduler.pending, 1)
        self.engine.start()
        self.assertEqual(self.scheduler.pending, 1)

        rendered = len(self.rendered)
        self._frames(1)
        self.assertEqual(len(self.rendered), rendered + 1)
        self.assertFalse(self.engine.state.aborting)

        self.engine.cancel()
        self.assertEqual(self.scheduler.pending, 0)
        self._frames(3)
        self.assertEqual(len(self.rendered), rendered + 1)

    def test_segment_count_locked_while_decelerating(self):
        self.engine.set_target(2)
        with self.assertRaises(RuntimeError):
            self.engine.set_segment_count(6)

    def test_segment_count_change_when_idle(self):
        self.engine.set_segment_count(6)
        self.assertEqual(self.engine.segment_count, 6)
        self.engine.set_target(5)
        self._run_until_idle()
        self.assertEqual(index_under_pointer(self.engine.state.angle, 6), 5)


class TestFrameScheduler(unittest.TestCase):
    """Test one-shot frame callbacks."""

    def test_callbacks_run_once_with_timestamp(self):
        scheduler = FrameScheduler()
        seen = []
        scheduler.request_frame(seen.append)
        self.assertEqual(scheduler.run_frame(16.0), 1)
        self.assertEqual(scheduler.run_frame(32.0), 0)
        self.assertEqual(seen, [16.0])

    def test_rearm_runs_on_next_frame(self):
        scheduler = FrameScheduler()
        seen = []

        def callback(ts):
            seen.append(ts)
            if len(seen) < 3:
                scheduler.request_frame(callback)

        scheduler.request_frame(callback)
        scheduler.run_frame(1.0)
        self.assertEqual(seen, [1.0])
        scheduler.run_frame(2.0)
        scheduler.run_frame(3.0)
        scheduler.run_frame(4.0)
        self.assertEqual(seen, [1.0, 2.0, 3.0])

    def test_cancel_frame(self):
        scheduler = FrameScheduler()
        seen = []
        handle = scheduler.request_frame(seen.append)
        scheduler.cancel_frame(handle)
        scheduler.cancel_frame(handle)
        scheduler.run_frame(1.0)
        self.assertEqual(seen, [])

    def test_out_of_order_frame_dropped(self):
        scheduler = FrameScheduler()
        seen = []
        scheduler.run_frame(100.0)
        scheduler.request_frame(seen.append)
        self.assertEqual(scheduler.run_frame(50.0), 0)
        self.assertEqual(scheduler.pending, 1)
        scheduler.run_frame(116.0)
        self.assertEqual(seen, [116.0])

    def test_callback_error_does_not_stop_frame(self):
        scheduler = FrameScheduler()
        seen = []

        def broken(ts):
            raise RuntimeError("boom")

        scheduler.request_frame(broken)
        scheduler.request_frame(seen.append)
        with self.assertLogs("fortune_wheel.animation.scheduler", level="ERROR"):
            scheduler.run_frame(1.0)
        self.assertEqual(seen, [1.0])


if __name__ == '__main__':
    unittest.main()
