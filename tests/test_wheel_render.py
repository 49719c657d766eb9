# tests/test_wheel_render.py
import math
import unittest

import numpy as np

from fortune_wheel.core.segments import Segment
from fortune_wheel.graphics.primitives import new_buffer
from fortune_wheel.graphics.wheel import (
    BACKGROUND,
    SEGMENT_COLORS,
    SLATE_800,
    WHITE,
    WheelGeometry,
    WheelView,
    render_wheel,
    segment_color,
)

SIZE = 200


def _closest_palette_index(pixel) -> int:
    distances = [np.abs(np.asarray(c, dtype=int) - pixel.astype(int)).sum() for c in SEGMENT_COLORS]
    return int(np.argmin(distances))


def _pixel_at(buffer, angle: float, distance: float):
    """Pixel at a screen angle and distance from the wheel center."""
    c = SIZE / 2
    x = int(round(c + distance * math.cos(angle)))
    y = int(round(c + distance * math.sin(angle)))
    return buffer[y, x]


class TestRenderWheel(unittest.TestCase):
    """Test the pure wheel renderer."""

    def setUp(self):
        self.segments = [Segment(label) for label in ("A", "B", "C", "D")]

    def _render(self, angle=0.0, segments=None, assets=None):
        buffer = new_buffer(SIZE, SIZE)
        return render_wheel(buffer, angle, segments or self.segments, assets)

    def test_same_inputs_same_frame(self):
        first = self._render(1.234)
        second = self._render(1.234)
        np.testing.assert_array_equal(first, second)

    def test_returns_target_buffer(self):
        buffer = new_buffer(SIZE, SIZE)
        self.assertIs(render_wheel(buffer, 0.0, self.segments), buffer)

    def test_wedges_follow_rotation(self):
        seg = 2 * math.pi / 4
        for angle in (0.0, 0.4, 2.5):
            buffer = self._render(angle)
            for i in range(4):
                with self.subTest(angle=angle, wedge=i):
                    mid = angle + i * seg + seg / 2
                    pixel = _pixel_at(buffer, mid, 45)
                    self.assertEqual(_closest_palette_index(pixel), i)

    def test_palette_cycles(self):
        self.assertEqual(segment_color(0), SEGMENT_COLORS[0])
        self.assertEqual(segment_color(len(SEGMENT_COLORS)), SEGMENT_COLORS[0])
        self.assertEqual(segment_color(7), SEGMENT_COLORS[2])

    def test_background_outside_wheel(self):
        buffer = self._render()
        self.assertEqual(tuple(buffer[0, 0]), BACKGROUND)
        self.assertEqual(tuple(buffer[SIZE - 1, SIZE - 1]), BACKGROUND)

    def test_pointer_at_top_regardless_of_angle(self):
        geometry = WheelGeometry(SIZE)
        x = int(geometry.center)
        y = int(geometry.center - geometry.radius - 2)
        for angle in (0.0, 1.0, 4.0):
            with self.subTest(angle=angle):
                self.assertEqual(tuple(self._render(angle)[y, x]), WHITE)

    def test_hub_covers_center(self):
        buffer = self._render(0.7)
        c = SIZE // 2
        self.assertEqual(tuple(buffer[c, c]), SLATE_800)
        np.testing.assert_array_equal(buffer[c, c], self._render(2.9)[c, c])

    def test_loss_segment_draws_cross(self):
        segments = [Segment("Better luck next time"), Segment("B")]
        buffer = self._render(0.0, segments)
        geometry = WheelGeometry(SIZE)
        mid = math.pi / 2  # wedge 0 spans [0, pi)
        pixel = _pixel_at(buffer, mid, geometry.icon_radius)
        # Cross center is violet over the wedge color
        self.assertGreater(int(pixel[2]), int(pixel[1]) + 60)
        plain = self._render(0.0, [Segment("A"), Segment("B")])
        self.assertFalse(np.array_equal(buffer, plain))

    def test_loaded_asset_drawn_at_icon_position(self):
        geometry = WheelGeometry(SIZE)
        size = geometry.icon_size
        icon = np.zeros((size, size, 4), dtype=np.uint8)
        icon[:, :] = (0, 255, 0, 255)

        segments = [Segment("T-shirt", "tshirt"), Segment("B")]
        buffer = self._render(0.0, segments, {"tshirt": icon})
        pixel = _pixel_at(buffer, math.pi / 2, geometry.icon_radius)
        self.assertEqual(tuple(pixel), (0, 255, 0))

    def test_missing_asset_draws_placeholder(self):
        geometry = WheelGeometry(SIZE)
        segments = [Segment("T-shirt", "tshirt"), Segment("B")]
        buffer = self._render(0.0, segments, {})
        pixel = _pixel_at(buffer, math.pi / 2, geometry.icon_radius)
        plain = self._render(0.0, [Segment("T-shirt"), Segment("B")])
        # Half-white dot over the wedge color
        self.assertGreater(int(pixel.sum()), int(_pixel_at(plain, math.pi / 2, geometry.icon_radius).sum()))

    def test_empty_segments_rejected(self):
        with self.assertRaises(ValueError):
            render_wheel(new_buffer(SIZE, SIZE), 0.0, [])


class TestWheelGeometry(unittest.TestCase):

    def test_proportions(self):
        geometry = WheelGeometry(400)
        self.assertAlmostEqual(geometry.radius, 184.0)
        self.assertAlmostEqual(geometry.inner_ring_radius, 184.0 * 0.78)
        self.assertAlmostEqual(geometry.icon_radius, 184.0 * 0.63)
        self.assertEqual(geometry.icon_size, 47)
        self.assertEqual(geometry.hub_radius, 24.0)
        self.assertEqual(geometry.pointer_size, 16.0)
        self.assertEqual(geometry.pointer_offset, 6.0)

    def test_small_wheel_minimums(self):
        geometry = WheelGeometry(64)
        self.assertEqual(geometry.hub_radius, 12.0)
        self.assertEqual(geometry.pointer_size, 14.0)
        self.assertEqual(geometry.pointer_offset, 6.0)


class TestWheelView(unittest.TestCase):
    """Test the view that owns the frame buffer."""

    def setUp(self):
        self.view = WheelView([Segment("A"), Segment("B"), Segment("C")], size=96)

    def test_renders_on_creation(self):
        self.assertEqual(self.view.frames, 1)
        self.assertEqual(self.view.buffer.shape, (96, 96, 3))
        expected = render_wheel(new_buffer(96, 96), 0.0, self.view.segments)
        np.testing.assert_array_equal(self.view.buffer, expected)

    def test_render_tracks_angle(self):
        self.view.render(1.5)
        self.assertEqual(self.view.angle, 1.5)
        self.assertEqual(self.view.frames, 2)

    def test_redraw_keeps_angle(self):
        self.view.render(0.8)
        before = self.view.buffer.copy()
        self.view.redraw()
        self.assertEqual(self.view.angle, 0.8)
        np.testing.assert_array_equal(self.view.buffer, before)

    def test_set_assets_redraws(self):
        size = self.view.geometry.icon_size
        icon = np.full((size, size, 4), 255, dtype=np.uint8)
        self.view.set_segments([Segment("Mug", "coffeemug"), Segment("B")])
        before = self.view.buffer.copy()
        self.view.set_assets({"coffeemug": icon})
        self.assertFalse(np.array_equal(self.view.buffer, before))

    def test_segments_are_copied(self):
        segments = self.view.segments
        segments.append(Segment("X"))
        self.assertEqual(len(self.view.segments), 3)

    def test_empty_segments_rejected(self):
        with self.assertRaises(ValueError):
            self.view.set_segments([])
        with self.assertRaises(ValueError):
            WheelView([])


if __name__ == '__main__':
    unittest.main()
