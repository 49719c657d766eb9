"""
Wheel renderer.

render_wheel() draws the whole wheel into a numpy buffer from three inputs:
the rotation angle, the segment list and the loaded asset images. It reads
nothing else and changes nothing but the buffer, so frames can be skipped
or redrawn at will.

Wedge ``i`` spans screen angles ``[angle + i*seg, angle + (i+1)*seg)``; the
pointer is fixed at the top (screen angle -pi/2).
"""

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

import numpy as np

from fortune_wheel.core.segments import Segment, is_loss_label
from fortune_wheel.graphics.primitives import (
    Buffer,
    Color,
    distance_grid,
    draw_circle,
    draw_image,
    draw_line,
    draw_polygon,
    fill_polygon,
    hex_to_rgb,
    new_buffer,
    rotate_point,
    wedge_index_grid,
)

logger = logging.getLogger(__name__)

SEGMENT_COLORS: tuple[Color, ...] = tuple(
    hex_to_rgb(c) for c in ("#4338CA", "#6D28D9", "#0EA5E9", "#10B981", "#F59E0B")
)

BACKGROUND: Color = (12, 12, 20)
WHITE: Color = (255, 255, 255)
SLATE_900: Color = (17, 24, 39)
SLATE_800: Color = (31, 41, 55)
VIOLET_600: Color = (124, 58, 237)
INDIGO_500: Color = (99, 102, 241)


@dataclass(frozen=True)
class WheelGeometry:
    """Pixel measurements of a wheel drawn into a square of ``size``."""

    size: int

    @property
    def center(self) -> float:
        return self.size / 2

    @property
    def radius(self) -> float:
        return self.size / 2 * 0.92

    @property
    def inner_ring_radius(self) -> float:
        return self.radius * 0.78

    @property
    def icon_radius(self) -> float:
        """Distance of wedge icons from the center."""
        return self.radius * 0.63

    @property
    def icon_size(self) -> int:
        return max(1, int(min(self.size * 0.14, self.radius * 0.26)))

    @property
    def hub_radius(self) -> float:
        return max(12.0, self.size * 0.06)

    @property
    def pointer_size(self) -> float:
        return max(14.0, self.size * 0.04)

    @property
    def pointer_offset(self) -> float:
        return max(6.0, self.size * 0.015)


def segment_color(index: int) -> Color:
    """Palette color for wedge ``index``."""
    return SEGMENT_COLORS[index % len(SEGMENT_COLORS)]


def render_wheel(
    buffer: Buffer,
    angle: float,
    segments: Sequence[Segment],
    assets: Optional[Mapping[str, Buffer]] = None,
) -> Buffer:
    """Draw the wheel at ``angle`` into ``buffer`` (square, RGB).

    Args:
        buffer: Target numpy array (size, size, 3)
        angle: Wheel rotation in radians
        segments: Wedges in wheel order
        assets: Decoded RGBA icons keyed by asset key; missing keys are
            drawn as placeholders

    Returns:
        The same buffer, for chaining
    """
    if not segments:
        raise ValueError("A wheel needs at least one segment")
    assets = assets or {}

    geometry = WheelGeometry(min(buffer.shape[0], buffer.shape[1]))
    c = geometry.center
    radius = geometry.radius
    count = len(segments)
    seg = 2 * math.pi / count

    buffer[:, :] = BACKGROUND

    # Wedges
    dist = distance_grid(buffer.shape, c, c)
    disc = dist <= radius
    wedge = wedge_index_grid(buffer.shape, c, c, angle, count)
    palette = np.array([segment_color(i) for i in range(count)], dtype=np.uint8)
    buffer[disc] = palette[wedge[disc]]

    # Radial highlight for depth
    inner = geometry.inner_ring_radius * 0.4
    t = np.clip((dist - inner) / max(1e-6, radius - inner), 0.0, 1.0)
    highlight = (0.06 + (0.015 - 0.06) * t)[disc][:, None]
    region = buffer[disc].astype(np.float32)
    buffer[disc] = (255.0 * highlight + region * (1.0 - highlight)).astype(np.uint8)

    # Icons and placeholders
    for i, segment in enumerate(segments):
        mid = angle + i * seg + seg / 2
        _draw_segment_mark(buffer, geometry, segment, mid, assets)

    # Separators
    for i in range(count):
        end = angle + (i + 1) * seg
        draw_line(
            buffer, c, c,
            c + radius * math.cos(end), c + radius * math.sin(end),
            SLATE_900, thickness=2, alpha=0.7,
        )

    _draw_pointer(buffer, geometry)

    # Rim and accent ring
    draw_circle(buffer, c, c, radius + 6, SLATE_900, filled=False, thickness=3)
    draw_circle(buffer, c, c, radius + 10, INDIGO_500, filled=False, thickness=2, alpha=0.35)

    _draw_hub(buffer, geometry, dist)
    return buffer


def _draw_segment_mark(
    buffer: Buffer,
    geometry: WheelGeometry,
    segment: Segment,
    mid: float,
    assets: Mapping[str, Buffer],
) -> None:
    c = geometry.center
    x = c + geometry.icon_radius * math.cos(mid)
    y = c + geometry.icon_radius * math.sin(mid)
    size = geometry.icon_size

    image = assets.get(segment.asset_key) if segment.asset_key else None
    if image is not None:
        draw_circle(buffer, x, y, size * 0.65, WHITE, alpha=0.08)
        draw_circle(
            buffer, x, y, size * 0.65, WHITE,
            filled=False, thickness=max(1.0, size * 0.06), alpha=0.12,
        )
        img_h, img_w = image.shape[:2]
        draw_image(buffer, image, int(round(x - img_w / 2)), int(round(y - img_h / 2)))
        return

    if is_loss_label(segment.label.strip()):
        # Cross, turned so it reads radially like the icons
        half = size / 2
        turn = mid + math.pi / 2
        thickness = max(2.0, size * 0.12)
        a = rotate_point(x - half, y - half, turn, x, y)
        b = rotate_point(x + half, y + half, turn, x, y)
        draw_line(buffer, a[0], a[1], b[0], b[1], VIOLET_600, thickness, alpha=0.9)
        a = rotate_point(x + half, y - half, turn, x, y)
        b = rotate_point(x - half, y + half, turn, x, y)
        draw_line(buffer, a[0], a[1], b[0], b[1], VIOLET_600, thickness, alpha=0.9)
        return

    if segment.asset_key:
        # Prize icon still loading
        draw_circle(buffer, x, y, max(2.0, size * 0.12), WHITE, alpha=0.5)


def _draw_pointer(buffer: Buffer, geometry: WheelGeometry) -> None:
    c = geometry.center
    top = c - geometry.radius
    size = geometry.pointer_size
    offset = geometry.pointer_offset
    points = [
        (c, top + size - offset),
        (c + size * 0.6, top - size * 0.2 - offset),
        (c - size * 0.6, top - size * 0.2 - offset),
    ]
    fill_polygon(buffer, points, WHITE)
    draw_polygon(buffer, points, SLATE_900, thickness=2)


def _draw_hub(buffer: Buffer, geometry: WheelGeometry, dist: np.ndarray) -> None:
    c = geometry.center
    hub_r = geometry.hub_radius
    mask = dist <= hub_r
    t = np.clip((dist[mask] - hub_r * 0.2) / (hub_r * 0.8), 0.0, 1.0)[:, None]
    inner = np.asarray(SLATE_800, dtype=np.float32)
    outer = np.asarray(SLATE_900, dtype=np.float32)
    buffer[mask] = (inner + (outer - inner) * t).astype(np.uint8)
    draw_circle(buffer, c, c, hub_r, WHITE, filled=False, thickness=1.5, alpha=0.12)


class WheelView:
    """
    Owns the frame buffer and the inputs the renderer draws from.

    The spin engine calls render(angle) every frame; asset arrivals and
    segment changes redraw at the last angle.
    """

    def __init__(
        self,
        segments: Sequence[Segment],
        size: int = 360,
        assets: Optional[Mapping[str, Buffer]] = None,
    ) -> None:
        if not segments:
            raise ValueError("A wheel needs at least one segment")
        self._segments = list(segments)
        self._assets = assets if assets is not None else {}
        self._buffer = new_buffer(size, size, BACKGROUND)
        self._angle = 0.0
        self._frames = 0
        self.render(0.0)

    @property
    def buffer(self) -> Buffer:
        return self._buffer

    @property
    def geometry(self) -> WheelGeometry:
        return WheelGeometry(self._buffer.shape[0])

    @property
    def segments(self) -> list[Segment]:
        return list(self._segments)

    @property
    def assets(self) -> Mapping[str, Buffer]:
        return self._assets

    @property
    def angle(self) -> float:
        return self._angle

    @property
    def frames(self) -> int:
        return self._frames

    def set_segments(self, segments: Sequence[Segment]) -> None:
        if not segments:
            raise ValueError("A wheel needs at least one segment")
        self._segments = list(segments)
        self.redraw()

    def set_assets(self, assets: Mapping[str, Buffer]) -> None:
        self._assets = assets
        self.redraw()

    def render(self, angle: float) -> None:
        self._angle = angle
        render_wheel(self._buffer, angle, self._segments, self._assets)
        self._frames += 1

    def redraw(self) -> None:
        self.render(self._angle)
