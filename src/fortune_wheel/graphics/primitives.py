"""Basic drawing primitives for the wheel's frame buffer."""

from typing import Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

# Type aliases
Color = Tuple[int, int, int]
Point = Tuple[float, float]
Buffer = NDArray[np.uint8]
Mask = NDArray[np.bool_]


def new_buffer(width: int, height: int, color: Color = (0, 0, 0)) -> Buffer:
    """Create an RGB buffer of shape (height, width, 3)."""
    buffer = np.zeros((height, width, 3), dtype=np.uint8)
    if color != (0, 0, 0):
        buffer[:, :] = color
    return buffer


def blend(buffer: Buffer, mask: Mask, color: Color, alpha: float) -> None:
    """Blend ``color`` over the pixels selected by ``mask``."""
    if alpha <= 0.0 or not mask.any():
        return
    if alpha >= 1.0:
        buffer[mask] = color
        return
    src = np.asarray(color, dtype=np.float32)
    dst = buffer[mask].astype(np.float32)
    buffer[mask] = (src * alpha + dst * (1.0 - alpha)).astype(np.uint8)


def distance_grid(shape: Tuple[int, ...], cx: float, cy: float) -> NDArray[np.float32]:
    """Distance of every pixel center from (cx, cy)."""
    h, w = shape[:2]
    y_indices, x_indices = np.ogrid[:h, :w]
    return np.sqrt((x_indices - cx) ** 2 + (y_indices - cy) ** 2).astype(np.float32)


def angle_grid(shape: Tuple[int, ...], cx: float, cy: float) -> NDArray[np.float32]:
    """Screen angle of every pixel around (cx, cy), in [-pi, pi].

    Screen coordinates grow downwards, so positive angles turn clockwise.
    """
    h, w = shape[:2]
    y_indices, x_indices = np.ogrid[:h, :w]
    return np.arctan2(y_indices - cy, x_indices - cx).astype(np.float32)


def draw_circle(
    buffer: Buffer,
    cx: float,
    cy: float,
    radius: float,
    color: Color,
    filled: bool = True,
    thickness: float = 1.0,
    alpha: float = 1.0,
) -> None:
    """Draw a circle on the buffer.

    Args:
        buffer: Target numpy array (height, width, 3)
        cx: Center x coordinate
        cy: Center y coordinate
        radius: Circle radius in pixels
        color: RGB color tuple
        filled: If True, fill circle; if False, draw outline only
        thickness: Outline width (when filled=False)
        alpha: Opacity of the drawn pixels
    """
    dist = distance_grid(buffer.shape, cx, cy)
    if filled:
        mask = dist <= radius
    else:
        mask = np.abs(dist - radius) <= thickness / 2
    blend(buffer, mask, color, alpha)


def draw_line(
    buffer: Buffer,
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    color: Color,
    thickness: float = 1.0,
    alpha: float = 1.0,
) -> None:
    """Draw a line segment with round caps.

    Uses the distance from each pixel to the segment, so any thickness
    and sub-pixel endpoints work.
    """
    h, w = buffer.shape[:2]
    half = thickness / 2

    # Only look at the bounding box around the segment
    x_lo = max(0, int(np.floor(min(x1, x2) - half)))
    x_hi = min(w, int(np.ceil(max(x1, x2) + half)) + 1)
    y_lo = max(0, int(np.floor(min(y1, y2) - half)))
    y_hi = min(h, int(np.ceil(max(y1, y2) + half)) + 1)
    if x_lo >= x_hi or y_lo >= y_hi:
        return

    ys, xs = np.mgrid[y_lo:y_hi, x_lo:x_hi]
    dx, dy = x2 - x1, y2 - y1
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        t = np.zeros_like(xs, dtype=np.float32)
    else:
        t = np.clip(((xs - x1) * dx + (ys - y1) * dy) / length_sq, 0.0, 1.0)
    px = x1 + t * dx
    py = y1 + t * dy
    local = (xs - px) ** 2 + (ys - py) ** 2 <= half * half

    mask = np.zeros((h, w), dtype=bool)
    mask[y_lo:y_hi, x_lo:x_hi] = local
    blend(buffer, mask, color, alpha)


def polygon_mask(shape: Tuple[int, ...], points: Sequence[Point]) -> Mask:
    """Mask of the pixels inside a convex polygon."""
    h, w = shape[:2]
    ys, xs = np.mgrid[:h, :w]
    inside_pos = np.ones((h, w), dtype=bool)
    inside_neg = np.ones((h, w), dtype=bool)

    count = len(points)
    for i in range(count):
        ax, ay = points[i]
        bx, by = points[(i + 1) % count]
        cross = (bx - ax) * (ys - ay) - (by - ay) * (xs - ax)
        inside_pos &= cross >= 0
        inside_neg &= cross <= 0

    # Winding order is not known up front
    return inside_pos | inside_neg


def fill_polygon(
    buffer: Buffer,
    points: Sequence[Point],
    color: Color,
    alpha: float = 1.0,
) -> None:
    """Fill a convex polygon."""
    if len(points) < 3:
        return
    blend(buffer, polygon_mask(buffer.shape, points), color, alpha)


def draw_polygon(
    buffer: Buffer,
    points: Sequence[Point],
    color: Color,
    thickness: float = 1.0,
) -> None:
    """Stroke the outline of a polygon."""
    count = len(points)
    for i in range(count):
        ax, ay = points[i]
        bx, by = points[(i + 1) % count]
        draw_line(buffer, ax, ay, bx, by, color, thickness)


def wedge_index_grid(
    shape: Tuple[int, ...],
    cx: float,
    cy: float,
    rotation: float,
    count: int,
) -> NDArray[np.int64]:
    """Wedge index of every pixel for a disc split into ``count`` equal wedges.

    Wedge ``i`` spans screen angles ``[rotation + i*seg, rotation + (i+1)*seg)``.
    """
    seg = 2 * np.pi / count
    theta = angle_grid(shape, cx, cy).astype(np.float64)
    relative = np.mod(theta - rotation, 2 * np.pi)
    return np.minimum((relative // seg).astype(np.int64), count - 1)


def draw_image(
    buffer: Buffer,
    image: Buffer,
    x: int,
    y: int,
    alpha: float = 1.0,
) -> None:
    """Draw an image onto the buffer with optional alpha blending.

    Args:
        buffer: Target numpy array (height, width, 3)
        image: Source image array (height, width, 3 or 4)
        x: Top-left x coordinate
        y: Top-left y coordinate
        alpha: Global alpha multiplier (0.0 to 1.0)
    """
    buf_h, buf_w = buffer.shape[:2]
    img_h, img_w = image.shape[:2]

    # Calculate visible region
    src_x1 = max(0, -x)
    src_y1 = max(0, -y)
    src_x2 = min(img_w, buf_w - x)
    src_y2 = min(img_h, buf_h - y)

    if src_x2 <= src_x1 or src_y2 <= src_y1:
        return  # Nothing to draw

    dst_x1 = max(0, x)
    dst_y1 = max(0, y)
    dst_x2 = dst_x1 + (src_x2 - src_x1)
    dst_y2 = dst_y1 + (src_y2 - src_y1)

    src_region = image[src_y1:src_y2, src_x1:src_x2]

    if alpha >= 1.0 and image.shape[2] == 3:
        buffer[dst_y1:dst_y2, dst_x1:dst_x2] = src_region
        return

    dst_region = buffer[dst_y1:dst_y2, dst_x1:dst_x2].astype(np.float32)
    if image.shape[2] == 4:
        img_alpha = (src_region[:, :, 3:4].astype(np.float32) / 255.0) * alpha
        src_rgb = src_region[:, :, :3].astype(np.float32)
    else:
        img_alpha = alpha
        src_rgb = src_region.astype(np.float32)

    blended = src_rgb * img_alpha + dst_region * (1 - img_alpha)
    buffer[dst_y1:dst_y2, dst_x1:dst_x2] = blended.astype(np.uint8)


def hex_to_rgb(value: str) -> Color:
    """Convert ``#RRGGBB`` to an RGB tuple."""
    value = value.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Invalid hex color: {value!r}")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def rotate_point(x: float, y: float, angle: float, cx: float = 0.0, cy: float = 0.0) -> Point:
    """Rotate (x, y) around (cx, cy) by ``angle`` radians (screen convention)."""
    cos_a, sin_a = np.cos(angle), np.sin(angle)
    dx, dy = x - cx, y - cy
    return (float(cx + dx * cos_a - dy * sin_a), float(cy + dx * sin_a + dy * cos_a))
