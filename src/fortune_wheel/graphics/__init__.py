"""Graphics module for the fortune wheel rendering pipeline."""

from fortune_wheel.graphics.assets import ASSET_FILES, AssetLibrary, decode_icon
from fortune_wheel.graphics.primitives import (
    draw_circle,
    draw_image,
    draw_line,
    fill_polygon,
    new_buffer,
)
from fortune_wheel.graphics.wheel import (
    SEGMENT_COLORS,
    WheelGeometry,
    WheelView,
    render_wheel,
    segment_color,
)

__all__ = [
    # Assets
    "ASSET_FILES",
    "AssetLibrary",
    "decode_icon",
    # Primitives
    "draw_circle",
    "draw_image",
    "draw_line",
    "fill_polygon",
    "new_buffer",
    # Wheel
    "SEGMENT_COLORS",
    "WheelGeometry",
    "WheelView",
    "render_wheel",
    "segment_color",
]
