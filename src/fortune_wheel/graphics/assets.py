"""
Prize icon loading.

Icons are decoded with Pillow off the event loop and converted to RGBA
numpy arrays sized for the wheel. Each arrival is announced explicitly
(ASSET_READY on the event bus and any registered callbacks) so the view
can redraw; nothing polls for readiness.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

import numpy as np
from PIL import Image

from fortune_wheel.core.events import Event, EventBus, EventType
from fortune_wheel.graphics.primitives import Buffer

logger = logging.getLogger(__name__)

# Asset key -> file name under the assets directory
ASSET_FILES: Dict[str, str] = {
    "tshirt": "tshirt.png",
    "coffeemug": "coffee_mug.png",
    "waterbottle": "water_bottle.png",
    "totebag": "tote_bag.png",
    "stickers": "stickers.png",
    "betterlucknexttime": "better_luck_next_time.png",
}


def decode_icon(path: Path, size: int) -> Buffer:
    """Decode an image file into a ``size`` x ``size`` RGBA array.

    The image keeps its aspect ratio and is centered on a transparent
    square.
    """
    with Image.open(path) as img:
        img = img.convert("RGBA")
        img.thumbnail((size, size), Image.Resampling.LANCZOS)

        canvas = Image.new("RGBA", (size, size), (0, 0, 0, 0))
        canvas.paste(img, ((size - img.width) // 2, (size - img.height) // 2), img)

    return np.asarray(canvas, dtype=np.uint8).copy()


class AssetLibrary:
    """
    Loads and caches prize icons by asset key.

    Usage:
        library = AssetLibrary("assets", icon_size=46, event_bus=bus)
        await library.load_all(["tshirt", "stickers"])
        icon = library.get("tshirt")  # None until loaded
    """

    def __init__(
        self,
        base_path: str | Path,
        icon_size: int,
        event_bus: Optional[EventBus] = None,
        files: Optional[Dict[str, str]] = None,
    ) -> None:
        if icon_size < 1:
            raise ValueError("icon_size must be positive")
        self._base_path = Path(base_path)
        self._icon_size = icon_size
        self._event_bus = event_bus
        self._files = dict(ASSET_FILES if files is None else files)

        self._images: Dict[str, Buffer] = {}
        self._failed: Set[str] = set()
        self._loading: Dict[str, asyncio.Task] = {}
        self._callbacks: List[Callable[[str], None]] = []

    @property
    def images(self) -> Dict[str, Buffer]:
        """Live mapping of loaded icons, shared with the renderer."""
        return self._images

    @property
    def icon_size(self) -> int:
        return self._icon_size

    @property
    def failed(self) -> Set[str]:
        return set(self._failed)

    def get(self, key: str) -> Optional[Buffer]:
        return self._images.get(key)

    def is_loaded(self, key: str) -> bool:
        return key in self._images

    def on_ready(self, callback: Callable[[str], None]) -> None:
        """Register a callback invoked with the key of each loaded icon."""
        self._callbacks.append(callback)

    def path_for(self, key: str) -> Optional[Path]:
        name = self._files.get(key)
        return self._base_path / name if name else None

    async def load(self, key: str) -> Optional[Buffer]:
        """Load one icon. Returns None when it is unknown or failed to decode.

        Concurrent calls for the same key share one decode; failed keys are
        not retried.
        """
        if key in self._images:
            return self._images[key]
        if key in self._failed:
            return None

        task = self._loading.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(
                self._load(key), name=f"asset-{key}"
            )
            self._loading[key] = task
        return await asyncio.shield(task)

    async def load_all(self, keys: Iterable[str]) -> int:
        """Load several icons concurrently. Returns how many are available."""
        unique = list(dict.fromkeys(k for k in keys if k))
        results = await asyncio.gather(*(self.load(k) for k in unique))
        return sum(1 for r in results if r is not None)

    async def _load(self, key: str) -> Optional[Buffer]:
        try:
            path = self.path_for(key)
            if path is None:
                logger.warning(f"No file registered for asset '{key}'")
                self._failed.add(key)
                return None

            try:
                image = await asyncio.to_thread(decode_icon, path, self._icon_size)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to load asset '{key}' from {path}: {e}")
                self._failed.add(key)
                return None

            self._images[key] = image
            logger.debug(f"Asset loaded: {key} ({image.shape[1]}x{image.shape[0]})")
            self._notify(key)
            return image
        finally:
            self._loading.pop(key, None)

    def _notify(self, key: str) -> None:
        if self._event_bus is not None:
            self._event_bus.emit(Event(
                EventType.ASSET_READY,
                data={"key": key},
                source="assets",
            ))
        for callback in list(self._callbacks):
            try:
                callback(key)
            except Exception as e:
                logger.error(f"Error in asset callback: {e}")

    def cancel(self) -> None:
        """Abandon in-flight loads."""
        for task in list(self._loading.values()):
            task.cancel()
        self._loading.clear()
