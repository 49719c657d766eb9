"""Wheel segments: the ordered wedges and the prize each one stands for."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence


@dataclass(frozen=True)
class Segment:
    """One wedge of the wheel.

    The index of a segment is its position in the wheel's sequence.
    ``asset_key`` of None means the wedge is drawn as a generic "no prize".
    """

    label: str
    asset_key: Optional[str] = None


DEFAULT_LABELS = [
    "T-shirt",
    "Better luck next time",
    "Stickers",
    "Coffee Mug",
    "Better luck next time",
    "Water Bottle",
    "Stickers",
    "Tote Bag",
    "Better luck next time",
    "Stickers",
]

LABEL_TO_ASSET_KEY: Dict[str, str] = {
    "T-shirt": "tshirt",
    "Coffee Mug": "coffeemug",
    "Water Bottle": "waterbottle",
    "Tote Bag": "totebag",
    "Stickers": "stickers",
    "Better luck next time": "betterlucknexttime",
}

_LOSS_MARKERS = ("better", "try", "no prize")


def build_segments(
    labels: Sequence[str],
    label_to_asset: Optional[Dict[str, str]] = None,
) -> List[Segment]:
    """Build the wheel from labels, resolving each label's asset key.

    Raises:
        ValueError: if ``labels`` is empty
    """
    if not labels:
        raise ValueError("A wheel needs at least one segment")
    mapping = LABEL_TO_ASSET_KEY if label_to_asset is None else label_to_asset
    return [Segment(label=label, asset_key=mapping.get(label)) for label in labels]


def default_segments() -> List[Segment]:
    return build_segments(DEFAULT_LABELS)


def is_loss_label(label: Optional[str]) -> bool:
    """Whether a prize label means the player won nothing."""
    if not label:
        return False
    lowered = label.lower()
    return any(marker in lowered for marker in _LOSS_MARKERS)
