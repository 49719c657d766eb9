"""Turning a stored random value into a wheel index."""

from typing import Optional, Union

RandomValue = Union[int, bytes, str, None]


def value_to_bytes(value: RandomValue) -> bytes:
    """Big-endian byte representation of a random value.

    Integers use their minimal width (zero is empty), ``0x`` strings are
    hex-decoded, other strings are parsed as decimal integers. Anything
    that cannot be represented yields ``b""``.
    """
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return b""
        try:
            if text[:2].lower() == "0x":
                digits = text[2:]
                if len(digits) % 2:
                    digits = "0" + digits
                return bytes.fromhex(digits)
            value = int(text)
        except ValueError:
            return b""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return b""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def derive_index(value: RandomValue, segment_count: int) -> Optional[int]:
    """Leading byte of ``value`` reduced modulo ``segment_count``.

    Returns None when the value has no bytes to derive from.
    """
    if segment_count < 1:
        raise ValueError("segment_count must be at least 1")
    raw = value_to_bytes(value)
    if not raw:
        return None
    return raw[0] % segment_count


def _normalize(value: RandomValue) -> Optional[bytes]:
    raw = value_to_bytes(value)
    stripped = raw.lstrip(b"\x00")
    return stripped or None


def is_new_value(value: RandomValue, baseline: RandomValue) -> bool:
    """Whether a probed value is non-zero and differs from the baseline."""
    current = _normalize(value)
    if current is None:
        return False
    return current != _normalize(baseline)
