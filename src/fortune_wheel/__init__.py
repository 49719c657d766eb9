"""Fortune wheel whose resting wedge is decided by on-chain randomness."""

__version__ = "0.1.0"
