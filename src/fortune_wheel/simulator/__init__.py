"""Desktop simulator: pygame window and an in-memory chain."""

from .mock_chain import SimulatedRandomnessSource, SimulatedWallet

__all__ = ["SimulatedRandomnessSource", "SimulatedWallet"]
