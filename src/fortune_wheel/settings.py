"""
Application settings using Pydantic.

Settings are loaded from environment variables with .env file support.
Nested groups use ``__`` as the delimiter, e.g. ``WHEEL_CHAIN__RPC_URL``.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fortune_wheel.animation.spin import SpinParams


class SpinSettings(BaseSettings):
    """Wheel physics tuning."""

    spin_speed: float = Field(default=6.0, gt=0.0)  # rad/s while pending
    max_deceleration: float = Field(default=10.0, gt=0.0)  # rad/s^2
    epsilon: float = Field(default=0.002, gt=0.0)  # rad
    max_frame_dt: float = Field(default=0.032, gt=0.0)  # seconds
    min_turns: int = Field(default=3, ge=3)
    abort_deceleration: float = Field(default=4.0, gt=0.0)

    def to_params(self) -> SpinParams:
        return SpinParams(
            spin_speed=self.spin_speed,
            max_deceleration=self.max_deceleration,
            epsilon=self.epsilon,
            max_dt=self.max_frame_dt,
            min_turns=self.min_turns,
            abort_deceleration=self.abort_deceleration,
        )


class AcquisitionSettings(BaseSettings):
    """Outcome polling budget."""

    poll_interval: float = Field(default=1.0, gt=0.0)  # seconds
    max_attempts: int = Field(default=90, ge=1)
    callback_gas_limit: int = 700_000


class ChainSettings(BaseSettings):
    """JSON-RPC access to the randomness consumer contract."""

    rpc_url: str = ""
    contract_address: str = ""
    sender_address: str = ""  # randomness sender, quotes the request price
    from_address: str = ""  # unlocked account that submits the request

    # 4-byte selectors, hex without 0x
    randomness_selector: str = ""
    generate_selector: str = ""
    price_selector: str = ""

    request_timeout: float = 30.0
    receipt_timeout: float = 120.0
    receipt_poll_interval: float = 2.0


class DisplaySettings(BaseSettings):
    """Display-related settings."""

    size: int = Field(default=360, ge=64)
    fps: int = Field(default=60, ge=1)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="WHEEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Environment
    env: Literal["simulator", "rpc"] = "simulator"
    debug: bool = False

    assets_path: str = "assets"

    # Simulator settings
    simulator_window_width: int = 720
    simulator_window_height: int = 520
    simulator_confirm_latency: float = 2.0
    simulator_fulfil_latency: float = 4.0
    simulator_read_failure_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    simulator_seed: int | None = None

    # Nested settings
    spin: SpinSettings = Field(default_factory=SpinSettings)
    acquisition: AcquisitionSettings = Field(default_factory=AcquisitionSettings)
    chain: ChainSettings = Field(default_factory=ChainSettings)
    display: DisplaySettings = Field(default_factory=DisplaySettings)

    @property
    def is_simulator(self) -> bool:
        """Check if running against the in-memory chain."""
        return self.env == "simulator"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
