"""
Main entry point for the fortune wheel.

Selects the randomness source from WHEEL_ENV (the in-memory simulated
chain or a JSON-RPC node) and runs the desktop window.
"""

import asyncio
import logging
import sys
from typing import Optional

from fortune_wheel.animation.scheduler import FrameScheduler
from fortune_wheel.animation.spin import SpinAnimationEngine
from fortune_wheel.app import WheelApp
from fortune_wheel.core.events import EventBus
from fortune_wheel.core.segments import default_segments
from fortune_wheel.graphics.assets import AssetLibrary
from fortune_wheel.graphics.wheel import WheelGeometry, WheelView
from fortune_wheel.outcome.controller import OutcomeAcquisitionController
from fortune_wheel.outcome.provider import RandomnessSource, WalletSession
from fortune_wheel.settings import Settings, get_settings


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )
    # aiohttp is noisy at debug level
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def build_source(settings: Settings) -> tuple[RandomnessSource, WalletSession]:
    """Create the randomness source and wallet for the configured environment."""
    if settings.is_simulator:
        from fortune_wheel.simulator.mock_chain import SimulatedRandomnessSource, SimulatedWallet

        source = SimulatedRandomnessSource(
            confirm_latency=settings.simulator_confirm_latency,
            fulfil_latency=settings.simulator_fulfil_latency,
            read_failure_rate=settings.simulator_read_failure_rate,
            seed=settings.simulator_seed,
        )
        return source, SimulatedWallet()

    from fortune_wheel.outcome.rpc import JsonRpcRandomnessSource, RpcWallet

    return JsonRpcRandomnessSource(settings.chain), RpcWallet(settings.chain.from_address)


def build_app(
    settings: Settings,
    source: RandomnessSource,
    wallet: Optional[WalletSession] = None,
    event_bus: Optional[EventBus] = None,
) -> tuple[WheelApp, FrameScheduler, AssetLibrary]:
    """Wire the wheel's components together."""
    event_bus = event_bus or EventBus()
    segments = default_segments()

    scheduler = FrameScheduler()
    assets = AssetLibrary(
        settings.assets_path,
        icon_size=WheelGeometry(settings.display.size).icon_size,
        event_bus=event_bus,
    )
    view = WheelView(segments, size=settings.display.size, assets=assets.images)
    engine = SpinAnimationEngine(
        segment_count=len(segments),
        scheduler=scheduler,
        params=settings.spin.to_params(),
        render=view.render,
    )
    controller = OutcomeAcquisitionController(
        source,
        segment_count=len(segments),
        wallet=wallet,
        poll_interval=settings.acquisition.poll_interval,
        max_attempts=settings.acquisition.max_attempts,
        callback_gas_limit=settings.acquisition.callback_gas_limit,
    )
    app = WheelApp(controller, engine, view, event_bus=event_bus, wallet=wallet)
    return app, scheduler, assets


async def run(settings: Settings) -> None:
    """Run the desktop window until it is closed."""
    from fortune_wheel.simulator.mock_chain import SimulatedRandomnessSource, SimulatedWallet
    from fortune_wheel.simulator.window import SimulatorWindow, WindowConfig

    logger = logging.getLogger(__name__)

    source, wallet = build_source(settings)
    app, scheduler, assets = build_app(settings, source, wallet)

    asset_task = asyncio.get_running_loop().create_task(
        assets.load_all(s.asset_key for s in app.segments if s.asset_key),
        name="asset-preload",
    )

    config = WindowConfig(
        width=settings.simulator_window_width,
        height=settings.simulator_window_height,
        fps=settings.display.fps,
    )
    window = SimulatorWindow(
        app,
        scheduler,
        config=config,
        source=source if isinstance(source, SimulatedRandomnessSource) else None,
        wallet=wallet if isinstance(wallet, SimulatedWallet) else None,
    )

    try:
        await window.run()
    finally:
        if not asset_task.done():
            assets.cancel()
            asset_task.cancel()
        await app.close()
        await source.close()
        logger.info(f"Closed after {app.view.frames} frames")


def main() -> None:
    """Main entry point."""
    from dotenv import load_dotenv

    # Load environment variables
    load_dotenv()

    settings = get_settings()
    setup_logging(settings.debug)

    logger = logging.getLogger(__name__)
    logger.info("Fortune wheel starting...")
    logger.info(f"Running in {settings.env} mode")

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)

    logger.info("Fortune wheel stopped")


if __name__ == "__main__":
    main()
