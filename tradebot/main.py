"""tradebot — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
paper and live modes.
"""

import logging

from fastapi import FastAPI

from tradebot.api.routers import router

app = FastAPI(title="tradebot Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("tradebot")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


def warn_if_live(mode: str) -> bool:
    """Log a prominent warning when running in live mode.

    Returns ``True`` if *mode* is ``"live"``.
    """
    if mode == "live":
        logger.warning(
            "LIVE TRADING MODE — fees are charged and risk limits are enforced."
        )
        return True
    return False


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and start the engine (with or without the API)."""
    import argparse
    import asyncio
    import dataclasses
    import signal

    from tradebot.api.routers import configure_routers
    from tradebot.config import load_config
    from tradebot.engine import TradingEngine
    from tradebot.feed.coingecko_client import CoinGeckoClient

    parser = argparse.ArgumentParser(description="tradebot consensus trading engine")
    parser.add_argument(
        "--mode",
        choices=["paper", "live"],
        default="paper",
        help="Trading mode (default: paper)",
    )
    parser.add_argument(
        "--engine-only",
        action="store_true",
        help="Run the engine without the API server",
    )
    parser.add_argument(
        "--autostart",
        action="store_true",
        help="Start trading immediately instead of waiting for /control/start",
    )
    args = parser.parse_args()

    config = load_config()
    config = dataclasses.replace(config, paper_trading=args.mode == "paper")

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    warn_if_live(args.mode)

    engine = TradingEngine(config=config, feed=CoinGeckoClient(config))
    configure_routers(engine)
    if args.autostart:
        engine.start()

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal received — stopping gracefully.")
        engine.shutdown()

    signal.signal(signal.SIGINT, handle_shutdown)

    if args.engine_only:
        asyncio.run(engine.run())
    else:
        asyncio.run(_run_with_api(engine, config.api_port))


async def _run_with_api(engine, port: int) -> None:
    """Start the API server and the engine loops concurrently."""
    import asyncio

    import uvicorn

    uvi_config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level="info")
    server = uvicorn.Server(uvi_config)

    logger.info("API available at http://localhost:%d", port)
    results = await asyncio.gather(
        server.serve(),
        engine.run(),
        return_exceptions=True,
    )
    logger.info("tradebot stopped. Results: %s", results)


if __name__ == "__main__":
    _run_cli()
