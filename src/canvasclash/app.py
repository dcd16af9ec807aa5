"""Main Litestar application for canvasclash.

This module provides the application factory and the ``canvasclash`` console
entry point, which serves the game WebSocket with uvicorn.
"""

from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import structlog
from litestar import Litestar, get

from canvasclash import __version__
from canvasclash.config import GameConfig
from canvasclash.core.logging import configure_logging
from canvasclash.realtime.handler import GameWebSocketHandler, create_game_router

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from canvasclash.game.protocols import WordBankProtocol
    from canvasclash.services.engine import GameEngine

logger = structlog.get_logger(__name__)


async def _sweep_loop(engine: GameEngine, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            removed = engine.sweep_inactive()
        except Exception:
            logger.exception("Room sweep failed")
            continue
        if removed:
            logger.info("Inactive rooms swept", count=len(removed), room_ids=removed)


def create_app(config: GameConfig | None = None, *, word_bank: WordBankProtocol | None = None) -> Litestar:
    """Create and configure the Litestar application.

    Args:
        config: Game configuration. Uses defaults if None.
        word_bank: Word source. Uses the built-in word lists if None.

    Returns:
        Configured Litestar application instance.
    """
    config = config or GameConfig()
    configure_logging(debug=config.debug, json_logs=config.json_logs)

    handler = GameWebSocketHandler(config=config, word_bank=word_bank)
    router, handler = create_game_router(path="/ws", handler=handler)

    @asynccontextmanager
    async def lifespan(app: Litestar) -> AsyncGenerator[None, None]:
        """Run the inactive room sweep for the lifetime of the app."""
        sweeper = asyncio.create_task(_sweep_loop(handler.engine, config.sweep_interval_seconds))
        logger.info("Game server started", version=__version__)
        try:
            yield
        finally:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
            handler.engine.shutdown()
            logger.info("Game server stopped")

    @get("/health", include_in_schema=False)
    async def health() -> dict[str, Any]:
        """Liveness check with basic engine counters."""
        return {
            "status": "healthy",
            "version": __version__,
            "rooms": handler.engine.registry.room_count(),
            "connections": handler.manager.connection_count(),
        }

    app = Litestar(
        route_handlers=[router, health],
        debug=config.debug,
        lifespan=[lifespan],
    )
    app.state.game_handler = handler
    return app


def main() -> None:
    """Run the game server with uvicorn."""
    import uvicorn

    host = os.environ.get("CANVASCLASH_HOST", "127.0.0.1")
    port = int(os.environ.get("CANVASCLASH_PORT", "8000"))
    uvicorn.run(create_app(GameConfig.from_env()), host=host, port=port)


if __name__ == "__main__":
    main()
