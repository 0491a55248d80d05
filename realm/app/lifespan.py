"""
Application lifecycle management for the realm server.

Startup configures logging, creates the schema and starts the two
background workers; shutdown stops them before closing the database.
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..config import get_config
from ..database import close_db, get_session_maker, init_db
from ..services.action_queue_processor import ActionQueueProcessor
from ..services.world_tick_service import WorldTickService
from ..structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging

logger = get_logger("realm.lifespan")


async def start_workers(app: FastAPI) -> None:
    config = get_config()
    session_maker = get_session_maker()

    app.state.action_queue_processor = None
    app.state.world_tick_service = None

    if config.game.action_queue_enabled:
        processor = ActionQueueProcessor(session_maker, delay_seconds=config.game.action_queue_delay_seconds)
        await processor.start()
        app.state.action_queue_processor = processor

    if config.game.world_tick_enabled:
        ticker = WorldTickService(
            session_maker,
            poll_interval=config.game.world_tick_poll_seconds,
            tick_interval_seconds=config.game.world_tick_interval_seconds,
            energy_regen_minutes=config.game.energy_regen_minutes,
        )
        await ticker.start()
        app.state.world_tick_service = ticker

    logger.info(
        "Background workers initialized",
        action_queue=app.state.action_queue_processor is not None,
        world_tick=app.state.world_tick_service is not None,
    )


async def stop_workers(app: FastAPI) -> None:
    for name in ("world_tick_service", "action_queue_processor"):
        worker = getattr(app.state, name, None)
        if worker is not None:
            await worker.stop()
            setattr(app.state, name, None)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the realm, yield to the server, then shut everything down in reverse order."""
    config = get_config()
    setup_enhanced_logging(config.to_dict())
    logger.info("Starting realm server", environment=config.logging.environment)

    await init_db()
    await start_workers(app)
    logger.info("Realm server started")
    yield

    logger.info("Shutting down realm server")
    try:
        await stop_workers(app)
    except asyncio.CancelledError:
        logger.warning("Shutdown interrupted while stopping workers")
        raise
    finally:
        await close_db()
    logger.info("Realm server shutdown complete")
