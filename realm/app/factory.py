"""
FastAPI application factory for the realm server.

This module handles app creation, middleware configuration and router
registration.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..api.action_queue import action_queue_router
from ..api.activities import activities_router
from ..api.bank import bank_router
from ..api.combat import combat_router, infirmary_router
from ..api.house import garden_router, house_router, servants_router
from ..api.market import market_router
from ..api.player import player_router
from ..api.religion import religion_router
from ..api.roles import petitions_router, roles_router
from ..api.tavern import minigames_router, tavern_router
from ..api.taxes import taxes_router
from ..api.world import world_router
from ..config import get_config
from ..middleware.correlation_middleware import CorrelationMiddleware
from ..middleware.error_handling import register_error_handlers
from ..structured_logging.enhanced_logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)

ROUTERS = (
    player_router,
    world_router,
    activities_router,
    action_queue_router,
    bank_router,
    combat_router,
    infirmary_router,
    roles_router,
    petitions_router,
    religion_router,
    servants_router,
    garden_router,
    house_router,
    tavern_router,
    minigames_router,
    market_router,
    taxes_router,
)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured application; workers start with its lifespan
    """
    config = get_config()
    app = FastAPI(
        title="Realm API",
        description="Persistent-world role-playing game server",
        version=__version__,
        lifespan=lifespan,
    )

    cors = config.cors
    logger.info(
        "CORS configuration",
        allow_origins=cors.allow_origins,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
        max_age=cors.max_age,
    )
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.allow_origins,
        allow_credentials=cors.allow_credentials,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
        max_age=cors.max_age,
    )

    register_error_handlers(app, include_details=config.logging.environment != "production")

    for router in ROUTERS:
        app.include_router(router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app
