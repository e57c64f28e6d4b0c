# arena_server/main.py
"""FastAPI application wiring and entry point."""

import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from arena_server.api.routes import GameAPI
from arena_server.config.settings import ServerSettings
from arena_server.services.connection_service import ConnectionManager
from arena_server.services.game_service import GameService
from arena_server.services.interaction_service import InteractionService
from arena_server.services.simulation_service import SimulationService
from arena_server.services.websocket_service import WebSocketService


def configure_logging(level: str):
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def create_app(
    settings: Optional[ServerSettings] = None,
    game_service: Optional[GameService] = None,
) -> FastAPI:
    """Build the app with its own world, so tests can create isolated ones."""
    settings = settings or ServerSettings()
    game_service = game_service or GameService()
    connections = ConnectionManager(queue_size=settings.send_queue_size)
    interactions = InteractionService(game_service)
    simulation = SimulationService(game_service, interactions, connections)
    websocket_service = WebSocketService(
        game_service, interactions, connections, simulation
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Arena ready: {len(game_service.shelters)} houses, "
            f"listening on {settings.host}:{settings.port}"
        )
        simulation.start()
        yield
        logger.info("Stopping simulation...")
        await simulation.stop()

    app = FastAPI(title="Arena Server", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(GameAPI(websocket_service).router)

    app.state.settings = settings
    app.state.game_service = game_service
    app.state.simulation = simulation
    app.state.connections = connections
    return app


def main():
    import uvicorn

    settings = ServerSettings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
