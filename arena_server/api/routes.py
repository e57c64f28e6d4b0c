# arena_server/api/routes.py
"""API routes for the game server."""

from fastapi import APIRouter, WebSocket
from fastapi.responses import PlainTextResponse

from arena_server.config.settings import get_game_config
from arena_server.services.websocket_service import WebSocketService


class GameAPI:
    """HTTP and WebSocket routes for the arena."""

    def __init__(self, websocket_service: WebSocketService):
        self.websocket_service = websocket_service
        self.game_service = websocket_service.game_service
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Set up all API routes."""

        @self.router.get("/", response_class=PlainTextResponse)
        async def root():
            """Health check."""
            return "Game server running"

        @self.router.get("/api/game/config")
        async def get_game_config_endpoint():
            """Get world size, eat timings and other constants."""
            return get_game_config()

        @self.router.get("/api/game/shelters")
        async def get_shelters():
            """Get all houses."""
            return {"houses": self.game_service.get_all_shelters()}

        @self.router.get("/api/game/players")
        async def get_players():
            """Get all current players."""
            async with self.game_service.lock:
                return {"players": self.game_service.get_all_players()}

        @self.router.get("/api/game/stats")
        async def get_game_stats():
            """Get game statistics."""
            async with self.game_service.lock:
                players = list(self.game_service.players.values())
                return {
                    "totalPlayers": len(players),
                    "deadPlayers": sum(1 for p in players if p.dead),
                    "shelteredPlayers": sum(1 for p in players if p.in_house is not None),
                    "totalShelters": len(self.game_service.shelters),
                    "connections": len(self.websocket_service.connections.sessions),
                }

        @self.router.websocket("/")
        async def websocket_root(websocket: WebSocket):
            await self.websocket_service.handle_connection(websocket)

        @self.router.websocket("/ws")
        async def websocket_endpoint(websocket: WebSocket):
            await self.websocket_service.handle_connection(websocket)
