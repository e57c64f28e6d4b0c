# arena_server/services/websocket_service.py
"""WebSocket connection handling and intent dispatch."""

import uuid
from typing import Union

from fastapi import WebSocket, WebSocketDisconnect
from loguru import logger
from pydantic import ValidationError

from arena_server.models.messages import (
    ClientIntent,
    EatCancelIntent,
    EatStartIntent,
    EnterHouseIntent,
    JoinIntent,
    MoveIntent,
    Outbox,
    PingIntent,
    parse_intent,
)
from arena_server.services.connection_service import ConnectionManager
from arena_server.services.game_service import GameService
from arena_server.services.interaction_service import InteractionService
from arena_server.services.simulation_service import SimulationService


class WebSocketService:
    """Translates client frames into game state changes."""

    def __init__(
        self,
        game_service: GameService,
        interactions: InteractionService,
        connections: ConnectionManager,
        simulation: SimulationService,
    ):
        self.game_service = game_service
        self.interactions = interactions
        self.connections = connections
        self.simulation = simulation

    async def handle_connection(self, websocket: WebSocket):
        """Handle a new WebSocket connection until it closes."""
        await websocket.accept()
        player_id = str(uuid.uuid4())
        self.connections.connect(player_id, websocket)
        logger.info(f"Connection {player_id} accepted from {websocket.client}")

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                data = message.get("text") or message.get("bytes")
                if data:
                    await self.process_message(player_id, data)
        except WebSocketDisconnect:
            logger.info(f"Connection {player_id} closed by client")
        except Exception as e:
            logger.warning(f"WebSocket error for {player_id}: {e}")
        finally:
            await self.handle_disconnect(player_id)

    async def process_message(self, player_id: str, data: Union[str, bytes]):
        """Parse and apply one frame. Bad frames are logged and dropped."""
        try:
            intent = parse_intent(data)
        except ValidationError as e:
            logger.debug(f"Dropping malformed message from {player_id}: {e.errors()}")
            return

        try:
            async with self.game_service.lock:
                outbox = self._apply(player_id, intent)
                self.connections.dispatch(outbox)
        except Exception:
            logger.exception(f"Error processing {intent.type} from {player_id}")

    def _apply(self, player_id: str, intent: ClientIntent) -> Outbox:
        joined = self.game_service.get_player(player_id) is not None

        if isinstance(intent, JoinIntent):
            if joined:
                return Outbox()
            self.connections.mark_joined(player_id)
            return self.game_service.join(player_id, intent.name, intent.color)

        if not joined:
            logger.debug(f"Ignoring {intent.type} from {player_id} before join")
            return Outbox()

        if isinstance(intent, MoveIntent):
            self.game_service.set_velocity(player_id, intent.vx or 0.0, intent.vy or 0.0)
            return Outbox()
        elif isinstance(intent, EatStartIntent):
            return self.interactions.start(player_id)
        elif isinstance(intent, EatCancelIntent):
            return self.interactions.cancel(player_id)
        elif isinstance(intent, EnterHouseIntent):
            return self.game_service.toggle_shelter(player_id, intent.houseId)
        elif isinstance(intent, PingIntent):
            return self.game_service.touch(player_id)

        raise TypeError(f"Unhandled intent {intent!r}")

    async def handle_disconnect(self, player_id: str):
        """Drop the player and tell everyone else."""
        self.simulation.cancel_respawn(player_id)
        async with self.game_service.lock:
            outbox = self.game_service.leave(player_id)
            self.connections.dispatch(outbox)
        await self.connections.disconnect(player_id)
