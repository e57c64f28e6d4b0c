# arena_server/services/simulation_service.py
"""Fixed-rate world update and state broadcast."""

import asyncio
from typing import Dict, List, Optional

from loguru import logger

from arena_server.config.settings import (
    COLLISION_MARGIN,
    IDLE_TIMEOUT,
    RESPAWN_DELAY,
    TICK_INTERVAL,
    WORLD_HEIGHT,
    WORLD_WIDTH,
)
from arena_server.models.entities import Player
from arena_server.models.messages import Outbox
from arena_server.services.connection_service import ConnectionManager
from arena_server.services.game_service import GameService
from arena_server.services.interaction_service import InteractionService
from arena_server.utils.helpers import clamp_to_world, push_out

TICK_SECONDS = TICK_INTERVAL / 1000


class SimulationService:
    """Advances the world every TICK_INTERVAL ms and broadcasts a snapshot."""

    def __init__(
        self,
        game_service: GameService,
        interactions: InteractionService,
        connections: ConnectionManager,
        respawn_delay: float = RESPAWN_DELAY,
    ):
        self.game_service = game_service
        self.interactions = interactions
        self.connections = connections
        self.respawn_delay = respawn_delay
        self._respawn_tasks: Dict[str, asyncio.Task] = {}
        self._update_task: Optional[asyncio.Task] = None

    def start(self):
        """Start the background tick loop."""
        if not self._update_task:
            self._update_task = asyncio.create_task(self._update_loop())

    async def stop(self):
        tasks = list(self._respawn_tasks.values())
        if self._update_task:
            tasks.append(self._update_task)
            self._update_task = None
        self._respawn_tasks.clear()

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _update_loop(self):
        while True:
            await asyncio.sleep(TICK_SECONDS)
            try:
                await self.tick()
            except Exception:
                logger.exception("Simulation tick failed")

    async def tick(self) -> Outbox:
        """Run one simulation step and queue the resulting messages."""
        game = self.game_service
        async with game.lock:
            now = game.clock()
            outbox = Outbox()
            idle: List[str] = []

            for player in list(game.players.values()):
                if player.dead:
                    continue

                self._move(player)

                if player.winding_up:
                    result, victim_id = self.interactions.resolve(player, now)
                    outbox.extend(result)
                    if victim_id is not None:
                        self.schedule_respawn(victim_id)

                if now - player.last_activity > IDLE_TIMEOUT:
                    idle.append(player.id)

            outbox.broadcast(game.snapshot(now))
            self.connections.dispatch(outbox)

        for player_id in idle:
            self.connections.close(player_id)
        return outbox

    def _move(self, player: Player):
        if player.in_house is not None:
            return

        x = player.x + player.vx * TICK_SECONDS
        y = player.y + player.vy * TICK_SECONDS
        x, y = clamp_to_world(x, y, player.radius, WORLD_WIDTH, WORLD_HEIGHT)

        for shelter in self.game_service.shelters:
            if shelter.overlaps(x, y, player.radius):
                x, y = push_out(
                    x,
                    y,
                    shelter.center_x,
                    shelter.center_y,
                    shelter.size / 2 + player.radius + COLLISION_MARGIN,
                )

        player.x = x
        player.y = y

    # ------------------------------------------------------------------
    # Respawn scheduling
    # ------------------------------------------------------------------

    def schedule_respawn(self, player_id: str):
        self.cancel_respawn(player_id)
        task = asyncio.create_task(self._respawn_later(player_id))
        self._respawn_tasks[player_id] = task
        task.add_done_callback(lambda t: self._forget_respawn(player_id, t))

    def _forget_respawn(self, player_id: str, task: asyncio.Task):
        if self._respawn_tasks.get(player_id) is task:
            del self._respawn_tasks[player_id]

    def cancel_respawn(self, player_id: str):
        task = self._respawn_tasks.pop(player_id, None)
        if task is not None:
            task.cancel()

    def has_pending_respawn(self, player_id: str) -> bool:
        return player_id in self._respawn_tasks

    async def _respawn_later(self, player_id: str):
        await asyncio.sleep(self.respawn_delay)
        async with self.game_service.lock:
            outbox = self.interactions.respawn(player_id)
            self.connections.dispatch(outbox)
