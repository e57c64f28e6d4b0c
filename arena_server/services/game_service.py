# arena_server/services/game_service.py
"""Core game state: houses, players and the intents that mutate them."""

import asyncio
import random
import time
from typing import Callable, Dict, List, Optional

from loguru import logger

from arena_server.config.settings import (
    HOUSE_COUNT,
    HOUSE_ENTER_DISTANCE,
    HOUSE_EXIT_OFFSET,
    HOUSE_MARGIN,
    SPAWN_SPREAD,
    WORLD_HEIGHT,
    WORLD_WIDTH,
)
from arena_server.models.entities import (
    FREE,
    Player,
    Shelter,
    Sheltered,
    WindingUp,
)
from arena_server.models.messages import (
    EatCancelledMessage,
    InitMessage,
    Outbox,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    PlayerMovedMessage,
    PlayerView,
    PongMessage,
    ShelterView,
    StateMessage,
)
from arena_server.utils.helpers import calculate_distance, epoch_millis


class GameService:
    """Owns the world and every player in it.

    Callers must hold ``lock`` around any mutation or iteration so the
    simulation tick and the connection handlers see a consistent view.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
        shelters: Optional[List[Shelter]] = None,
    ):
        self.clock = clock
        self.rng = rng or random.Random()
        self.players: Dict[str, Player] = {}
        self.shelters: List[Shelter] = []
        self.lock = asyncio.Lock()

        if shelters is None:
            self._initialize_world()
        else:
            self.shelters = list(shelters)

    def _initialize_world(self):
        """Place the houses. They never move afterwards."""
        for house_id in range(HOUSE_COUNT):
            self.shelters.append(
                Shelter(
                    id=house_id,
                    x=HOUSE_MARGIN + self.rng.random() * (WORLD_WIDTH - 2 * HOUSE_MARGIN),
                    y=HOUSE_MARGIN + self.rng.random() * (WORLD_HEIGHT - 2 * HOUSE_MARGIN),
                )
            )

    # ------------------------------------------------------------------
    # Store primitives
    # ------------------------------------------------------------------

    def add_player(self, player_id: str, name: str, color: str) -> Optional[Player]:
        """Create a player near the world centre unless the id is taken."""
        if player_id in self.players:
            return None

        player = Player(
            id=player_id,
            name=name,
            color=color,
            x=WORLD_WIDTH / 2 + (self.rng.random() - 0.5) * SPAWN_SPREAD,
            y=WORLD_HEIGHT / 2 + (self.rng.random() - 0.5) * SPAWN_SPREAD,
            last_activity=self.clock(),
        )
        self.players[player_id] = player
        return player

    def remove_player(self, player_id: str) -> Optional[Player]:
        return self.players.pop(player_id, None)

    def get_player(self, player_id: str) -> Optional[Player]:
        return self.players.get(player_id)

    def get_shelter(self, shelter_id: int) -> Optional[Shelter]:
        if 0 <= shelter_id < len(self.shelters):
            return self.shelters[shelter_id]
        return None

    def get_all_players(self, now: Optional[float] = None) -> List[PlayerView]:
        """Get public views of every player, dead ones included."""
        now = self.clock() if now is None else now
        return [player.to_view(now) for player in self.players.values()]

    def get_all_shelters(self) -> List[ShelterView]:
        return [shelter.to_view() for shelter in self.shelters]

    def snapshot(self, now: Optional[float] = None) -> StateMessage:
        now = self.clock() if now is None else now
        return StateMessage(
            players=self.get_all_players(now),
            houses=self.get_all_shelters(),
            timestamp=epoch_millis(now),
        )

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def join(self, player_id: str, name: str, color: str) -> Outbox:
        outbox = Outbox()
        player = self.add_player(player_id, name, color)
        if player is None:
            logger.debug(f"Ignoring repeated join from {player_id}")
            return outbox

        now = self.clock()
        outbox.send(
            player_id,
            InitMessage(
                playerId=player_id,
                houses=self.get_all_shelters(),
                players=self.get_all_players(now),
            ),
        )
        outbox.broadcast(
            PlayerJoinedMessage(player=player.to_view(now)), exclude=player_id
        )
        logger.info(f"Player {player_id} joined as {name!r}")
        return outbox

    def leave(self, player_id: str) -> Outbox:
        outbox = Outbox()
        if self.remove_player(player_id) is not None:
            outbox.broadcast(PlayerLeftMessage(playerId=player_id), exclude=player_id)
            logger.info(f"Player {player_id} left")
        return outbox

    def set_velocity(self, player_id: str, vx: float, vy: float) -> bool:
        """Apply a move intent. Dead or sheltered players are held still."""
        player = self.players.get(player_id)
        if player is None:
            return False

        if not player.catchable:
            player.stop()
            return False

        player.vx = vx
        player.vy = vy
        return True

    def toggle_shelter(self, player_id: str, shelter_id: int) -> Outbox:
        """Enter the house if outside it, leave it if inside."""
        outbox = Outbox()
        player = self.players.get(player_id)
        shelter = self.get_shelter(shelter_id)
        if player is None or shelter is None or player.dead:
            return outbox

        dist = calculate_distance(player.x, player.y, shelter.center_x, shelter.center_y)
        if dist >= HOUSE_ENTER_DISTANCE:
            logger.debug(f"Player {player_id} too far from house {shelter_id}")
            return outbox

        if player.in_house == shelter_id:
            player.state = FREE
            player.x = shelter.x + shelter.size + HOUSE_EXIT_OFFSET
            player.y = shelter.center_y
        elif player.in_house is None:
            if isinstance(player.state, WindingUp):
                outbox.send(
                    player.state.target_id, EatCancelledMessage(predatorId=player_id)
                )
            player.state = Sheltered(shelter_id)
            player.x = shelter.center_x
            player.y = shelter.center_y
            player.stop()

        outbox.broadcast(
            PlayerMovedMessage(
                playerId=player_id, x=player.x, y=player.y, inHouse=player.in_house
            )
        )
        return outbox

    def touch(self, player_id: str) -> Outbox:
        """Record a liveness ping."""
        outbox = Outbox()
        player = self.players.get(player_id)
        if player is not None:
            player.last_activity = self.clock()
            outbox.send(player_id, PongMessage())
        return outbox
