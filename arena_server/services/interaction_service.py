# arena_server/services/interaction_service.py
"""Predator/prey capture: windup, resolution, cancellation and respawn."""

from typing import Optional, Tuple

from loguru import logger

from arena_server.config.settings import (
    EAT_DISTANCE,
    EAT_WINDUP,
    WORLD_HEIGHT,
    WORLD_WIDTH,
)
from arena_server.models.entities import DEAD, FREE, Player, WindingUp
from arena_server.models.messages import (
    EatAttemptMessage,
    EatCancelledMessage,
    EatenByMessage,
    EatFailedMessage,
    EatWindupStartedMessage,
    Outbox,
    PlayerEatenMessage,
    PlayerRespawnedMessage,
    RespawnMessage,
    YouAteMessage,
)
from arena_server.services.game_service import GameService
from arena_server.utils.helpers import calculate_distance


class InteractionService:
    """Runs the eat state machine against the players in a GameService.

    Every method expects the caller to hold ``game_service.lock``.
    """

    def __init__(self, game_service: GameService):
        self.game_service = game_service

    @property
    def clock(self):
        return self.game_service.clock

    def start(self, predator_id: str) -> Outbox:
        """Begin a windup against the nearest catchable player in reach."""
        outbox = Outbox()
        predator = self.game_service.get_player(predator_id)
        if predator is None:
            return outbox

        now = self.clock()
        if not predator.can_eat(now):
            outbox.send(predator_id, EatFailedMessage(reason="cooldown or dead"))
            return outbox
        if predator.winding_up:
            outbox.send(predator_id, EatFailedMessage(reason="already winding up"))
            return outbox

        target = self._find_target(predator)
        if target is None:
            outbox.send(predator_id, EatFailedMessage(reason="no target"))
            return outbox

        predator.state = WindingUp(target_id=target.id, started_at=now)
        outbox.send(
            target.id,
            EatAttemptMessage(
                predatorId=predator.id,
                predatorName=predator.name,
                duration=EAT_WINDUP,
            ),
        )
        outbox.send(
            predator_id,
            EatWindupStartedMessage(targetId=target.id, duration=EAT_WINDUP),
        )
        logger.debug(f"Player {predator_id} winding up on {target.id}")
        return outbox

    def _find_target(self, predator: Player) -> Optional[Player]:
        reach = EAT_DISTANCE + predator.radius
        closest = None
        closest_dist = float("inf")

        for other in self.game_service.players.values():
            if other.id == predator.id or not other.catchable:
                continue
            dist = calculate_distance(predator.x, predator.y, other.x, other.y)
            if dist < reach and dist < closest_dist:
                closest = other
                closest_dist = dist

        return closest

    def resolve(self, predator: Player, now: Optional[float] = None) -> Tuple[Outbox, Optional[str]]:
        """Finish an expired windup.

        Returns the outbox and, on a successful capture, the victim's id so
        the caller can schedule the respawn.
        """
        outbox = Outbox()
        state = predator.state
        if not isinstance(state, WindingUp):
            return outbox, None

        now = self.clock() if now is None else now
        if now - state.started_at < EAT_WINDUP:
            return outbox, None

        predator.state = FREE

        victim = self.game_service.get_player(state.target_id)
        if victim is None or not victim.catchable:
            return outbox, None

        dist = calculate_distance(predator.x, predator.y, victim.x, victim.y)
        if dist > EAT_DISTANCE + predator.radius * 0.5:
            logger.debug(f"Player {predator.id} missed {victim.id} at {dist:.1f}")
            return outbox, None

        victim.state = DEAD
        victim.stop()
        predator.eat_count += 1
        predator.last_eat_time = now

        outbox.send(
            victim.id,
            EatenByMessage(predatorId=predator.id, predatorName=predator.name),
        )
        outbox.send(
            predator.id,
            YouAteMessage(
                victimId=victim.id,
                victimName=victim.name,
                newRadius=predator.radius,
            ),
        )
        outbox.broadcast(PlayerEatenMessage(victimId=victim.id, predatorId=predator.id))
        logger.info(f"Player {predator.id} ate {victim.id}")
        return outbox, victim.id

    def cancel(self, predator_id: str) -> Outbox:
        outbox = Outbox()
        predator = self.game_service.get_player(predator_id)
        if predator is None or not isinstance(predator.state, WindingUp):
            return outbox

        outbox.send(
            predator.state.target_id, EatCancelledMessage(predatorId=predator_id)
        )
        predator.state = FREE
        return outbox

    def respawn(self, player_id: str) -> Outbox:
        """Bring a dead player back at a random spot, if still connected."""
        outbox = Outbox()
        player = self.game_service.get_player(player_id)
        if player is None or not player.dead:
            return outbox

        rng = self.game_service.rng
        player.state = FREE
        player.x = rng.random() * WORLD_WIDTH
        player.y = rng.random() * WORLD_HEIGHT

        outbox.send(player_id, RespawnMessage())
        outbox.broadcast(
            PlayerRespawnedMessage(playerId=player_id, x=player.x, y=player.y)
        )
        logger.info(f"Player {player_id} respawned")
        return outbox
