# arena_server/models/entities.py
"""Game entity models and data classes."""

import math
from dataclasses import dataclass
from typing import Optional, Union

from arena_server.config.settings import (
    BASE_RADIUS,
    EAT_COOLDOWN,
    EAT_WINDUP,
    HOUSE_SIZE,
    RADIUS_PER_EAT,
)
from arena_server.models.messages import PlayerView, ShelterView


@dataclass(frozen=True)
class Free:
    """Alive and moving freely."""


@dataclass(frozen=True)
class Sheltered:
    """Alive inside a house; immune to capture and collision."""

    shelter_id: int


@dataclass(frozen=True)
class WindingUp:
    """Alive, free, and preparing to eat ``target_id``."""

    target_id: str
    started_at: float


@dataclass(frozen=True)
class Dead:
    """Eaten and waiting for respawn."""


PlayerState = Union[Free, Sheltered, WindingUp, Dead]

FREE = Free()
DEAD = Dead()


@dataclass
class Shelter:
    """Represents a house. ``x``/``y`` is the top-left corner."""

    id: int
    x: float
    y: float
    size: float = HOUSE_SIZE

    @property
    def center_x(self) -> float:
        return self.x + self.size / 2

    @property
    def center_y(self) -> float:
        return self.y + self.size / 2

    def overlaps(self, x: float, y: float, radius: float) -> bool:
        """Check the circle's bounding box against the house square."""
        return (
            x + radius > self.x
            and x - radius < self.x + self.size
            and y + radius > self.y
            and y - radius < self.y + self.size
        )

    def to_view(self) -> ShelterView:
        return ShelterView(id=self.id, x=self.x, y=self.y, size=self.size)


@dataclass
class Player:
    """Represents a player in the game."""

    id: str
    name: str
    color: str
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    eat_count: int = 0
    state: PlayerState = FREE
    last_eat_time: Optional[float] = None
    last_activity: float = 0.0

    @property
    def radius(self) -> float:
        return BASE_RADIUS + RADIUS_PER_EAT * self.eat_count

    @property
    def dead(self) -> bool:
        return isinstance(self.state, Dead)

    @property
    def in_house(self) -> Optional[int]:
        if isinstance(self.state, Sheltered):
            return self.state.shelter_id
        return None

    @property
    def winding_up(self) -> bool:
        return isinstance(self.state, WindingUp)

    @property
    def eat_target(self) -> Optional[str]:
        if isinstance(self.state, WindingUp):
            return self.state.target_id
        return None

    @property
    def eat_windup_start(self) -> Optional[float]:
        if isinstance(self.state, WindingUp):
            return self.state.started_at
        return None

    @property
    def catchable(self) -> bool:
        """Alive and outside any house."""
        return not self.dead and self.in_house is None

    def can_eat(self, now: float) -> bool:
        if not self.catchable:
            return False
        return self.last_eat_time is None or now - self.last_eat_time > EAT_COOLDOWN

    def cooldown_remaining(self, now: float) -> int:
        if self.last_eat_time is None:
            return 0
        remaining = EAT_COOLDOWN - (now - self.last_eat_time)
        return max(0, math.ceil(remaining))

    def windup_remaining(self, now: float) -> int:
        if not isinstance(self.state, WindingUp):
            return 0
        remaining = EAT_WINDUP - (now - self.state.started_at)
        return max(0, math.ceil(remaining))

    def stop(self):
        self.vx = 0.0
        self.vy = 0.0

    def to_view(self, now: float) -> PlayerView:
        return PlayerView(
            id=self.id,
            name=self.name,
            color=self.color,
            x=self.x,
            y=self.y,
            vx=self.vx,
            vy=self.vy,
            radius=self.radius,
            eatCount=self.eat_count,
            dead=self.dead,
            inHouse=self.in_house,
            cooldown=self.cooldown_remaining(now),
            windup=self.windup_remaining(now),
        )
