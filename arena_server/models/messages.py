# arena_server/models/messages.py
"""Wire messages exchanged with clients.

Inbound frames are parsed into one intent model per ``type`` tag; unknown
tags fail validation. Outbound messages are models as well and are queued
through an :class:`Outbox` so game logic never writes to sockets directly.
"""

from dataclasses import dataclass, field
from typing import Annotated, Iterator, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


# ---------------------------------------------------------------------------
# Inbound intents
# ---------------------------------------------------------------------------


class JoinIntent(BaseModel):
    type: Literal["join"]
    name: str = "Player"
    color: str = "#999999"


class MoveIntent(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    type: Literal["move"]
    vx: Optional[float] = 0.0
    vy: Optional[float] = 0.0


class EatStartIntent(BaseModel):
    type: Literal["eat_start"]


class EatCancelIntent(BaseModel):
    type: Literal["eat_cancel"]


class EnterHouseIntent(BaseModel):
    type: Literal["enter_house"]
    houseId: int


class PingIntent(BaseModel):
    type: Literal["ping"]


ClientIntent = Annotated[
    Union[
        JoinIntent,
        MoveIntent,
        EatStartIntent,
        EatCancelIntent,
        EnterHouseIntent,
        PingIntent,
    ],
    Field(discriminator="type"),
]

_intent_adapter = TypeAdapter(ClientIntent)


def parse_intent(raw: Union[str, bytes]) -> ClientIntent:
    """Parse one text frame. Raises ``pydantic.ValidationError`` on bad input."""
    return _intent_adapter.validate_json(raw)


# ---------------------------------------------------------------------------
# Outbound messages
# ---------------------------------------------------------------------------


class ShelterView(BaseModel):
    id: int
    x: float
    y: float
    size: float


class PlayerView(BaseModel):
    id: str
    name: str
    color: str
    x: float
    y: float
    vx: float
    vy: float
    radius: float
    eatCount: int
    dead: bool
    inHouse: Optional[int]
    cooldown: int
    windup: int


class InitMessage(BaseModel):
    type: Literal["init"] = "init"
    playerId: str
    houses: List[ShelterView]
    players: List[PlayerView]


class PlayerJoinedMessage(BaseModel):
    type: Literal["player_joined"] = "player_joined"
    player: PlayerView


class PlayerLeftMessage(BaseModel):
    type: Literal["player_left"] = "player_left"
    playerId: str


class StateMessage(BaseModel):
    type: Literal["state"] = "state"
    players: List[PlayerView]
    houses: List[ShelterView]
    timestamp: int


class EatAttemptMessage(BaseModel):
    type: Literal["eat_attempt"] = "eat_attempt"
    predatorId: str
    predatorName: str
    duration: float


class EatWindupStartedMessage(BaseModel):
    type: Literal["eat_windup_started"] = "eat_windup_started"
    targetId: str
    duration: float


class EatFailedMessage(BaseModel):
    type: Literal["eat_failed"] = "eat_failed"
    reason: str


class EatCancelledMessage(BaseModel):
    type: Literal["eat_cancelled"] = "eat_cancelled"
    predatorId: str


class YouAteMessage(BaseModel):
    type: Literal["you_ate"] = "you_ate"
    victimId: str
    victimName: str
    newRadius: float


class EatenByMessage(BaseModel):
    type: Literal["eaten_by"] = "eaten_by"
    predatorId: str
    predatorName: str


class PlayerEatenMessage(BaseModel):
    type: Literal["player_eaten"] = "player_eaten"
    victimId: str
    predatorId: str


class RespawnMessage(BaseModel):
    type: Literal["respawn"] = "respawn"


class PlayerRespawnedMessage(BaseModel):
    type: Literal["player_respawned"] = "player_respawned"
    playerId: str
    x: float
    y: float


class PlayerMovedMessage(BaseModel):
    type: Literal["player_moved"] = "player_moved"
    playerId: str
    x: float
    y: float
    inHouse: Optional[int]


class PongMessage(BaseModel):
    type: Literal["pong"] = "pong"


ServerMessage = Union[
    InitMessage,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    StateMessage,
    EatAttemptMessage,
    EatWindupStartedMessage,
    EatFailedMessage,
    EatCancelledMessage,
    YouAteMessage,
    EatenByMessage,
    PlayerEatenMessage,
    RespawnMessage,
    PlayerRespawnedMessage,
    PlayerMovedMessage,
    PongMessage,
]


@dataclass
class Envelope:
    """A message plus its addressing. ``recipient=None`` means broadcast."""

    message: ServerMessage
    recipient: Optional[str] = None
    exclude: Optional[str] = None


@dataclass
class Outbox:
    """Outbound messages produced by one state change, in emission order."""

    envelopes: List[Envelope] = field(default_factory=list)

    def send(self, player_id: str, message: ServerMessage):
        self.envelopes.append(Envelope(message, recipient=player_id))

    def broadcast(self, message: ServerMessage, exclude: Optional[str] = None):
        self.envelopes.append(Envelope(message, exclude=exclude))

    def extend(self, other: "Outbox"):
        self.envelopes.extend(other.envelopes)

    def of_type(self, message_type: str) -> List[Envelope]:
        return [e for e in self.envelopes if e.message.type == message_type]

    def __iter__(self) -> Iterator[Envelope]:
        return iter(self.envelopes)

    def __len__(self) -> int:
        return len(self.envelopes)
