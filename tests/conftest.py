"""Shared fixtures: a controllable clock and an empty, seeded world."""

import asyncio
import random

import pytest

from arena_server.models.entities import Shelter
from arena_server.services.connection_service import ConnectionManager
from arena_server.services.game_service import GameService
from arena_server.services.interaction_service import InteractionService
from arena_server.services.simulation_service import SimulationService


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeWebSocket:
    """Records frames sent by the server; enough of the Starlette API for sessions."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.closed = False
        self.fail = fail
        self.client = ("test", 0)

    async def send_text(self, frame: str):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(frame)

    async def close(self, code: int = 1000):
        self.closed = True


def run(coro):
    return asyncio.run(coro)


def place(game: GameService, player_id: str, x: float, y: float, name: str = None):
    """Join a player and put it at an exact position."""
    game.add_player(player_id, name or player_id, "#ffffff")
    player = game.get_player(player_id)
    player.x = x
    player.y = y
    return player


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def game(clock):
    return GameService(clock=clock, rng=random.Random(7), shelters=[])


@pytest.fixture
def sheltered_game(clock):
    """World with one house whose centre is (530, 530)."""
    return GameService(
        clock=clock, rng=random.Random(7), shelters=[Shelter(id=0, x=500, y=500)]
    )


@pytest.fixture
def interactions(game):
    return InteractionService(game)


@pytest.fixture
def connections():
    return ConnectionManager()


@pytest.fixture
def simulation(game, interactions, connections):
    return SimulationService(game, interactions, connections, respawn_delay=0.01)
