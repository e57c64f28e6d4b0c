"""Tests for one simulation tick: movement, collision, eat resolution, idle."""

import asyncio
import json

import pytest

from arena_server.config.settings import EAT_WINDUP, IDLE_TIMEOUT, WORLD_WIDTH
from arena_server.models.entities import DEAD
from arena_server.services.connection_service import ConnectionManager
from arena_server.services.interaction_service import InteractionService
from arena_server.services.simulation_service import SimulationService

from conftest import FakeWebSocket, place, run


@pytest.fixture
def sheltered_simulation(sheltered_game):
    return SimulationService(
        sheltered_game, InteractionService(sheltered_game), ConnectionManager()
    )


class TestMovement:
    def test_integrates_velocity(self, game, simulation):
        p = place(game, "p1", 100, 100)
        p.vx, p.vy = 100.0, -40.0
        run(simulation.tick())
        assert p.x == pytest.approx(105.0)
        assert p.y == pytest.approx(98.0)

    def test_clamps_to_world(self, game, simulation):
        p = place(game, "p1", WORLD_WIDTH - 21, 25)
        p.vx, p.vy = 1000.0, -1000.0
        run(simulation.tick())
        assert (p.x, p.y) == (WORLD_WIDTH - 20, 20)

    def test_dead_players_do_not_move(self, game, simulation):
        p = place(game, "p1", 100, 100)
        p.vx = 100.0
        p.state = DEAD
        run(simulation.tick())
        assert p.x == 100

    def test_sheltered_player_stays_put(self, sheltered_game, sheltered_simulation):
        p = place(sheltered_game, "p1", 530, 530)
        sheltered_game.toggle_shelter("p1", 0)
        sheltered_game.set_velocity("p1", 100, 0)
        run(sheltered_simulation.tick())
        assert (p.x, p.y) == (530, 530)
        assert (p.vx, p.vy) == (0, 0)


class TestShelterCollision:
    def test_pushes_out_radially(self, sheltered_game, sheltered_simulation):
        p = place(sheltered_game, "p1", 490, 530)
        run(sheltered_simulation.tick())
        # half size 30 + radius 20 + margin 2, straight left of centre
        assert p.x == pytest.approx(530 - 52)
        assert p.y == pytest.approx(530)

    def test_no_push_when_clear(self, sheltered_game, sheltered_simulation):
        p = place(sheltered_game, "p1", 470, 530)
        run(sheltered_simulation.tick())
        assert (p.x, p.y) == (470, 530)

    def test_exact_centre_is_not_pushed(self, sheltered_game, sheltered_simulation):
        p = place(sheltered_game, "p1", 530, 530)
        run(sheltered_simulation.tick())
        assert (p.x, p.y) == (530, 530)
        assert p.in_house is None


class TestEatResolution:
    def test_capture_after_windup(self, game, interactions, simulation, clock):
        pred = place(game, "pred", 100, 100)
        prey = place(game, "prey", 110, 100)
        interactions.start("pred")

        run(simulation.tick())
        assert not prey.dead

        clock.advance(EAT_WINDUP)

        async def scenario():
            outbox = await simulation.tick()
            assert simulation.has_pending_respawn("prey")
            return outbox

        outbox = run(scenario())
        assert prey.dead
        assert pred.eat_count == 1
        assert pred.radius == 23
        assert [e.message.type for e in outbox][-1] == "state"
        assert len(outbox.of_type("player_eaten")) == 1

    def test_escape_during_windup(self, game, interactions, simulation, clock):
        pred = place(game, "pred", 100, 100)
        prey = place(game, "prey", 110, 100)
        interactions.start("pred")
        prey.x = 310
        clock.advance(EAT_WINDUP)

        outbox = run(simulation.tick())

        assert not prey.dead
        assert pred.eat_target is None
        assert [e.message.type for e in outbox] == ["state"]

    def test_respawn_fires_after_delay(self, game, interactions, simulation, clock, connections):
        ws = FakeWebSocket()

        async def scenario():
            connections.connect("prey", ws)
            connections.mark_joined("prey")
            place(game, "pred", 100, 100)
            prey = place(game, "prey", 110, 100)
            interactions.start("pred")
            clock.advance(EAT_WINDUP)
            await simulation.tick()
            assert prey.dead
            await asyncio.sleep(0.05)
            await connections.flush()
            await connections.disconnect("prey")
            return prey

        prey = run(scenario())
        assert not prey.dead
        types = [json.loads(frame)["type"] for frame in ws.sent]
        assert types.count("respawn") == 1
        assert types.count("player_respawned") == 1

    def test_respawn_skipped_after_disconnect(self, game, interactions, simulation, clock):
        async def scenario():
            place(game, "pred", 100, 100)
            place(game, "prey", 110, 100)
            interactions.start("pred")
            clock.advance(EAT_WINDUP)
            await simulation.tick()
            game.leave("prey")
            await asyncio.sleep(0.05)

        run(scenario())
        assert game.get_player("prey") is None


class TestIdleAndBroadcast:
    def test_idle_player_is_closed(self, game, simulation, connections, clock):
        ws = FakeWebSocket()

        async def scenario():
            connections.connect("p1", ws)
            place(game, "p1", 100, 100)
            clock.advance(IDLE_TIMEOUT + 1)
            await simulation.tick()
            await simulation.tick()
            await asyncio.sleep(0)
            await connections.disconnect("p1")

        run(scenario())
        assert ws.closed

    def test_active_player_stays(self, game, simulation, connections, clock):
        ws = FakeWebSocket()

        async def scenario():
            connections.connect("p1", ws)
            place(game, "p1", 100, 100)
            clock.advance(IDLE_TIMEOUT - 1)
            game.touch("p1")
            clock.advance(IDLE_TIMEOUT - 1)
            await simulation.tick()
            await asyncio.sleep(0)
            await connections.disconnect("p1")

        run(scenario())
        assert not ws.closed

    def test_state_reaches_every_joined_session(self, game, simulation, connections):
        good, bad, lurker = FakeWebSocket(), FakeWebSocket(fail=True), FakeWebSocket()

        async def scenario():
            for pid, ws in (("a", good), ("b", bad), ("c", lurker)):
                connections.connect(pid, ws)
            connections.mark_joined("a")
            connections.mark_joined("b")
            place(game, "a", 100, 100)
            place(game, "b", 300, 300)
            await simulation.tick()
            await simulation.tick()
            await connections.flush()
            for pid in ("a", "b", "c"):
                await connections.disconnect(pid)

        run(scenario())
        assert len(good.sent) == 2
        state = json.loads(good.sent[0])
        assert state["type"] == "state"
        assert {p["id"] for p in state["players"]} == {"a", "b"}
        assert lurker.sent == []

    def test_failed_tick_does_not_stop_the_loop(self, game, simulation):
        calls = []
        snapshot = game.snapshot

        def flaky_snapshot(now=None):
            calls.append(now)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return snapshot(now)

        game.snapshot = flaky_snapshot
        place(game, "p1", 100, 100)

        async def scenario():
            simulation.start()
            await asyncio.sleep(0.3)
            await simulation.stop()

        run(scenario())
        assert len(calls) >= 2
